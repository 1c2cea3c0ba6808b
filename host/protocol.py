from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from holdem.models import ActionType


class ProtocolError(ValueError):
    """A client payload that cannot be turned into an engine call."""

    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass(frozen=True)
class Hello:
    player_id: str
    username: str
    table_id: str


@dataclass(frozen=True)
class ActionRequest:
    action: ActionType
    amount: Optional[int] = None


@dataclass(frozen=True)
class StartRequest:
    small_blind: Optional[int] = None
    big_blind: Optional[int] = None


def _required_str(message: Mapping[str, object], key: str) -> str:
    value = message.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ProtocolError("BAD_SCHEMA", f"{key} required")
    return value.strip()


def _optional_positive_int(message: Mapping[str, object], key: str) -> Optional[int]:
    value = message.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ProtocolError("BAD_SCHEMA", f"{key} must be a positive integer")
    return value


def parse_hello(message: Mapping[str, object]) -> Hello:
    player_id = _required_str(message, "player_id")
    username_raw = message.get("username")
    username = username_raw.strip() if isinstance(username_raw, str) and username_raw.strip() else player_id
    return Hello(player_id=player_id, username=username, table_id=_required_str(message, "table_id"))


def parse_action(message: Mapping[str, object]) -> ActionRequest:
    """Decode an action payload; only raises carry an amount."""
    action_name = message.get("action")
    try:
        action = ActionType(action_name)
    except ValueError:
        raise ProtocolError("INVALID_ACTION", f"Unknown action {action_name!r}") from None

    if action != ActionType.RAISE:
        return ActionRequest(action)
    amount = _optional_positive_int(message, "amount")
    if amount is None:
        raise ProtocolError("BAD_SCHEMA", "amount required for raise")
    return ActionRequest(action, amount)


def parse_start(message: Mapping[str, object]) -> StartRequest:
    request = StartRequest(
        small_blind=_optional_positive_int(message, "small_blind"),
        big_blind=_optional_positive_int(message, "big_blind"),
    )
    if request.small_blind and request.big_blind and request.small_blind > request.big_blind:
        raise ProtocolError("BAD_SCHEMA", "small_blind cannot exceed big_blind")
    return request


def error_payload(exc: ProtocolError) -> Dict[str, object]:
    return {"code": exc.code, "msg": exc.msg}
