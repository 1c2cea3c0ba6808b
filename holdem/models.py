from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .cards import Card
from .evaluator import HandResult


class Phase(str, Enum):
    WAITING = "waiting"
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"
    ENDED = "ended"


BETTING_PHASES = (Phase.PREFLOP, Phase.FLOP, Phase.TURN, Phase.RIVER)

MIN_SEATS = 2
MAX_SEATS = 6


class ActionType(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"
    ALL_IN = "allIn"


@dataclass
class TableConfig:
    small_blind: int = 10
    big_blind: int = 20
    starting_chips: int = 1_000
    min_players: int = MIN_SEATS
    max_players: int = MAX_SEATS

    def __post_init__(self) -> None:
        if self.small_blind <= 0 or self.big_blind <= 0:
            raise ValueError("Blinds must be positive")
        if self.small_blind > self.big_blind:
            raise ValueError("Small blind cannot exceed big blind")
        if self.starting_chips <= 0:
            raise ValueError("Starting chips must be positive")
        if not MIN_SEATS <= self.min_players <= self.max_players <= MAX_SEATS:
            raise ValueError(f"Table size must stay within {MIN_SEATS}-{MAX_SEATS} players")


@dataclass
class Player:
    id: str
    username: str
    chips: int
    current_bet: int = 0
    hole_cards: List[Card] = field(default_factory=list)
    folded: bool = False
    all_in: bool = False
    has_acted: bool = False
    connected: bool = True
    hand_result: Optional[HandResult] = None

    @property
    def can_act(self) -> bool:
        return not self.folded and not self.all_in

    def reset_for_hand(self) -> None:
        self.current_bet = 0
        self.hole_cards = []
        self.folded = False
        self.all_in = False
        self.has_acted = False
        self.hand_result = None

    def reset_for_round(self) -> None:
        self.current_bet = 0
        self.has_acted = False


@dataclass
class ActionResult:
    success: bool
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"success": self.success}
        if self.message is not None:
            payload["message"] = self.message
        return payload


@dataclass
class AvailableAction:
    action: ActionType
    min_amount: Optional[int] = None
    max_amount: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"action": self.action.value}
        if self.min_amount is not None:
            payload["min_amount"] = self.min_amount
        if self.max_amount is not None:
            payload["max_amount"] = self.max_amount
        return payload
