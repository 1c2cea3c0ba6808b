from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.asyncio.server import serve

from holdem.engine import PokerEngine
from holdem.models import ActionType, Phase, TableConfig

from .protocol import ProtocolError, error_payload, parse_action, parse_hello, parse_start
from .registry import TableEntry, TableRegistry

LOGGER = logging.getLogger("poker_host")

# TableHost glues poker engines to WebSocket clients. Every network concern
# lives here; PokerEngine stays pure and is only touched under the table lock.

Ledger = Callable[[str, Dict[str, int]], None]


def log_ledger(table_id: str, deltas: Dict[str, int]) -> None:
    LOGGER.info("Ledger update table=%s deltas=%s", table_id, deltas)


@dataclass
class ClientSession:
    player_id: str
    username: str
    table_id: str
    websocket: Any


class TableHost:
    def __init__(
        self,
        config: TableConfig,
        registry: Optional[TableRegistry] = None,
        ledger: Optional[Ledger] = None,
    ) -> None:
        self.config = config
        self.registry = registry if registry is not None else TableRegistry()
        self.ledger = ledger or log_ledger
        self.sessions: Dict[str, ClientSession] = {}

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with serve(self._handle_connection, host, port):
            LOGGER.info("Table host listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: Any) -> None:
        # First message must be "hello" so we know who we are talking to.
        message = await self._read_message(websocket)
        if message is None or message.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return
        try:
            hello = parse_hello(message)
        except ProtocolError as exc:
            await self._send_json(websocket, "error", error_payload(exc))
            await websocket.close()
            return

        previous = self.sessions.get(hello.player_id)
        if previous:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")

        session = ClientSession(
            player_id=hello.player_id,
            username=hello.username,
            table_id=hello.table_id,
            websocket=websocket,
        )
        await self.register(session)

        try:
            async for raw in websocket:
                await self._handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            await self.unregister(session)

    async def register(self, session: ClientSession) -> None:
        self.sessions[session.player_id] = session
        table = self.registry.join(session.table_id, session.player_id, session.username)
        async with table.lock:
            if table.engine:
                table.engine.set_connected(session.player_id, True)
        LOGGER.info("Player %s (%s) joined table %s", session.player_id, session.username, session.table_id)
        await self._send_json(
            session.websocket,
            "welcome",
            {"table_id": table.table_id, "players": list(table.members.values())},
        )
        if table.engine:
            await self._send_state(table, session)

    async def unregister(self, session: ClientSession) -> None:
        if self.sessions.get(session.player_id) is session:
            self.sessions.pop(session.player_id, None)
        table = self.registry.get(session.table_id)
        if table and table.engine:
            async with table.lock:
                table.engine.set_connected(session.player_id, False)
            await self._broadcast_state(table)
        LOGGER.info("Player %s disconnected from table %s", session.player_id, session.table_id)

    async def _handle_message(self, session: ClientSession, message: Dict[str, object]) -> None:
        handlers = {
            "poker:start": self._handle_start,
            "poker:action": self._handle_action,
            "poker:nextHand": self._handle_next_hand,
            "poker:getActions": self._handle_get_actions,
            "poker:leave": self._handle_leave,
        }
        msg_type = message.get("type")
        handler = handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            await self._send_error(session.websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
            return
        table = self.registry.get(session.table_id)
        if table is None or session.player_id not in table.members:
            await self._send_error(session.websocket, code="NOT_IN_TABLE", msg="Not in a table")
            return
        try:
            await handler(session, table, message)
        except ProtocolError as exc:
            LOGGER.warning("Rejected %s from %s: %s", message.get("type"), session.player_id, exc.msg)
            await self._send_json(session.websocket, "error", error_payload(exc))

    async def _handle_start(self, session: ClientSession, table: TableEntry, message: Dict[str, object]) -> None:
        request = parse_start(message)
        async with table.lock:
            if table.engine and table.engine.phase not in (Phase.WAITING, Phase.ENDED):
                raise ProtocolError("HAND_IN_PROGRESS", "A hand is already running")
            count = len(table.members)
            if not self.config.min_players <= count <= self.config.max_players:
                raise ProtocolError(
                    "BAD_TABLE_SIZE",
                    f"Need {self.config.min_players}-{self.config.max_players} players. Currently have {count}",
                )
            try:
                config = replace(
                    self.config,
                    small_blind=request.small_blind or self.config.small_blind,
                    big_blind=request.big_blind or self.config.big_blind,
                )
            except ValueError as exc:
                raise ProtocolError("BAD_SCHEMA", str(exc)) from None
            players = [
                {"id": player_id, "username": username, "chips": config.starting_chips}
                for player_id, username in table.members.items()
            ]
            table.engine = PokerEngine(players, config)
            table.departed.clear()
            for player_id in table.members:
                table.engine.set_connected(player_id, player_id in self.sessions)
            self._deal_locked(table)
            events = table.engine.consume_events()

        LOGGER.info("Poker game started on table %s with players %s", table.table_id, list(table.members.values()))
        await self._broadcast(table, "game:starting", {"table_id": table.table_id, "game_type": "poker"})
        await self._after_change(table, events)
        await self._ack(session, "poker:start")

    async def _handle_action(self, session: ClientSession, table: TableEntry, message: Dict[str, object]) -> None:
        request = parse_action(message)
        async with table.lock:
            if table.engine is None:
                raise ProtocolError("NO_GAME", "Game not found")
            result = table.engine.do_action(session.player_id, request.action, request.amount)
            if not result.success:
                LOGGER.warning(
                    "Rejected action player=%s action=%s amount=%s reason=%s",
                    session.player_id,
                    request.action.value,
                    request.amount,
                    result.message,
                )
                await self._send_error(session.websocket, code="INVALID_ACTION", msg=result.message or "")
                return
            self._fold_departed_locked(table)
            events = table.engine.consume_events()

        LOGGER.debug(
            "Applied action table=%s player=%s action=%s amount=%s",
            table.table_id,
            session.player_id,
            request.action.value,
            request.amount,
        )
        await self._after_change(table, events)
        await self._ack(session, "poker:action")

    async def _handle_next_hand(self, session: ClientSession, table: TableEntry, message: Dict[str, object]) -> None:
        async with table.lock:
            if table.engine is None:
                raise ProtocolError("NO_GAME", "Game not found")
            if table.engine.phase != Phase.ENDED:
                raise ProtocolError("HAND_IN_PROGRESS", "Current hand has not finished")
            for player_id in sorted(table.departed):
                table.engine.remove_player(player_id)
            table.departed.clear()
            game_over = not table.engine.can_continue()
            if game_over:
                self.registry.end_game(table.table_id)
                events: List[Dict[str, object]] = []
            else:
                self._deal_locked(table)
                events = table.engine.consume_events()

        if game_over:
            LOGGER.info("Game over on table %s", table.table_id)
            await self._broadcast(table, "poker:gameOver", {"message": "Not enough players to continue"})
            await self._send_error(session.websocket, code="GAME_OVER", msg="Game over")
            return

        LOGGER.info("New poker hand started on table %s", table.table_id)
        await self._after_change(table, events)
        await self._ack(session, "poker:nextHand")

    async def _handle_get_actions(self, session: ClientSession, table: TableEntry, message: Dict[str, object]) -> None:
        async with table.lock:
            if table.engine is None:
                raise ProtocolError("NO_GAME", "Game not found")
            actions = [action.to_dict() for action in table.engine.get_available_actions()]
        await self._send_json(session.websocket, "poker:actions", {"actions": actions})

    async def _handle_leave(self, session: ClientSession, table: TableEntry, message: Dict[str, object]) -> None:
        events: List[Dict[str, object]] = []
        async with table.lock:
            self.registry.leave(table.table_id, session.player_id)
            if table.engine:
                self._fold_departed_locked(table)
                events = table.engine.consume_events()

        await self._broadcast(table, "poker:playerLeft", {"player_id": session.player_id})
        if table.engine:
            await self._after_change(table, events)
        LOGGER.info("Player %s left table %s", session.player_id, table.table_id)

    def _fold_departed_locked(self, table: TableEntry) -> None:
        # A departed seat folds as soon as the action reaches it.
        engine = table.engine
        while engine is not None:
            player = engine.get_current_player()
            if player is None or player.id not in table.departed:
                return
            if not engine.do_action(player.id, ActionType.FOLD).success:
                return
            LOGGER.info("Folded departed player %s on table %s", player.id, table.table_id)

    def _deal_locked(self, table: TableEntry) -> None:
        assert table.engine is not None
        table.engine.start_hand()
        table.hand_settled = False

    async def _after_change(self, table: TableEntry, events: List[Dict[str, object]]) -> None:
        for event in events:
            await self._broadcast(table, "event", event)
        await self._broadcast_state(table)
        await self._maybe_settle_hand(table)

    async def _maybe_settle_hand(self, table: TableEntry) -> None:
        async with table.lock:
            engine = table.engine
            if engine is None or engine.phase != Phase.ENDED or table.hand_settled:
                return
            table.hand_settled = True
            winners = list(engine.winners)
            payouts = dict(engine.payouts)
            deltas = engine.hand_deltas()

        await self._broadcast(table, "poker:handEnd", {"winners": winners, "payouts": payouts})
        LOGGER.info("Hand ended on table %s, winners=%s payouts=%s", table.table_id, winners, payouts)
        self.ledger(table.table_id, deltas)

    async def _broadcast_state(self, table: TableEntry) -> None:
        # Each member gets their own redacted view.
        for player_id in list(table.members):
            session = self.sessions.get(player_id)
            if session:
                await self._send_state(table, session)

    async def _send_state(self, table: TableEntry, session: ClientSession) -> None:
        async with table.lock:
            if table.engine is None:
                return
            state = table.engine.get_state_for_player(session.player_id)
        await self._send_json(session.websocket, "poker:stateUpdate", state)

    async def _broadcast(self, table: TableEntry, msg_type: str, payload: Dict[str, object]) -> None:
        targets = [self.sessions[pid].websocket for pid in table.members if pid in self.sessions]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _ack(self, session: ClientSession, request: str) -> None:
        await self._send_json(session.websocket, "ack", {"request": request, "success": True})

    async def _send_json(self, websocket: Any, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: Any, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body: Dict[str, object] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: Any) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}
