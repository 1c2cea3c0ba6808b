from __future__ import annotations

import logging
import random
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .cards import Card, build_deck, deal
from .evaluator import find_best
from .models import (
    BETTING_PHASES,
    ActionResult,
    ActionType,
    AvailableAction,
    Phase,
    Player,
    TableConfig,
)

LOGGER = logging.getLogger("holdem.engine")

# PokerEngine keeps one table's hand in memory. No networking lives here, only
# poker rules, chip accounting and betting order. Callers serialize access.

HIDDEN_CARD: Dict[str, object] = {"id": "hidden", "suit": None, "rank": None}

_STREET_CARDS = {Phase.PREFLOP: (Phase.FLOP, 3), Phase.FLOP: (Phase.TURN, 1), Phase.TURN: (Phase.RIVER, 1)}


def next_active_index(players: Sequence[Player], after: int) -> Optional[int]:
    """Index of the first seat after ``after`` (wrapping) that may still bet."""
    count = len(players)
    for step in range(1, count + 1):
        idx = (after + step) % count
        if players[idx].can_act:
            return idx
    return None


class PokerEngine:
    """No-Limit Texas Hold'em engine for a single table of 2-6 players."""

    def __init__(
        self,
        players: Iterable[Mapping[str, object]],
        config: Optional[TableConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or TableConfig()
        seeds = list(players)
        if not self.config.min_players <= len(seeds) <= self.config.max_players:
            raise ValueError(
                f"Poker requires {self.config.min_players}-{self.config.max_players} players"
            )

        self.players: List[Player] = [
            Player(id=str(seed["id"]), username=str(seed["username"]), chips=int(seed["chips"]))
            for seed in seeds
        ]
        self.rng = rng or random.Random()
        self.deck: List[Card] = []
        self.community_cards: List[Card] = []
        self.phase = Phase.WAITING
        self.pot = 0
        self.current_bet = 0
        self.min_raise = self.config.big_blind
        self.dealer_index = 0
        self.current_player_index = 0
        self.winners: List[str] = []
        self.payouts: Dict[str, int] = {}
        self.last_action: Optional[Dict[str, object]] = None
        self.hand_number = 0
        self.events: List[Dict[str, object]] = []
        self._opening_stacks: Dict[str, int] = {}

    # Hand lifecycle --------------------------------------------------

    def start_hand(self) -> None:
        self.deck = build_deck(self.rng)
        self.community_cards = []
        self.pot = 0
        self.current_bet = 0
        self.min_raise = self.config.big_blind
        self.winners = []
        self.payouts = {}
        self.last_action = None
        self.events = []
        for player in self.players:
            player.reset_for_hand()

        self.players = [player for player in self.players if player.chips > 0]
        if len(self.players) < 2:
            self.phase = Phase.ENDED
            LOGGER.debug("Not enough funded players to deal a hand")
            return

        self.hand_number += 1
        self.dealer_index = (self.dealer_index + 1) % len(self.players)
        self._opening_stacks = {player.id: player.chips for player in self.players}

        for player in self.players:
            player.hole_cards = deal(self.deck, 2)

        self.phase = Phase.PREFLOP
        self._post_blinds()
        LOGGER.debug(
            "Hand %s started: dealer=%s players=%s",
            self.hand_number,
            self.players[self.dealer_index].id,
            [player.id for player in self.players],
        )

    def _post_blinds(self) -> None:
        count = len(self.players)
        sb_index = (self.dealer_index + 1) % count
        bb_index = (self.dealer_index + 2) % count
        sb_player = self.players[sb_index]
        bb_player = self.players[bb_index]

        self._commit_chips(sb_player, self.config.small_blind)
        self._commit_chips(bb_player, self.config.big_blind)
        self.current_bet = self.config.big_blind
        self.min_raise = self.config.big_blind
        self.events.append(
            {
                "ev": "POST_BLINDS",
                "sb_player": sb_player.id,
                "bb_player": bb_player.id,
                "sb": sb_player.current_bet,
                "bb": bb_player.current_bet,
            }
        )

        # Action opens left of the big blind; heads-up that is the small blind.
        start = (bb_index + 1) % count
        if self.players[start].can_act:
            self.current_player_index = start
            return
        nxt = next_active_index(self.players, start)
        if nxt is None:
            # Blinds put everyone all-in; run the board out.
            self._advance_phase()
            return
        self.current_player_index = nxt

    def _commit_chips(self, player: Player, amount: int) -> int:
        amount = min(amount, player.chips)
        player.chips -= amount
        player.current_bet += amount
        if player.chips == 0:
            player.all_in = True
        return amount

    def remove_player(self, player_id: str) -> bool:
        """Drop a seat between hands; refused while a hand is being played."""
        if self.phase not in (Phase.WAITING, Phase.ENDED):
            return False
        idx = next((i for i, player in enumerate(self.players) if player.id == player_id), None)
        if idx is None:
            return False
        self.players.pop(idx)
        # Keep the button on the same physical seat so the next deal moves it on by one.
        if idx <= self.dealer_index:
            self.dealer_index = (self.dealer_index - 1) % max(len(self.players), 1)
        return True

    def can_continue(self) -> bool:
        return len([player for player in self.players if player.chips > 0]) >= 2

    # Action handling -------------------------------------------------

    def get_current_player(self) -> Optional[Player]:
        if self.phase not in BETTING_PHASES:
            return None
        if not 0 <= self.current_player_index < len(self.players):
            return None
        return self.players[self.current_player_index]

    def get_available_actions(self) -> List[AvailableAction]:
        player = self.get_current_player()
        if player is None or not player.can_act:
            return []

        to_call = self.current_bet - player.current_bet
        actions = [AvailableAction(ActionType.FOLD)]
        if to_call <= 0:
            actions.append(AvailableAction(ActionType.CHECK))
        else:
            actions.append(AvailableAction(ActionType.CALL))

        min_raise_to = self.current_bet + self.min_raise
        max_raise_to = player.chips + player.current_bet
        if max_raise_to >= min_raise_to:
            actions.append(AvailableAction(ActionType.RAISE, min_amount=min_raise_to, max_amount=max_raise_to))
        if player.chips > 0:
            actions.append(AvailableAction(ActionType.ALL_IN))
        return actions

    def do_action(self, player_id: str, action: object, amount: Optional[int] = None) -> ActionResult:
        player = self.get_current_player()
        if player is None or player.id != player_id:
            return ActionResult(False, "Not your turn")
        if not player.can_act:
            return ActionResult(False, "Cannot act")
        try:
            action = ActionType(action)
        except ValueError:
            return ActionResult(False, f"Unsupported action {action}")

        to_call = self.current_bet - player.current_bet

        # Validate everything before touching state so a refusal never mutates.
        if action == ActionType.CHECK and to_call > 0:
            return ActionResult(False, "Cannot check, must call or fold")
        if action == ActionType.CALL and to_call <= 0:
            return ActionResult(False, "Nothing to call")
        if action == ActionType.RAISE:
            min_raise_to = self.current_bet + self.min_raise
            if isinstance(amount, bool) or not isinstance(amount, int) or amount < min_raise_to:
                return ActionResult(False, f"Minimum raise is {min_raise_to}")
            if amount - player.current_bet > player.chips:
                return ActionResult(False, "Not enough chips")

        event: Dict[str, object] = {"ev": action.name, "player": player.id}
        if action == ActionType.FOLD:
            player.folded = True
        elif action == ActionType.CALL:
            event["amount"] = self._commit_chips(player, to_call)
        elif action == ActionType.RAISE:
            assert amount is not None
            previous_bet = self.current_bet
            event["amount"] = self._commit_chips(player, amount - player.current_bet)
            self.min_raise = amount - previous_bet
            self.current_bet = amount
            self._reopen_action(player)
        elif action == ActionType.ALL_IN:
            event["amount"] = self._commit_chips(player, player.chips)
            if player.current_bet > self.current_bet:
                self.min_raise = player.current_bet - self.current_bet
                self.current_bet = player.current_bet
                self._reopen_action(player)

        player.has_acted = True
        self.last_action = {"player_id": player.id, "action": action.value, "amount": amount}
        self.events.append(event)

        survivors = [p for p in self.players if not p.folded]
        if len(survivors) == 1:
            self._end_hand([survivors[0].id])
        elif self._is_betting_round_complete():
            self._advance_phase()
        else:
            nxt = next_active_index(self.players, self.current_player_index)
            assert nxt is not None, "open betting round without an eligible actor"
            self.current_player_index = nxt
        return ActionResult(True)

    def _reopen_action(self, raiser: Player) -> None:
        for other in self.players:
            if other is not raiser and other.can_act:
                other.has_acted = False

    def _is_betting_round_complete(self) -> bool:
        return all(
            player.has_acted and player.current_bet == self.current_bet
            for player in self.players
            if player.can_act
        )

    # Street progression ----------------------------------------------

    def _sweep_bets(self) -> None:
        for player in self.players:
            self.pot += player.current_bet
            player.reset_for_round()
        self.current_bet = 0

    def _advance_phase(self) -> None:
        self._sweep_bets()
        self.min_raise = self.config.big_blind
        nxt = next_active_index(self.players, self.dealer_index)
        if nxt is not None:
            self.current_player_index = nxt

        survivors = [player for player in self.players if not player.folded]
        if len(survivors) == 1:
            self._end_hand([survivors[0].id])
            return

        if len([player for player in self.players if player.can_act]) <= 1:
            missing = 5 - len(self.community_cards)
            if missing:
                self._deal_board("RUNOUT", missing)
            self._showdown()
            return

        if self.phase == Phase.RIVER:
            self._showdown()
            return
        next_phase, count = _STREET_CARDS[self.phase]
        self.phase = next_phase
        self._deal_board(next_phase.name, count)

    def _deal_board(self, ev: str, count: int) -> None:
        cards = deal(self.deck, count)
        self.community_cards.extend(cards)
        self.events.append({"ev": ev, "cards": [card.label for card in cards]})

    def _showdown(self) -> None:
        self.phase = Phase.SHOWDOWN
        contenders = [player for player in self.players if not player.folded]
        for player in contenders:
            player.hand_result = find_best(player.hole_cards, self.community_cards)
            self.events.append(
                {
                    "ev": "SHOWDOWN",
                    "player": player.id,
                    "hole": [card.label for card in player.hole_cards],
                    "rank": player.hand_result.name,
                }
            )
        best = max(player.hand_result.score for player in contenders if player.hand_result)
        winners = [player.id for player in contenders if player.hand_result and player.hand_result.score == best]
        self._end_hand(winners)

    def _end_hand(self, winner_ids: List[str]) -> None:
        self._sweep_bets()
        self.phase = Phase.ENDED
        self.winners = list(winner_ids)
        self.payouts = split_pot(self.pot, self.winners)
        for player in self.players:
            award = self.payouts.get(player.id, 0)
            if award:
                player.chips += award
                self.events.append({"ev": "POT_AWARD", "player": player.id, "amount": award})
        self.pot = 0
        LOGGER.debug("Hand %s ended: payouts=%s", self.hand_number, self.payouts)

    def hand_deltas(self) -> Dict[str, int]:
        """Net chip change per player since the last deal; final once the hand has ended."""
        return {
            player.id: player.chips - self._opening_stacks[player.id]
            for player in self.players
            if player.id in self._opening_stacks
        }

    # Views -----------------------------------------------------------

    def consume_events(self) -> List[Dict[str, object]]:
        events = list(self.events)
        self.events.clear()
        return events

    def set_connected(self, player_id: str, connected: bool) -> None:
        for player in self.players:
            if player.id == player_id:
                player.connected = connected

    def get_state_for_player(self, player_id: str) -> Dict[str, object]:
        reveal_all = self.phase in (Phase.SHOWDOWN, Phase.ENDED)
        return self._state_payload(lambda player: reveal_all or player.id == player_id)

    def get_full_state(self) -> Dict[str, object]:
        return self._state_payload(lambda player: True)

    def _state_payload(self, can_see: Callable[[Player], bool]) -> Dict[str, object]:
        return {
            "phase": self.phase.value,
            "hand_number": self.hand_number,
            "players": [self._player_payload(player, can_see(player)) for player in self.players],
            "community_cards": [card.to_dict() for card in self.community_cards],
            "pot": self.pot,
            "pot_total": self.pot + sum(player.current_bet for player in self.players),
            "current_bet": self.current_bet,
            "min_raise": self.min_raise,
            "current_player_index": self.current_player_index,
            "dealer_index": self.dealer_index,
            "small_blind": self.config.small_blind,
            "big_blind": self.config.big_blind,
            "winners": list(self.winners),
            "payouts": dict(self.payouts),
            "last_action": dict(self.last_action) if self.last_action else None,
        }

    def _player_payload(self, player: Player, visible: bool) -> Dict[str, object]:
        if visible:
            hole = [card.to_dict() for card in player.hole_cards]
        else:
            hole = [dict(HIDDEN_CARD) for _ in player.hole_cards]
        return {
            "id": player.id,
            "username": player.username,
            "chips": player.chips,
            "current_bet": player.current_bet,
            "hole_cards": hole,
            "folded": player.folded,
            "all_in": player.all_in,
            "has_acted": player.has_acted,
            "connected": player.connected,
            "hand_result": player.hand_result.to_dict() if visible and player.hand_result else None,
        }


def split_pot(pot: int, winner_ids: Sequence[str]) -> Dict[str, int]:
    """Floor-split ``pot``; the odd chips go to the first winner in seat order."""
    if not winner_ids:
        return {}
    share, remainder = divmod(pot, len(winner_ids))
    payouts = {winner_id: share for winner_id in winner_ids}
    payouts[winner_ids[0]] += remainder
    return payouts
