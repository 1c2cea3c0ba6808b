from __future__ import annotations

import random
from typing import List, Optional, Sequence

from holdem.cards import Card, RANKS, SUITS, parse_cards
from holdem.engine import PokerEngine
from holdem.models import ActionType, TableConfig


def create_engine(
    *,
    players: int = 3,
    chips: Optional[Sequence[int]] = None,
    small_blind: int = 10,
    big_blind: int = 20,
    seed: int = 42,
) -> PokerEngine:
    """Instantiate an engine seated with players ``a``, ``b``, ``c``..."""
    stacks = list(chips) if chips is not None else [1_000] * players
    seeds = [
        {"id": chr(ord("a") + idx), "username": f"Player{idx}", "chips": stack}
        for idx, stack in enumerate(stacks)
    ]
    config = TableConfig(small_blind=small_blind, big_blind=big_blind, starting_chips=max(stacks))
    return PokerEngine(seeds, config, rng=random.Random(seed))


def stacked_deck(labels: Sequence[str]) -> List[Card]:
    """Deck dealt front-first: listed cards, then the rest in a fixed order."""
    top = parse_cards(list(labels))
    rest = [Card(suit, rank) for suit in SUITS for rank in RANKS if Card(suit, rank) not in top]
    return top + rest


def stack_deck(monkeypatch, labels: Sequence[str]) -> None:
    deck = stacked_deck(labels)
    monkeypatch.setattr("holdem.engine.build_deck", lambda rng=None: list(deck))


def table_chips(engine: PokerEngine) -> int:
    return engine.pot + sum(player.chips + player.current_bet for player in engine.players)


def act(engine: PokerEngine, action: ActionType, amount: Optional[int] = None) -> None:
    """Apply an action for whoever is on turn and insist it was accepted."""
    player = engine.get_current_player()
    assert player is not None
    result = engine.do_action(player.id, action, amount)
    assert result.success, result.message


def play_passively(engine: PokerEngine) -> None:
    """Check or call until the hand is over."""
    while True:
        player = engine.get_current_player()
        if player is None:
            return
        if player.current_bet == engine.current_bet:
            act(engine, ActionType.CHECK)
        else:
            act(engine, ActionType.CALL)
