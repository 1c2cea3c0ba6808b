#!/usr/bin/env python3
"""Play many hands offline with scripted bots and check chip conservation.

Example:
    python scripts/hand_sim.py --players 4 --hands 500 --seed 7
"""

from __future__ import annotations

import argparse
import logging
import random
from typing import Callable, Dict, List, Optional, Tuple

from holdem.engine import PokerEngine
from holdem.models import ActionType, AvailableAction, TableConfig

LOGGER = logging.getLogger("hand_sim")

Strategy = Callable[[List[AvailableAction], random.Random], Tuple[ActionType, Optional[int]]]


def passive_strategy(legal: List[AvailableAction], rng: random.Random) -> Tuple[ActionType, Optional[int]]:
    """Check if possible, otherwise call."""
    kinds = {option.action for option in legal}
    if ActionType.CHECK in kinds:
        return ActionType.CHECK, None
    if ActionType.CALL in kinds:
        return ActionType.CALL, None
    return ActionType.FOLD, None


def min_raise_strategy(legal: List[AvailableAction], rng: random.Random) -> Tuple[ActionType, Optional[int]]:
    """Raise the minimum when allowed, fall back to passive play."""
    for option in legal:
        if option.action == ActionType.RAISE and rng.random() < 0.3:
            return ActionType.RAISE, option.min_amount
    return passive_strategy(legal, rng)


def random_strategy(legal: List[AvailableAction], rng: random.Random) -> Tuple[ActionType, Optional[int]]:
    option = rng.choice(legal)
    if option.action == ActionType.RAISE:
        assert option.min_amount is not None and option.max_amount is not None
        return option.action, rng.randint(option.min_amount, option.max_amount)
    return option.action, None


STRATEGIES: List[Strategy] = [passive_strategy, min_raise_strategy, random_strategy]


def table_chips(engine: PokerEngine) -> int:
    return engine.pot + sum(player.chips + player.current_bet for player in engine.players)


def run_simulation(args: argparse.Namespace) -> Dict[str, int]:
    rng = random.Random(args.seed)
    config = TableConfig(small_blind=args.sb, big_blind=args.bb, starting_chips=args.starting_chips)
    seeds = [{"id": f"bot{i}", "username": f"SimBot{i}", "chips": config.starting_chips} for i in range(args.players)]
    engine = PokerEngine(seeds, config, rng=random.Random(args.seed))
    strategies = {seed["id"]: STRATEGIES[i % len(STRATEGIES)] for i, seed in enumerate(seeds)}
    total = sum(seed["chips"] for seed in seeds)

    hands = 0
    while hands < args.hands and engine.can_continue():
        engine.start_hand()
        while True:
            player = engine.get_current_player()
            if player is None:
                break
            action, amount = strategies[player.id](engine.get_available_actions(), rng)
            result = engine.do_action(player.id, action, amount)
            if not result.success:
                LOGGER.error("Bot %s attempted illegal %s %s: %s", player.id, action.value, amount, result.message)
                engine.do_action(player.id, ActionType.FOLD)
            if table_chips(engine) != total:
                raise RuntimeError(f"Chip total drifted in hand {engine.hand_number}")
        hands += 1
        LOGGER.debug("Hand %s winners=%s payouts=%s", engine.hand_number, engine.winners, engine.payouts)

    stacks = {player.id: player.chips for player in engine.players}
    LOGGER.info("Played %s hands; final stacks=%s", hands, stacks)
    return stacks


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate hands offline with scripted bots")
    parser.add_argument("--players", type=int, default=4)
    parser.add_argument("--hands", type=int, default=200)
    parser.add_argument("--starting-chips", type=int, default=1_000)
    parser.add_argument("--sb", type=int, default=10)
    parser.add_argument("--bb", type=int, default=20)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    run_simulation(args)


if __name__ == "__main__":
    main()
