"""Texas Hold'em table engine: hand evaluation, betting and showdown."""

from .cards import Card, RANKS, SUITS, build_deck, deal, parse_cards, parse_label
from .engine import HIDDEN_CARD, PokerEngine, next_active_index, split_pot
from .evaluator import HandCategory, HandResult, compare, evaluate, find_best
from .models import ActionResult, ActionType, AvailableAction, Phase, Player, TableConfig

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "build_deck",
    "deal",
    "parse_cards",
    "parse_label",
    "HIDDEN_CARD",
    "PokerEngine",
    "next_active_index",
    "split_pot",
    "HandCategory",
    "HandResult",
    "compare",
    "evaluate",
    "find_best",
    "ActionResult",
    "ActionType",
    "AvailableAction",
    "Phase",
    "Player",
    "TableConfig",
]
