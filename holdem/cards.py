from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional

SUITS = ("hearts", "diamonds", "clubs", "spades")
RANKS = tuple(range(2, 15))

RANK_LABELS = {10: "T", 11: "J", 12: "Q", 13: "K", 14: "A"}
LABEL_RANKS = {label: rank for rank, label in RANK_LABELS.items()}
SUIT_LABELS = {suit: suit[0] for suit in SUITS}
LABEL_SUITS = {label: suit for suit, label in SUIT_LABELS.items()}


@dataclass(frozen=True)
class Card:
    suit: str
    rank: int

    def __post_init__(self) -> None:
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")

    @property
    def id(self) -> str:
        return f"{self.suit}-{self.rank}"

    @property
    def label(self) -> str:
        return f"{RANK_LABELS.get(self.rank, str(self.rank))}{SUIT_LABELS[self.suit]}"

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "suit": self.suit, "rank": self.rank}


def build_deck(rng: Optional[random.Random] = None) -> List[Card]:
    """Return a freshly shuffled 52-card deck."""
    rng = rng or random.Random()
    deck = [Card(suit, rank) for suit in SUITS for rank in RANKS]
    rng.shuffle(deck)
    return deck


def deal(deck: List[Card], count: int) -> List[Card]:
    if len(deck) < count:
        raise ValueError("Not enough cards left in deck")
    cards = deck[:count]
    del deck[:count]
    return cards


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    rank_char, suit_char = label[0], label[1]
    if rank_char.isdigit():
        rank = int(rank_char)
    elif rank_char in LABEL_RANKS:
        rank = LABEL_RANKS[rank_char]
    else:
        raise ValueError(f"Invalid rank: {rank_char}")
    if suit_char not in LABEL_SUITS:
        raise ValueError(f"Invalid suit: {suit_char}")
    return Card(LABEL_SUITS[suit_char], rank)


def parse_cards(labels: List[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
