from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Sequence

from .cards import Card

CATEGORY_WEIGHT = 10_000_000
KICKER_BASE = 15


class HandCategory(IntEnum):
    HIGH_CARD = 1
    ONE_PAIR = 2
    TWO_PAIR = 3
    THREE_OF_A_KIND = 4
    STRAIGHT = 5
    FLUSH = 6
    FULL_HOUSE = 7
    FOUR_OF_A_KIND = 8
    STRAIGHT_FLUSH = 9
    ROYAL_FLUSH = 10

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class HandResult:
    category: HandCategory
    cards: List[Card]
    kickers: List[int]
    score: int

    @property
    def name(self) -> str:
        return self.category.label

    def to_dict(self) -> Dict[str, object]:
        return {
            "category": self.category.value,
            "name": self.name,
            "cards": [card.to_dict() for card in self.cards],
            "kickers": list(self.kickers),
            "score": self.score,
        }


def hand_score(category: HandCategory, kickers: Sequence[int]) -> int:
    # Base 15 keeps every kicker (max 14) inside its own digit.
    score = category * CATEGORY_WEIGHT
    for idx, kicker in enumerate(kickers[:5]):
        score += kicker * KICKER_BASE ** (4 - idx)
    return score


def _result(category: HandCategory, cards: List[Card], kickers: List[int]) -> HandResult:
    return HandResult(category=category, cards=cards, kickers=kickers, score=hand_score(category, kickers))


def evaluate(cards: Sequence[Card]) -> HandResult:
    """Classify five or more cards and return the best hand they contain."""
    if len(cards) < 5:
        raise ValueError("Need at least 5 cards to evaluate")

    by_rank: Dict[int, List[Card]] = {}
    for card in cards:
        by_rank.setdefault(card.rank, []).append(card)
    quads = sorted((rank for rank, group in by_rank.items() if len(group) == 4), reverse=True)
    trips = sorted((rank for rank, group in by_rank.items() if len(group) == 3), reverse=True)
    pairs = sorted((rank for rank, group in by_rank.items() if len(group) == 2), reverse=True)

    straight_flush = _find_straight_flush(cards)
    if straight_flush:
        top = straight_flush[0].rank
        category = HandCategory.ROYAL_FLUSH if top == 14 else HandCategory.STRAIGHT_FLUSH
        return _result(category, straight_flush, [top])

    if quads:
        kicker = _highest_excluding(cards, {quads[0]}, 1)
        return _result(HandCategory.FOUR_OF_A_KIND, by_rank[quads[0]] + kicker, [quads[0], kicker[0].rank])

    if trips and (pairs or len(trips) > 1):
        pair_rank = max(pairs[:1] + trips[1:2])
        made = by_rank[trips[0]] + by_rank[pair_rank][:2]
        return _result(HandCategory.FULL_HOUSE, made, [trips[0], pair_rank])

    flush = _find_flush(cards)
    if flush:
        return _result(HandCategory.FLUSH, flush, [card.rank for card in flush])

    straight = _find_straight(cards)
    if straight:
        return _result(HandCategory.STRAIGHT, straight, [straight[0].rank])

    if trips:
        kickers = _highest_excluding(cards, {trips[0]}, 2)
        return _result(
            HandCategory.THREE_OF_A_KIND,
            by_rank[trips[0]] + kickers,
            [trips[0]] + [card.rank for card in kickers],
        )

    if len(pairs) >= 2:
        high, low = pairs[0], pairs[1]
        kicker = _highest_excluding(cards, {high, low}, 1)
        return _result(HandCategory.TWO_PAIR, by_rank[high] + by_rank[low] + kicker, [high, low, kicker[0].rank])

    if pairs:
        kickers = _highest_excluding(cards, {pairs[0]}, 3)
        return _result(
            HandCategory.ONE_PAIR,
            by_rank[pairs[0]] + kickers,
            [pairs[0]] + [card.rank for card in kickers],
        )

    high_cards = sorted(cards, key=lambda card: card.rank, reverse=True)[:5]
    return _result(HandCategory.HIGH_CARD, high_cards, [card.rank for card in high_cards])


def find_best(hole_cards: Sequence[Card], board_cards: Sequence[Card]) -> HandResult:
    """Return the strongest five-card hand from hole plus board cards."""
    cards = list(hole_cards) + list(board_cards)
    if len(cards) < 5:
        raise ValueError("Need at least 5 cards")
    if len(cards) == 5:
        return evaluate(cards)

    best: Optional[HandResult] = None
    for combo in itertools.combinations(cards, 5):
        result = evaluate(combo)
        if best is None or result.score > best.score:
            best = result
    assert best is not None
    return best


def compare(a: HandResult, b: HandResult) -> int:
    """Positive when ``a`` wins, negative when ``b`` wins, zero on an exact tie."""
    return a.score - b.score


def _highest_excluding(cards: Sequence[Card], ranks: set, count: int) -> List[Card]:
    rest = [card for card in cards if card.rank not in ranks]
    return sorted(rest, key=lambda card: card.rank, reverse=True)[:count]


def _find_flush(cards: Sequence[Card]) -> Optional[List[Card]]:
    for suited in _group_by_suit(cards).values():
        if len(suited) >= 5:
            return sorted(suited, key=lambda card: card.rank, reverse=True)[:5]
    return None


def _find_straight(cards: Sequence[Card]) -> Optional[List[Card]]:
    first_of_rank: Dict[int, Card] = {}
    for card in cards:
        first_of_rank.setdefault(card.rank, card)
    ranks = sorted(first_of_rank, reverse=True)

    for idx in range(len(ranks) - 4):
        window = ranks[idx : idx + 5]
        if window[0] - window[4] == 4:
            return [first_of_rank[rank] for rank in window]

    # Wheel: the ace plays low, below the five.
    if {14, 2, 3, 4, 5}.issubset(first_of_rank):
        return [first_of_rank[rank] for rank in (5, 4, 3, 2, 14)]
    return None


def _find_straight_flush(cards: Sequence[Card]) -> Optional[List[Card]]:
    best: Optional[List[Card]] = None
    for suited in _group_by_suit(cards).values():
        if len(suited) < 5:
            continue
        straight = _find_straight(suited)
        if straight and (best is None or straight[0].rank > best[0].rank):
            best = straight
    return best


def _group_by_suit(cards: Sequence[Card]) -> Dict[str, List[Card]]:
    by_suit: Dict[str, List[Card]] = {}
    for card in cards:
        by_suit.setdefault(card.suit, []).append(card)
    return by_suit
