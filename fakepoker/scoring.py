"""Hand evaluation, round points and dealing of cards."""

from __future__ import annotations

import random
from collections import Counter
from collections.abc import Iterable, Sequence

from fakepoker.config import Points
from fakepoker.models import AVAILABLE_FAKE_CARDS, AVAILABLE_REAL_CARDS, Card

__all__ = [
    "HAND_SIZE",
    "discount_for_fakes",
    "is_fake_poker",
    "is_poker",
    "is_one_of_each",
    "is_full_house",
    "is_three_of_a_kind",
    "is_two_pair",
    "is_pair",
    "round_points",
    "can_finish_round",
    "deal_cards",
]

HAND_SIZE = 5
_FAKES_PER_ROUND = 4


def _fake_count(hand: Iterable[Card]) -> int:
    return sum(1 for card in hand if not card.is_real)


def _type_counts(hand: Iterable[Card]) -> Counter[int]:
    return Counter(card.type for card in hand)


def discount_for_fakes(hand: Sequence[Card], points: Points) -> int:
    """Return the penalty for the fake cards in ``hand``.

    A hand holding all four fakes carries no penalty. A hand with no fake
    card, or more than four, is not a hand the game can produce and raises
    ``ValueError``.
    """
    fakes = _fake_count(hand)
    penalties = {
        1: points.fake_one,
        2: points.fake_two,
        3: points.fake_three,
        4: 0,
    }
    try:
        return penalties[fakes]
    except KeyError:
        raise ValueError(f"unexpected number of fake cards in hand: {fakes}") from None


def is_fake_poker(hand: Sequence[Card]) -> bool:
    """True when the hand holds exactly four fake cards."""
    return _fake_count(hand) == 4


def is_poker(hand: Sequence[Card]) -> bool:
    """True when at least four cards share a type."""
    return any(count >= 4 for count in _type_counts(hand).values())


def is_one_of_each(hand: Sequence[Card]) -> bool:
    """True when the hand holds four different types."""
    return len(_type_counts(hand)) == 4


def is_full_house(hand: Sequence[Card]) -> bool:
    """True when every type present appears two or three times."""
    return all(count in (2, 3) for count in _type_counts(hand).values())


def is_three_of_a_kind(hand: Sequence[Card]) -> bool:
    """True when exactly one type appears three times."""
    return sum(1 for count in _type_counts(hand).values() if count == 3) == 1


def is_two_pair(hand: Sequence[Card]) -> bool:
    """True when exactly two types appear twice."""
    return sum(1 for count in _type_counts(hand).values() if count == 2) == 2


def is_pair(hand: Sequence[Card]) -> bool:
    """True when exactly one type appears twice."""
    return sum(1 for count in _type_counts(hand).values() if count == 2) == 1


def round_points(hand: Sequence[Card], points: Points) -> int:
    """Points the hand scores this round: its best combination plus the fake penalty."""
    total = discount_for_fakes(hand, points)
    combinations = (
        (is_fake_poker, points.fake_poker),
        (is_poker, points.poker),
        (is_one_of_each, points.one_of_each),
        (is_full_house, points.full_house),
        (is_three_of_a_kind, points.three_of_a_kind),
        (is_two_pair, points.two_pair),
        (is_pair, points.pair),
    )
    for matches, award in combinations:
        if matches(hand):
            return total + award
    return total


def can_finish_round(hand: Sequence[Card]) -> bool:
    """True when the hand is good enough for its holder to end the round."""
    return is_fake_poker(hand) or is_one_of_each(hand) or is_poker(hand)


def deal_cards(
    player_ids: Iterable[int], rng: random.Random | None = None
) -> dict[int, list[Card]]:
    """Shuffle the real cards and four fakes together and deal five to each player.

    Raises ``ValueError`` when there are not enough cards for every player.
    """
    rng = rng if rng is not None else random.Random()

    fakes = list(AVAILABLE_FAKE_CARDS)
    rng.shuffle(fakes)
    selected: list[Card] = []
    for fake in fakes:
        if len(selected) >= _FAKES_PER_ROUND:
            break
        if fake not in selected:
            selected.append(fake)

    deck = [*AVAILABLE_REAL_CARDS, *selected]
    rng.shuffle(deck)

    cards = iter(deck)
    hands: dict[int, list[Card]] = {}
    for player_id in player_ids:
        hand = hands.setdefault(player_id, [])
        for _ in range(HAND_SIZE):
            try:
                hand.append(next(cards))
            except StopIteration:
                raise ValueError("not enough cards to deal to every player") from None
    return hands