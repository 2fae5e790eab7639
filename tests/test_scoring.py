import random
from collections import Counter

import pytest

from fakepoker.config import Points
from fakepoker.models import AVAILABLE_FAKE_CARDS, AVAILABLE_REAL_CARDS, Card
from fakepoker.scoring import (
    can_finish_round,
    deal_cards,
    discount_for_fakes,
    is_fake_poker,
    is_full_house,
    is_one_of_each,
    is_pair,
    is_poker,
    is_three_of_a_kind,
    is_two_pair,
    round_points,
)

POINTS = Points()


def real(kind, number=1):
    return Card(id=number, type=kind, is_real=True)


def fake(kind):
    return Card(id=1, type=kind, is_real=False)


FAKE_POKER_HAND = [fake(1), fake(2), fake(3), fake(4), real(1)]
POKER_HAND = [real(1, 1), real(1, 2), real(1, 3), real(1, 4), fake(2)]
ONE_OF_EACH_HAND = [real(1), real(2), real(3), fake(4), real(4, 2)]
FULL_HOUSE_HAND = [real(1, 1), real(1, 2), fake(1), real(2, 1), real(2, 2)]
THREE_HAND = [real(1, 1), real(1, 2), fake(1), real(2, 1), real(3, 1)]
TWO_PAIR_HAND = [real(1, 1), fake(1), real(2, 1), real(2, 2), real(3, 1)]
PAIR_HAND = [real(1, 1), fake(1), real(2, 1), real(3, 1), real(3, 2), ]


def test_discount_values_from_settings():
    assert discount_for_fakes([fake(1), real(2)], POINTS) == POINTS.fake_one
    assert discount_for_fakes([fake(1), fake(2), real(2)], POINTS) == POINTS.fake_two
    assert discount_for_fakes([fake(1), fake(2), fake(3)], POINTS) == POINTS.fake_three
    assert discount_for_fakes(FAKE_POKER_HAND, POINTS) == 0


def test_discount_default_for_one_fake_is_fixed():
    assert discount_for_fakes([fake(3), real(1)], Points()) == -250


def test_discount_without_fakes_raises():
    with pytest.raises(ValueError):
        discount_for_fakes([real(1), real(2)], POINTS)


def test_discount_with_too_many_fakes_raises():
    with pytest.raises(ValueError):
        discount_for_fakes([fake(1)] * 5, POINTS)


def test_fake_poker_detection():
    assert is_fake_poker(FAKE_POKER_HAND)
    assert not is_fake_poker(POKER_HAND)


def test_poker_detection():
    assert is_poker(POKER_HAND)
    assert not is_poker(FULL_HOUSE_HAND)


def test_poker_with_highest_type():
    hand = [real(4, 1), real(4, 2), real(4, 3), real(4, 4), fake(1)]
    assert is_poker(hand)


def test_one_of_each_detection():
    assert is_one_of_each(ONE_OF_EACH_HAND)
    assert not is_one_of_each(TWO_PAIR_HAND)


def test_full_house_detection():
    assert is_full_house(FULL_HOUSE_HAND)
    assert not is_full_house(TWO_PAIR_HAND)
    assert not is_full_house(POKER_HAND)


def test_three_of_a_kind_detection():
    assert is_three_of_a_kind(THREE_HAND)
    assert is_three_of_a_kind(FULL_HOUSE_HAND)
    assert not is_three_of_a_kind(PAIR_HAND)


def test_two_pair_detection():
    assert is_two_pair(TWO_PAIR_HAND)
    assert not is_two_pair(THREE_HAND)


def test_pair_detection():
    assert is_pair(THREE_HAND)
    assert not is_pair(TWO_PAIR_HAND)
    assert not is_pair([real(1), real(2), real(3), fake(4), real(1, 2), real(2, 2)][2:])


@pytest.mark.parametrize(
    "hand, award",
    [
        (FAKE_POKER_HAND, POINTS.fake_poker),
        (POKER_HAND, POINTS.poker),
        (ONE_OF_EACH_HAND, POINTS.one_of_each),
        (FULL_HOUSE_HAND, POINTS.full_house),
        (THREE_HAND, POINTS.three_of_a_kind),
        (TWO_PAIR_HAND, POINTS.two_pair),
    ],
)
def test_round_points_picks_best_combination(hand, award):
    assert round_points(hand, POINTS) == award + discount_for_fakes(hand, POINTS)


def test_round_points_fake_poker_default_is_fixed():
    assert round_points(FAKE_POKER_HAND, Points()) == 8000


def test_round_points_without_combination_is_only_discount():
    hand = [real(1), real(2), real(3), fake(3)]
    assert not any(
        check(hand)
        for check in (is_fake_poker, is_poker, is_one_of_each, is_full_house,
                      is_three_of_a_kind, is_two_pair, is_pair)
    )
    assert round_points(hand, POINTS) == POINTS.fake_one


def test_round_points_uses_given_settings():
    custom = Points(pair=7, fake_one=-1)
    hand = [real(1, 1), real(1, 2), fake(2), real(3), ]
    assert round_points(hand, custom) == custom.pair + custom.fake_one


def test_can_finish_round():
    assert can_finish_round(FAKE_POKER_HAND)
    assert can_finish_round(POKER_HAND)
    assert can_finish_round(ONE_OF_EACH_HAND)
    assert not can_finish_round(FULL_HOUSE_HAND)
    assert not can_finish_round(PAIR_HAND)


def test_deal_four_players_uses_whole_deck():
    hands = deal_cards([1, 2, 3, 4], random.Random(7))
    assert sorted(hands) == [1, 2, 3, 4]
    assert all(len(hand) == 5 for hand in hands.values())
    dealt = Counter(card for hand in hands.values() for card in hand)
    expected = Counter([*AVAILABLE_REAL_CARDS, *AVAILABLE_FAKE_CARDS])
    assert dealt == expected


def test_deal_is_reproducible_with_seed():
    first = deal_cards([3, 5], random.Random(42))
    second = deal_cards([3, 5], random.Random(42))
    assert sorted(first) == [3, 5]
    assert all(len(hand) == 5 for hand in first.values())
    deck = set(AVAILABLE_REAL_CARDS) | set(AVAILABLE_FAKE_CARDS)
    assert all(card in deck for hand in first.values() for card in hand)
    assert {key: list(hand) for key, hand in first.items()} == {
        key: list(hand) for key, hand in second.items()
    }


def test_deal_fewer_players_gives_distinct_cards():
    hands = deal_cards([10, 20], random.Random(1))
    cards = [card for hand in hands.values() for card in hand]
    assert len(cards) == 10
    assert len(set(cards)) == 10


def test_deal_too_many_players_raises():
    with pytest.raises(ValueError):
        deal_cards([1, 2, 3, 4, 5], random.Random(0))