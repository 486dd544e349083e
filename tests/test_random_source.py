import os
import sys

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from world.random_source import MAX_GENERATED_SEED, SeededRandom


def test_same_seed_same_sequence():
    a = SeededRandom(12345)
    b = SeededRandom(12345)
    assert [a.random() for _ in range(20)] == [b.random() for _ in range(20)]
    assert [a.random_int(0, 9) for _ in range(20)] == [b.random_int(0, 9) for _ in range(20)]


def test_different_seeds_diverge():
    a = SeededRandom(1)
    b = SeededRandom(2)
    assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]


def test_random_int_is_inclusive():
    rng = SeededRandom(7)
    draws = {rng.random_int(3, 6) for _ in range(500)}
    assert draws == {3, 4, 5, 6}


def test_random_float_range():
    rng = SeededRandom(7)
    for _ in range(200):
        value = rng.random_float(2.0, 3.0)
        assert 2.0 <= value < 3.0


def test_shuffle_returns_same_list_permuted():
    rng = SeededRandom(99)
    items = list(range(10))
    result = rng.shuffle(items)
    assert result is items
    assert sorted(result) == list(range(10))


def test_choice_empty_raises():
    with pytest.raises(IndexError):
        SeededRandom(1).choice([])


def test_unseeded_picks_a_fresh_seed():
    rng = SeededRandom()
    assert 1 <= rng.seed <= MAX_GENERATED_SEED
    replay = SeededRandom(rng.seed)
    assert rng.random() == replay.random()
