"""Tests for the seeded RNG and the weighted sampler."""

import pytest

from game.rng import seeded_random, weighted_sample


class TestSeededRandom:
    def test_same_seed_same_sequence(self):
        a = seeded_random("user-1-1700000000000-salt")
        b = seeded_random("user-1-1700000000000-salt")
        assert [a() for _ in range(50)] == [b() for _ in range(50)]

    def test_different_seeds_diverge(self):
        a = seeded_random("seed-a")
        b = seeded_random("seed-b")
        assert [a() for _ in range(10)] != [b() for _ in range(10)]

    def test_values_in_unit_interval(self):
        rand = seeded_random("range-check")
        for _ in range(2000):
            value = rand()
            assert 0.0 <= value < 1.0

    def test_empty_seed_still_produces_values(self):
        rand = seeded_random("")
        values = {rand() for _ in range(20)}
        assert len(values) > 1


class TestWeightedSample:
    def test_empty_items_raise(self):
        with pytest.raises(ValueError):
            weighted_sample([], [], lambda: 0.5)

    def test_picks_by_cumulative_weight(self):
        items = ["a", "b", "c"]
        weights = [1, 2, 1]
        assert weighted_sample(items, weights, lambda: 0.0) == "a"
        assert weighted_sample(items, weights, lambda: 0.3) == "b"
        assert weighted_sample(items, weights, lambda: 0.9) == "c"

    def test_boundary_goes_to_next_item(self):
        # r == acc is not "inside" the first bucket
        assert weighted_sample(["a", "b"], [1, 1], lambda: 0.5) == "b"

    def test_rounding_shortfall_falls_back_to_last(self):
        assert weighted_sample(["a", "b"], [0.1, 0.2], lambda: 0.9999999999999999) == "b"

    def test_weights_need_not_sum_to_one(self):
        assert weighted_sample(["x", "y"], [10, 30], lambda: 0.2) == "x"
        assert weighted_sample(["x", "y"], [10, 30], lambda: 0.3) == "y"
