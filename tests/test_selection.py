"""Seeded shuffle and good-survival selector tests."""
from __future__ import annotations

import math

import pytest

from core.seeding import folder_seed
from core.selection import candidate_pool, seeded_shuffle, select_good_survival_indices


class TestSeededShuffle:
    def test_known_permutations(self) -> None:
        assert seeded_shuffle(list(range(10)), 42) == [1, 8, 6, 0, 5, 4, 7, 3, 9, 2]
        assert seeded_shuffle(list(range(4, 16)), 12345) == [8, 11, 13, 10, 5, 14, 9, 4, 7, 15, 6, 12]

    def test_is_permutation_and_input_untouched(self) -> None:
        items = list(range(25))
        shuffled = seeded_shuffle(items, 7)
        assert sorted(shuffled) == items
        assert items == list(range(25))

    def test_order_sensitive(self) -> None:
        assert seeded_shuffle([1, 2, 3, 4, 5], 11) != seeded_shuffle([5, 4, 3, 2, 1], 11)

    def test_trivial_inputs(self) -> None:
        assert seeded_shuffle([], 3) == []
        assert seeded_shuffle([9], 3) == [9]


class TestCandidatePool:
    def test_interior_window(self) -> None:
        assert candidate_pool(20, 5) == list(range(4, 16))

    def test_fallback_skips_leading_indices(self) -> None:
        # 6 files: window [1, 4) has 3 < 5 entries, fall back to range(6)[1:]
        assert candidate_pool(6, 5) == [1, 2, 3, 4, 5]
        assert candidate_pool(7, 5) == [2, 3, 4, 5, 6]

    def test_fallback_small_batches_use_everything(self) -> None:
        for n in range(1, 6):
            assert candidate_pool(n, n) == list(range(n))


class TestGoodSurvivalSelector:
    @pytest.mark.parametrize("n", list(range(1, 41)))
    def test_set_size(self, n: int) -> None:
        selected = select_good_survival_indices(n, 1234 + n)
        assert len(selected) == min(5, n)
        assert all(0 <= i < n for i in selected)

    @pytest.mark.parametrize("n", [10, 12, 20, 33, 100])
    def test_interior_bias(self, n: int) -> None:
        selected = select_good_survival_indices(n, 987654)
        assert all(math.floor(0.2 * n) <= i < math.floor(0.8 * n) for i in selected)

    @pytest.mark.parametrize(
        "n, expected",
        [(1, {0}), (5, {0, 1, 2, 3, 4}), (6, {1, 2, 3, 4, 5}), (7, {2, 3, 4, 5, 6}), (9, {1, 3, 4, 5, 6}), (12, {3, 4, 5, 6, 7})],
    )
    def test_recorded_selections(self, n: int, expected: set[int]) -> None:
        names = [f"img{i}.tif" for i in range(n)]
        assert select_good_survival_indices(n, folder_seed(names, "existing")) == expected

    def test_twenty_files_scenario(self, twenty_names) -> None:
        seed = folder_seed(twenty_names, "proposed")
        assert seed == 30044568
        assert select_good_survival_indices(20, seed) == {5, 6, 8, 11, 12}

    def test_rejects_empty_batch(self) -> None:
        with pytest.raises(ValueError):
            select_good_survival_indices(0, 1)
