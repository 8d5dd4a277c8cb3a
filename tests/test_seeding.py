"""Seed derivation and seeded generator tests.

测试分类：
- test_seed_*: 32 位回绕哈希
- test_random_*: sin 生成器与闭区间整数
"""
from __future__ import annotations

import pytest

from core.seeding import (
    combined_seed,
    file_seed,
    folder_seed,
    generate_seed,
    seeded_random,
    seeded_random_in_range,
    to_int32,
)


# ============================================================================
# Seed Derivation Tests
# ============================================================================


class TestGenerateSeed:
    """Test the 31-multiplier string hash with int32 wraparound."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("a.png", 91063068),
            ("a.pngexisting", 103865511),
            ("hello", 99162322),
            ("The quick brown fox jumps over the lazy dog", 609428141),
        ],
    )
    def test_seed_known_values(self, text: str, expected: int) -> None:
        assert generate_seed(text) == expected

    def test_seed_empty_string_is_zero(self) -> None:
        assert generate_seed("") == 0

    def test_seed_non_negative_and_stable(self) -> None:
        for text in ["x", "slide_01.png", "a" * 500, "Zürich.tif"]:
            seed = generate_seed(text)
            assert 0 <= seed <= 2**31
            assert generate_seed(text) == seed

    def test_seed_uses_utf16_code_units(self) -> None:
        """Astral characters hash as surrogate pairs."""
        assert generate_seed("😀.png") == 928399134
        assert generate_seed("é.png") == 216661924

    def test_seed_distinct_for_typical_names(self) -> None:
        seeds = {generate_seed(f"slide_{i:02d}.png") for i in range(100)}
        assert len(seeds) == 100

    def test_to_int32_wraps(self) -> None:
        assert to_int32(2**31) == -(2**31)
        assert to_int32(2**32 + 5) == 5
        assert to_int32(-1) == -1
        assert to_int32(2**31 - 1) == 2**31 - 1


class TestBatchSeeds:
    def test_folder_seed_ignores_upload_order(self) -> None:
        names = ["b.png", "c.png", "a.png"]
        assert folder_seed(names, "proposed") == folder_seed(sorted(names), "proposed")
        assert folder_seed(names, "proposed") == generate_seed("a.pngb.pngc.pngproposed")

    def test_folder_seed_depends_on_mode(self) -> None:
        assert folder_seed(["a.png"], "proposed") != folder_seed(["a.png"], "existing")

    def test_single_file_combined_seed_is_doubled(self) -> None:
        folder = folder_seed(["a.png"], "existing")
        assert folder == file_seed("a.png", "existing") == 103865511
        assert combined_seed(folder, "a.png", "existing") == 2 * 103865511


# ============================================================================
# Seeded Generator Tests
# ============================================================================


class TestSeededRandom:
    def test_random_known_values(self) -> None:
        assert seeded_random(0) == 0.0
        assert seeded_random(1) == pytest.approx(0.7098480789645691, abs=1e-9)
        assert seeded_random(2) == pytest.approx(0.9742682568175951, abs=1e-9)
        assert seeded_random(12345) == pytest.approx(0.2836354431892687, abs=1e-9)

    def test_random_in_unit_interval(self) -> None:
        for seed in range(0, 5000, 7):
            value = seeded_random(seed)
            assert 0.0 <= value < 1.0

    def test_random_is_pure(self) -> None:
        assert [seeded_random(s) for s in range(50)] == [seeded_random(s) for s in range(50)]

    def test_range_inclusive_bounds(self) -> None:
        values = {seeded_random_in_range(seed, 3, 6) for seed in range(2000)}
        assert values == {3, 4, 5, 6}

    def test_range_single_value(self) -> None:
        assert seeded_random_in_range(99, 7, 7) == 7

    def test_range_rejects_inverted_bounds(self) -> None:
        with pytest.raises(ValueError):
            seeded_random_in_range(1, 10, 5)
