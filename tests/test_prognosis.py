"""Clinical ratio and prognosis tier tests."""
from __future__ import annotations

import pytest

from core.models import CellCounts, CellPercentages
from core.prognosis import RATIO_KINDS, ClinicalRatios, interpret_ratio, prognosis_from_counts
from core.synthesis import compute_percentages


class TestClinicalRatios:
    def test_from_counts(self) -> None:
        ratios = ClinicalRatios.from_counts(CellCounts(270, 123, 335, 122, 53, 219))
        assert ratios.macrophage_neutrophil == pytest.approx(457 / 393)
        assert ratios.m1_m2 == pytest.approx(335 / 122)
        assert ratios.n1_n2 == pytest.approx(270 / 123)
        assert ratios.macrophage_necrosis == pytest.approx(457 / 53)
        assert ratios.neutrophil_necrosis == pytest.approx(393 / 53)

    def test_zero_denominators_coerced_to_one(self) -> None:
        ratios = ClinicalRatios.from_values(n1=4, n2=0, m1=6, m2=0, necrosis=0)
        assert ratios.m1_m2 == 6
        assert ratios.n1_n2 == 4
        assert ratios.macrophage_necrosis == 6
        assert ratios.neutrophil_necrosis == 4
        assert ClinicalRatios.from_values(0, 0, 3, 2, 1).macrophage_neutrophil == 5

    def test_percentage_ratios_track_count_ratios(self) -> None:
        counts = CellCounts(199, 356, 173, 370, 141, 452)
        from_counts = ClinicalRatios.from_counts(counts).as_dict()
        from_pct = ClinicalRatios.from_percentages(compute_percentages(counts)).as_dict()
        for kind in RATIO_KINDS:
            assert from_pct[kind] == pytest.approx(from_counts[kind], rel=2e-3)

    def test_interpretations_cover_all_kinds(self) -> None:
        rows = ClinicalRatios.from_percentages(CellPercentages(20, 10, 25, 15, 5, 25)).interpretations()
        assert [kind for kind, _, _ in rows] == list(RATIO_KINDS)


class TestInterpretRatio:
    @pytest.mark.parametrize(
        "kind, above, below",
        [
            ("macrophage-neutrophil", ("Worst Prognosis", False), ("Better Immune Response", True)),
            ("m1-m2", ("Strong Anti-Tumor Response", True), ("Immune Suppression", False)),
            ("n1-n2", ("Anti-Tumor Immune Activity", True), ("Tumor Promoting", False)),
            ("macrophage-necrosis", ("More Damaged Tissue", False), ("Blocking Tumor Spread", True)),
            ("neutrophil-necrosis", ("Worst Prognosis", False), ("Good Prognosis", True)),
        ],
    )
    def test_rules(self, kind, above, below) -> None:
        hi = interpret_ratio(1.5, kind)
        lo = interpret_ratio(0.5, kind)
        assert (hi.result, hi.is_positive) == above
        assert (lo.result, lo.is_positive) == below

    def test_exactly_one_counts_as_below(self) -> None:
        assert interpret_ratio(1.0, "m1-m2").result == "Immune Suppression"

    def test_unknown_kind(self) -> None:
        analysis = interpret_ratio(2.0, "tumor-stroma")
        assert analysis.result == "Unknown"
        assert not analysis.is_positive


class TestPrognosis:
    @pytest.mark.parametrize(
        "counts, label, value",
        [
            ((270, 123, 335, 122, 53, 219), "Good", 77),
            ((199, 356, 173, 370, 141, 452), "Moderate", 40),
            ((249, 248, 246, 291, 214, 396), "Moderate", 45),
            ((100, 100, 100, 100, 100, 100), "Moderate", 47),
        ],
    )
    def test_recorded_tiers(self, counts, label, value) -> None:
        tier = prognosis_from_counts(CellCounts(*counts))
        assert (tier.label, tier.value) == (label, value)
        assert tier.percentage == f"{value}%"

    def test_good_tier_capped(self) -> None:
        tier = prognosis_from_counts(CellCounts(500, 1, 500, 1, 1, 1))
        assert tier == type(tier)("Good", 85)

    def test_less_tier_floor(self) -> None:
        tier = prognosis_from_counts(CellCounts(1, 300, 1, 300, 50, 600))
        assert tier.label == "Less"
        assert tier.value == 15

    def test_less_tier_value(self) -> None:
        # anti 20%, pro 76%: 35 - 56 * 0.3
        tier = prognosis_from_counts(CellCounts(100, 260, 100, 200, 40, 300))
        assert (tier.label, tier.value) == ("Less", 18)
