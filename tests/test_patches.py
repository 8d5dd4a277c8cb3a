"""Whole-slide patch grid helpers: grid geometry, patch-number lookup and hover details."""
from __future__ import annotations

import pytest

from conftest import make_files
from core.analysis import run_batch
from core.patches import patch_cell, patch_detail, patch_grid_size, patch_index_from_number, patch_layout
from core.prognosis import RATIO_KINDS


class TestGridGeometry:
    @pytest.mark.parametrize(
        "total, size",
        [(0, 0), (1, 1), (2, 2), (4, 2), (5, 3), (9, 3), (10, 4), (20, 5)],
    )
    def test_grid_size_is_ceil_sqrt(self, total, size) -> None:
        assert patch_grid_size(total) == size

    def test_negative_total_rejected(self) -> None:
        with pytest.raises(ValueError):
            patch_grid_size(-1)

    def test_row_major_cells(self) -> None:
        assert patch_cell(0, 3) == (0, 0)
        assert patch_cell(2, 3) == (0, 2)
        assert patch_cell(7, 3) == (2, 1)
        with pytest.raises(ValueError):
            patch_cell(0, 0)

    def test_layout_of_twenty_patches(self, twenty_names) -> None:
        result = run_batch(make_files(twenty_names), "proposed")
        layout = patch_layout(result.patch_history)
        assert len(layout) == 20
        assert layout[0][:2] == (0, 0)
        assert layout[5][:2] == (1, 0)
        assert layout[-1][:2] == (3, 4)
        assert [p.patch_id for _, _, p in layout] == list(range(1, 21))


class TestPatchNumber:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1", 0),
            ("20", 19),
            (" 7abc", 6),
            ("2.9", 1),
            ("21", None),
            ("0", None),
            ("-3", None),
            ("", None),
            ("abc", None),
        ],
    )
    def test_number_to_index(self, text, expected) -> None:
        assert patch_index_from_number(text, 20) == expected

    def test_no_patches(self) -> None:
        assert patch_index_from_number("1", 0) is None


class TestPatchDetail:
    def test_hover_percentages_one_decimal(self, handles) -> None:
        result = run_batch(make_files(["a.png"]), "existing", handles)
        detail = patch_detail(result.patch_history[0])
        assert detail.patch_id == 1
        assert detail.file_name == "a.png"
        assert [value for _, value in detail.percentages] == ["24.1%", "11.0%", "29.9%", "10.9%", "4.7%", "19.5%"]
        assert detail.tooltip.splitlines()[0] == "Patch 1"
        assert "Tumor Cells: 19.5%" in detail.tooltip

    def test_ratios_come_from_patch_percentages(self) -> None:
        result = run_batch(make_files(["a.png"]), "existing")
        detail = patch_detail(result.patch_history[0])
        assert [kind for kind, _, _ in detail.ratios] == list(RATIO_KINDS)
        values = {kind: value for kind, value, _ in detail.ratios}
        assert values["m1-m2"] == pytest.approx(29.86 / 10.87)
        assert values["macrophage-neutrophil"] == pytest.approx((29.86 + 10.87) / (24.06 + 10.96))
        results = [analysis.result for _, _, analysis in detail.ratios]
        assert results == [
            "Worst Prognosis",
            "Strong Anti-Tumor Response",
            "Anti-Tumor Immune Activity",
            "More Damaged Tissue",
            "Worst Prognosis",
        ]

    def test_percentages_match_image(self, twenty_names) -> None:
        result = run_batch(make_files(twenty_names), "proposed")
        for image, patch in zip(result.images, result.patch_history):
            assert patch.percentages() == image.percentages
