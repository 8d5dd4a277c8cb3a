"""整张切片的 patch 网格视图辅助函数。

每个输入图像对应一个 patch，按行优先排成尽量接近正方形的网格。
编号对外是 1-based，内部索引是 0-based。
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .models import CELL_LABELS, CELL_TYPES, PatchRecord
from .prognosis import ClinicalRatios, RatioInterpretation
from .synthesis import round_half_up

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def patch_grid_size(total_patches: int) -> int:
    """网格边长 ceil(sqrt(N))，N 为 0 时返回 0。"""

    if total_patches < 0:
        raise ValueError("total_patches must be >= 0")
    return math.ceil(math.sqrt(total_patches))


def patch_cell(index: int, grid_size: int) -> Tuple[int, int]:
    """0-based 索引 → (row, col)，行优先。"""

    if grid_size < 1:
        raise ValueError("grid_size must be >= 1")
    return divmod(index, grid_size)


def patch_index_from_number(text: str, total_patches: int) -> Optional[int]:
    """解析用户输入的 patch 编号（1..N），返回 0-based 索引；非法或越界返回 None。

    只取开头的整数部分，"7abc" 视为 7，"2.9" 视为 2。
    """

    match = _LEADING_INT.match(text)
    if match is None:
        return None
    number = int(match.group(1))
    if 1 <= number <= total_patches:
        return number - 1
    return None


@dataclass(frozen=True)
class PatchDetail:
    patch_id: int
    file_name: Optional[str]
    percentages: List[Tuple[str, str]]
    ratios: List[Tuple[str, float, RatioInterpretation]]

    @property
    def tooltip(self) -> str:
        lines = [f"Patch {self.patch_id}"]
        lines.extend(f"{label}: {value}" for label, value in self.percentages)
        return "\n".join(lines)


def patch_detail(patch: PatchRecord) -> PatchDetail:
    """悬停提示用的六类百分比（一位小数）以及该 patch 的临床比值解读。"""

    pct = patch.percentages()
    rows = [(CELL_LABELS[name], f"{round_half_up(getattr(pct, name), 1):.1f}%") for name in CELL_TYPES]
    return PatchDetail(
        patch_id=patch.patch_id,
        file_name=patch.file_name,
        percentages=rows,
        ratios=ClinicalRatios.from_percentages(pct).interpretations(),
    )


def patch_layout(patches: Sequence[PatchRecord]) -> List[Tuple[int, int, PatchRecord]]:
    grid = patch_grid_size(len(patches))
    return [(*patch_cell(i, grid), patch) for i, patch in enumerate(patches)]
