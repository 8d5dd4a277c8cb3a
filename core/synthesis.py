"""单张图像的合成：计数 → 百分比 → 生存率 → 评估指标。

计数区间按 (mode, 是否为好生存率 patch) 查表，区间字面值是结果可复现的一部分，
修改任何一个数字都会改变已记录的 golden 输出。

种子通道（相对 combined seed 的偏移）：
- +1..+6   六类细胞基础计数
- +7..+12  proposed 模式普通 patch 的增量
- +13/+14/+15  precision / recall / R²
- +16..+19 混淆矩阵
- +20/+30/+40/+50 (+i)  历史曲线的抖动项
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .models import (
    AnalysisMode,
    CellCounts,
    CellPercentages,
    ConfusionEntry,
    DisplayHandleProvider,
    EvaluationMetrics,
    ImageAnalysisResult,
    InputFile,
    MetricsPoint,
    validate_mode,
)
from .seeding import combined_seed, seeded_random, seeded_random_in_range

Range = Tuple[int, int]

# (n1, n2, m1, m2, necrosis, tumor_cells)
COUNT_RANGES: Dict[Tuple[str, bool], Tuple[Range, ...]] = {
    ("existing", True): ((200, 400), (50, 150), (180, 350), (80, 200), (30, 100), (100, 250)),
    ("proposed", True): ((250, 450), (40, 120), (220, 380), (70, 180), (25, 90), (80, 200)),
    ("existing", False): ((50, 250), (100, 350), (80, 260), (150, 450), (50, 200), (200, 600)),
    ("proposed", False): ((50, 250), (100, 350), (80, 260), (150, 450), (50, 200), (200, 600)),
}

# proposed 模式普通 patch 在基础计数上叠加的增量
VARIATION_RANGES: Dict[Tuple[str, bool], Tuple[Range, ...]] = {
    ("proposed", False): ((10, 80), (10, 50), (20, 80), (15, 45), (25, 75), (15, 80)),
}

COUNT_CHANNEL = 1
VARIATION_CHANNEL = 7
PRECISION_CHANNEL = 13
RECALL_CHANNEL = 14
R_SQUARED_CHANNEL = 15
CONFUSION_CHANNEL = 16

CONFUSION_RANGES: Tuple[Tuple[str, Range], ...] = (
    ("True Positive", (70, 90)),
    ("False Positive", (5, 20)),
    ("False Negative", (5, 20)),
    ("True Negative", (70, 90)),
)

HISTORY_LENGTH = 10
# metric -> (种子通道, 起点, 增幅)
HISTORY_RAMPS: Dict[str, Tuple[int, float, float]] = {
    "precision": (20, 0.5, 0.3),
    "recall": (30, 0.45, 0.35),
    "f1_score": (40, 0.48, 0.32),
    "r_squared": (50, 0.4, 0.4),
}
HISTORY_JITTER = 0.1

SURVIVAL_MIN = 10.0
SURVIVAL_MAX = 95.0


def round_half_up(value: float, digits: int) -> float:
    """按浮点数的精确二进制值四舍五入（定点格式化的进位方式，不是银行家舍入）。"""

    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def draw_counts(seed: int, mode: AnalysisMode, selected: bool) -> CellCounts:
    """按查表区间抽取六类计数；proposed 普通 patch 额外叠加增量。"""

    ranges = COUNT_RANGES[(mode, selected)]
    values = [
        seeded_random_in_range(seed + COUNT_CHANNEL + k, lo, hi) for k, (lo, hi) in enumerate(ranges)
    ]
    variations = VARIATION_RANGES.get((mode, selected))
    if variations:
        values = [
            value + seeded_random_in_range(seed + VARIATION_CHANNEL + k, lo, hi)
            for k, (value, (lo, hi)) in enumerate(zip(values, variations))
        ]
    return CellCounts(*values)


def compute_percentages(counts: CellCounts) -> CellPercentages:
    total = counts.total
    if total <= 0:
        raise ValueError("cell counts must sum to a positive total")
    return CellPercentages(*(round_half_up(value / total * 100, 2) for value in counts.as_tuple()))


def compute_survival_rate(counts: CellCounts) -> float:
    """抗肿瘤 (N1+M1) 占比换算的生存率，限制在 [10, 95]，保留一位小数。"""

    total = counts.total
    good_ratio = (counts.n1 + counts.m1) / total
    bad_ratio = (counts.n2 + counts.m2 + counts.necrosis + counts.tumor_cells) / total
    rate = min(max(good_ratio / (good_ratio + bad_ratio) * 100, SURVIVAL_MIN), SURVIVAL_MAX)
    return round_half_up(rate, 1)


def harmonic_mean(precision: float, recall: float) -> float:
    return 2 * (precision * recall) / (precision + recall)


def build_history(seed: int) -> List[MetricsPoint]:
    """10 点训练曲线：从起点线性爬升，每个 (指标, 步) 有独立的抖动。"""

    points: List[MetricsPoint] = []
    for i in range(HISTORY_LENGTH):
        values = {
            name: start + (i / (HISTORY_LENGTH - 1)) * span + seeded_random(seed + channel + i) * HISTORY_JITTER
            for name, (channel, start, span) in HISTORY_RAMPS.items()
        }
        points.append(MetricsPoint(iteration=i + 1, **values))
    return points


def build_metrics(seed: int) -> EvaluationMetrics:
    precision = 0.75 + seeded_random(seed + PRECISION_CHANNEL) * 0.15
    recall = 0.70 + seeded_random(seed + RECALL_CHANNEL) * 0.20
    r_squared = 0.65 + seeded_random(seed + R_SQUARED_CHANNEL) * 0.25
    confusion = [
        ConfusionEntry(name, seeded_random_in_range(seed + CONFUSION_CHANNEL + k, lo, hi))
        for k, (name, (lo, hi)) in enumerate(CONFUSION_RANGES)
    ]
    return EvaluationMetrics(
        confusion_matrix=confusion,
        history=build_history(seed),
        final_precision=precision,
        final_recall=recall,
        final_f1_score=harmonic_mean(precision, recall),
        final_r_squared=r_squared,
    )


def synthesize_image(
    file: InputFile,
    folder_seed: int,
    image_index: int,
    total_images: int,
    good_survival_indices: FrozenSet[int],
    mode: AnalysisMode,
    handle_provider: Optional[DisplayHandleProvider] = None,
) -> ImageAnalysisResult:
    """为单个文件生成确定性的分析结果。

    除了向 handle_provider 申请一个显示句柄外没有其他副作用；
    total_images 只用于参数检查。
    """

    validate_mode(mode)
    if not 0 <= image_index < total_images:
        raise ValueError(f"image_index {image_index} out of range for {total_images} images")

    seed = combined_seed(folder_seed, file.name, mode)
    counts = draw_counts(seed, mode, image_index in good_survival_indices)
    handle: Any = handle_provider.acquire(file.data) if handle_provider is not None else None

    return ImageAnalysisResult(
        counts=counts,
        percentages=compute_percentages(counts),
        survival_rate=compute_survival_rate(counts),
        file_name=file.name,
        image_handle=handle,
        metrics=build_metrics(seed),
    )
