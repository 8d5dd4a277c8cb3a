"""肿瘤微环境模拟分析的数据模型。

定义输入文件、细胞计数、百分比、评估指标以及批量分析结果的数据结构。
计数为整数，百分比统一为 0–100 的浮点数（保留两位小数）。

Classes:
    InputFile: 已通过上传校验的单个输入文件
    CellCounts: 六类细胞的原始计数
    CellPercentages: 六类细胞占比
    ConfusionEntry / MetricsPoint / EvaluationMetrics: 合成的评估指标
    ImageAnalysisResult: 单张图像的分析结果
    PatchRecord: 与图像结果一一对应的 patch 记录
    BatchResult: 一次分析运行的完整结果
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, List, Literal, Optional, Protocol, cast

AnalysisMode = Literal["proposed", "existing"]
ANALYSIS_MODES: tuple[str, ...] = ("proposed", "existing")

CELL_TYPES: tuple[str, ...] = ("n1", "n2", "m1", "m2", "necrosis", "tumor_cells")
CELL_LABELS: dict[str, str] = {
    "n1": "N1",
    "n2": "N2",
    "m1": "M1",
    "m2": "M2",
    "necrosis": "Necrosis",
    "tumor_cells": "Tumor Cells",
}


def validate_mode(mode: str) -> AnalysisMode:
    """检查分析模式是否合法，返回原值。"""

    if mode not in ANALYSIS_MODES:
        raise ValueError(f"mode must be one of {ANALYSIS_MODES}, got {mode!r}")
    return cast(AnalysisMode, mode)


class DisplayHandleProvider(Protocol):
    """显示层能力：原始字节 → 不透明显示句柄，以及对应的释放操作。"""

    def acquire(self, data: bytes) -> Any: ...

    def release(self, handle: Any) -> None: ...


@dataclass(frozen=True)
class InputFile:
    """上传层交给核心的文件：名称、字节大小与原始字节。"""

    name: str
    size: int
    data: bytes = b""
    content_type: Optional[str] = None


@dataclass(frozen=True)
class CellCounts:
    """六类细胞的原始计数，`total` 恒大于 0（由取值区间下限保证）。"""

    n1: int
    n2: int
    m1: int
    m2: int
    necrosis: int
    tumor_cells: int

    @property
    def total(self) -> int:
        return self.n1 + self.n2 + self.m1 + self.m2 + self.necrosis + self.tumor_cells

    def as_tuple(self) -> tuple[int, ...]:
        return tuple(getattr(self, name) for name in CELL_TYPES)


@dataclass(frozen=True)
class CellPercentages:
    """六类细胞的百分比，总和约为 100。"""

    n1: float
    n2: float
    m1: float
    m2: float
    necrosis: float
    tumor_cells: float

    def as_tuple(self) -> tuple[float, ...]:
        return tuple(getattr(self, name) for name in CELL_TYPES)

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in CELL_TYPES}


@dataclass(frozen=True)
class ConfusionEntry:
    name: str
    value: int


@dataclass(frozen=True)
class MetricsPoint:
    """训练曲线上的一个点，iteration 从 1 开始。"""

    iteration: int
    precision: float
    recall: float
    f1_score: float
    r_squared: float


@dataclass(frozen=True)
class EvaluationMetrics:
    """合成的评估指标：混淆矩阵、10 点历史曲线以及最终指标。"""

    confusion_matrix: List[ConfusionEntry]
    history: List[MetricsPoint]
    final_precision: float
    final_recall: float
    final_f1_score: float
    final_r_squared: float


@dataclass(frozen=True)
class ImageAnalysisResult:
    """单张图像的分析结果；image_handle 为显示层提供的不透明句柄。"""

    counts: CellCounts
    percentages: CellPercentages
    survival_rate: float
    file_name: str
    image_handle: Any
    metrics: EvaluationMetrics


@dataclass(frozen=True)
class PatchRecord:
    """patch 历史中的一条记录，六个百分比与对应图像结果完全一致。"""

    patch_id: int
    n1: float
    n2: float
    m1: float
    m2: float
    necrosis: float
    tumor_cells: float
    image_handle: Any = None
    file_name: Optional[str] = None

    @classmethod
    def from_image(cls, patch_id: int, image: ImageAnalysisResult) -> "PatchRecord":
        """直接复制图像结果中的百分比，不重新计算。"""

        pct = image.percentages
        return cls(
            patch_id=patch_id,
            n1=pct.n1,
            n2=pct.n2,
            m1=pct.m1,
            m2=pct.m2,
            necrosis=pct.necrosis,
            tumor_cells=pct.tumor_cells,
            image_handle=image.image_handle,
            file_name=image.file_name,
        )

    def percentages(self) -> CellPercentages:
        return CellPercentages(*(getattr(self, name) for name in CELL_TYPES))


@dataclass(frozen=True)
class BatchResult:
    """一次分析运行的完整结果，整体构造后不可变（仅 current_image_index 可替换）。"""

    images: List[ImageAnalysisResult]
    current_image_index: int
    patch_history: List[PatchRecord]
    overall_metrics: EvaluationMetrics
    mode: AnalysisMode = "proposed"
    folder_seed: int = 0
    good_survival_indices: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def current_image(self) -> ImageAnalysisResult:
        return self.images[self.current_image_index]

    @property
    def image_count(self) -> int:
        return len(self.images)

    def summary_dict(self) -> dict:
        """以 dict 形式导出主要指标，便于日志或 JSON 序列化。"""

        metrics = self.overall_metrics
        return {
            "mode": self.mode,
            "image_count": self.image_count,
            "folder_seed": self.folder_seed,
            "good_survival_indices": sorted(self.good_survival_indices),
            "final_precision": metrics.final_precision,
            "final_recall": metrics.final_recall,
            "final_f1_score": metrics.final_f1_score,
            "final_r_squared": metrics.final_r_squared,
            "mean_survival_rate": sum(img.survival_rate for img in self.images) / self.image_count,
        }
