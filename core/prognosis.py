"""临床比值与预后分级。

比值既可以从原始计数计算，也可以从百分比（PatchRecord）计算；
由于百分比是同一分母下的缩放，两种来源的比值只差舍入误差。
分母为 0 时按 1 处理。
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Union

from .models import CellCounts, CellPercentages, PatchRecord

Number = Union[int, float]

RATIO_KINDS: tuple[str, ...] = (
    "macrophage-neutrophil",
    "m1-m2",
    "n1-n2",
    "macrophage-necrosis",
    "neutrophil-necrosis",
)

RATIO_LABELS: Dict[str, str] = {
    "macrophage-neutrophil": "Macrophage:Neutrophil",
    "m1-m2": "M1:M2",
    "n1-n2": "N1:N2",
    "macrophage-necrosis": "Macrophage:Necrosis",
    "neutrophil-necrosis": "Neutrophil:Necrosis",
}


@dataclass(frozen=True)
class RatioInterpretation:
    result: str
    interpretation: str
    is_positive: bool


# kind -> (ratio > 1 的解读, ratio <= 1 的解读)
_RATIO_RULES: Dict[str, tuple[RatioInterpretation, RatioInterpretation]] = {
    "macrophage-neutrophil": (
        RatioInterpretation(
            "Worst Prognosis",
            "Macrophage to neutrophil ratio > 1 indicates poor clinical outcome with increased tumor progression.",
            False,
        ),
        RatioInterpretation(
            "Better Immune Response",
            "Macrophage to neutrophil ratio < 1 suggests more effective immune response against tumor cells.",
            True,
        ),
    ),
    "m1-m2": (
        RatioInterpretation(
            "Strong Anti-Tumor Response",
            "M1 to M2 ratio > 1 indicates dominant anti-tumor activity with better prognosis.",
            True,
        ),
        RatioInterpretation(
            "Immune Suppression",
            "M1 to M2 ratio < 1 suggests immune suppression and potential tumor progression.",
            False,
        ),
    ),
    "n1-n2": (
        RatioInterpretation(
            "Anti-Tumor Immune Activity",
            "N1 to N2 ratio > 1 shows effective anti-tumor neutrophil activity, potentially slowing tumor growth.",
            True,
        ),
        RatioInterpretation(
            "Tumor Promoting",
            "N1 to N2 ratio < 1 indicates dominance of tumor-promoting neutrophils, associated with worse outcomes.",
            False,
        ),
    ),
    "macrophage-necrosis": (
        RatioInterpretation(
            "More Damaged Tissue",
            "Macrophage to necrosis ratio > 1 suggests extensive tissue damage and inflammation.",
            False,
        ),
        RatioInterpretation(
            "Blocking Tumor Spread",
            "Macrophage to necrosis ratio < 1 may indicate better containment of tumor cells.",
            True,
        ),
    ),
    "neutrophil-necrosis": (
        RatioInterpretation(
            "Worst Prognosis",
            "Neutrophil to necrosis ratio > 1 correlates with worse clinical outcomes in ovarian cancer.",
            False,
        ),
        RatioInterpretation(
            "Good Prognosis",
            "Neutrophil to necrosis ratio < 1 is associated with better survival rates.",
            True,
        ),
    ),
}

_UNKNOWN = RatioInterpretation("Unknown", "No analysis available for this ratio.", False)


def _safe_div(num: Number, den: Number) -> float:
    return num / (den or 1)


@dataclass(frozen=True)
class ClinicalRatios:
    """五个临床比值，字段顺序与 RATIO_KINDS 一致。"""

    macrophage_neutrophil: float
    m1_m2: float
    n1_n2: float
    macrophage_necrosis: float
    neutrophil_necrosis: float

    @classmethod
    def from_values(cls, n1: Number, n2: Number, m1: Number, m2: Number, necrosis: Number) -> "ClinicalRatios":
        macrophages = m1 + m2
        neutrophils = n1 + n2
        return cls(
            macrophage_neutrophil=_safe_div(macrophages, neutrophils),
            m1_m2=_safe_div(m1, m2),
            n1_n2=_safe_div(n1, n2),
            macrophage_necrosis=_safe_div(macrophages, necrosis),
            neutrophil_necrosis=_safe_div(neutrophils, necrosis),
        )

    @classmethod
    def from_counts(cls, counts: CellCounts) -> "ClinicalRatios":
        return cls.from_values(counts.n1, counts.n2, counts.m1, counts.m2, counts.necrosis)

    @classmethod
    def from_percentages(cls, pct: Union[CellPercentages, PatchRecord]) -> "ClinicalRatios":
        return cls.from_values(pct.n1, pct.n2, pct.m1, pct.m2, pct.necrosis)

    def as_dict(self) -> Dict[str, float]:
        return {
            "macrophage-neutrophil": self.macrophage_neutrophil,
            "m1-m2": self.m1_m2,
            "n1-n2": self.n1_n2,
            "macrophage-necrosis": self.macrophage_necrosis,
            "neutrophil-necrosis": self.neutrophil_necrosis,
        }

    def interpretations(self) -> List[tuple[str, float, RatioInterpretation]]:
        return [(kind, value, interpret_ratio(value, kind)) for kind, value in self.as_dict().items()]


def interpret_ratio(ratio: float, kind: str) -> RatioInterpretation:
    """按比值是否大于 1 给出文字解读；未知类型返回 "Unknown"。"""

    rules = _RATIO_RULES.get(kind)
    if rules is None:
        return _UNKNOWN
    above, below = rules
    return above if ratio > 1 else below


@dataclass(frozen=True)
class PrognosisTier:
    label: str  # "Good" | "Moderate" | "Less"
    value: int

    @property
    def percentage(self) -> str:
        return f"{self.value}%"


def _round_half_toward_inf(value: float) -> int:
    # .5 向正无穷取整
    return math.floor(value + 0.5)


def prognosis_from_counts(counts: CellCounts) -> PrognosisTier:
    """按抗肿瘤 / 促肿瘤细胞占比划分预后等级。

    - Good (70–85%)：抗肿瘤 > 40%，N1 或 M1 > 15%，肿瘤细胞 < 30%
    - Less (15–35%)：促肿瘤占优，且肿瘤细胞 > 35% 或 N2 / M2 > 25%
    - Moderate (40–65%)：其余情况
    """

    total = counts.total
    n1 = counts.n1 / total * 100
    n2 = counts.n2 / total * 100
    m1 = counts.m1 / total * 100
    m2 = counts.m2 / total * 100
    tumor = counts.tumor_cells / total * 100

    anti_tumor = n1 + m1
    pro_tumor = n2 + m2 + tumor

    if anti_tumor > 40 and (n1 > 15 or m1 > 15) and tumor < 30:
        return PrognosisTier("Good", min(_round_half_toward_inf(70 + (anti_tumor - 40) * 0.5), 85))
    if pro_tumor > anti_tumor and (tumor > 35 or n2 > 25 or m2 > 25):
        return PrognosisTier("Less", max(_round_half_toward_inf(35 - (pro_tumor - anti_tumor) * 0.3), 15))
    return PrognosisTier("Moderate", min(max(_round_half_toward_inf(50 + (anti_tumor - pro_tumor) * 0.2), 40), 65))
