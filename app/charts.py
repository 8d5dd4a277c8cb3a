"""matplotlib 图表：细胞构成、计数、patch 历史、训练曲线与混淆矩阵。

所有函数返回 `matplotlib.figure.Figure`，不依赖 pyplot 状态，
既可以嵌入 Qt（FigureCanvasQTAgg），也可以直接 `savefig`。
"""
from __future__ import annotations

from typing import Optional

import numpy as np
from matplotlib.figure import Figure

from core.models import CELL_LABELS, CELL_TYPES, BatchResult, EvaluationMetrics, ImageAnalysisResult

CELL_COLORS = {
    "n1": "#52c41a",
    "n2": "#f5222d",
    "m1": "#1890ff",
    "m2": "#fa8c16",
    "necrosis": "#722ed1",
    "tumor_cells": "#eb2f96",
}
METRIC_COLORS = {
    "precision": "#1890ff",
    "recall": "#52c41a",
    "f1_score": "#fa8c16",
    "r_squared": "#722ed1",
}


def _new_figure(figure: Optional[Figure], figsize=(6, 4)) -> Figure:
    if figure is None:
        return Figure(figsize=figsize, tight_layout=True)
    figure.clear()
    return figure


def composition_pie(image: ImageAnalysisResult, figure: Optional[Figure] = None) -> Figure:
    fig = _new_figure(figure)
    ax = fig.add_subplot(111)
    values = image.percentages.as_tuple()
    ax.pie(
        values,
        labels=[CELL_LABELS[name] for name in CELL_TYPES],
        colors=[CELL_COLORS[name] for name in CELL_TYPES],
        autopct="%1.1f%%",
        startangle=90,
    )
    ax.set_title(f"Cell composition: {image.file_name}")
    ax.axis("equal")
    return fig


def counts_bar(image: ImageAnalysisResult, figure: Optional[Figure] = None) -> Figure:
    fig = _new_figure(figure)
    ax = fig.add_subplot(111)
    counts = image.counts.as_tuple()
    x = np.arange(len(CELL_TYPES))
    ax.bar(x, counts, color=[CELL_COLORS[name] for name in CELL_TYPES])
    ax.set_xticks(x)
    ax.set_xticklabels([CELL_LABELS[name] for name in CELL_TYPES])
    ax.set_ylabel("Cells")
    ax.set_title(f"Cell counts (total {image.counts.total})")
    return fig


def patch_history_lines(result: BatchResult, figure: Optional[Figure] = None) -> Figure:
    """每类细胞一条折线，横轴为 patch 编号，纵轴为百分比。"""

    fig = _new_figure(figure, figsize=(8, 4))
    ax = fig.add_subplot(111)
    patch_ids = [p.patch_id for p in result.patch_history]
    for name in CELL_TYPES:
        ax.plot(
            patch_ids,
            [getattr(p, name) for p in result.patch_history],
            marker="o",
            markersize=3,
            color=CELL_COLORS[name],
            label=CELL_LABELS[name],
        )
    for idx in sorted(result.good_survival_indices):
        ax.axvline(idx + 1, color="#cccccc", linestyle=":", linewidth=0.8)
    ax.set_xlabel("Patch")
    ax.set_ylabel("Percentage (%)")
    ax.set_title("Cell populations across patches")
    ax.legend(loc="upper right", fontsize="small", ncol=3)
    return fig


def metrics_history_lines(metrics: EvaluationMetrics, figure: Optional[Figure] = None) -> Figure:
    fig = _new_figure(figure)
    ax = fig.add_subplot(111)
    iterations = [p.iteration for p in metrics.history]
    for name, color in METRIC_COLORS.items():
        ax.plot(iterations, [getattr(p, name) for p in metrics.history], color=color, label=name)
    ax.set_xlabel("Iteration")
    ax.set_ylim(0.0, 1.0)
    ax.set_title("Training metrics")
    ax.legend(loc="lower right", fontsize="small")
    return fig


def confusion_matrix_heatmap(metrics: EvaluationMetrics, figure: Optional[Figure] = None) -> Figure:
    """按 [[TP, FN], [FP, TN]] 排布的 2x2 热力图。"""

    fig = _new_figure(figure, figsize=(4, 4))
    ax = fig.add_subplot(111)
    values = {entry.name: entry.value for entry in metrics.confusion_matrix}
    grid = np.array(
        [
            [values["True Positive"], values["False Negative"]],
            [values["False Positive"], values["True Negative"]],
        ]
    )
    ax.imshow(grid, cmap="Blues")
    for (row, col), value in np.ndenumerate(grid):
        ax.text(col, row, str(value), ha="center", va="center")
    ax.set_xticks([0, 1])
    ax.set_xticklabels(["Pred +", "Pred -"])
    ax.set_yticks([0, 1])
    ax.set_yticklabels(["Actual +", "Actual -"])
    ax.set_title("Confusion matrix")
    return fig
