"""Smoke tests for the matplotlib figures (Agg backend, no display needed)."""
from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pytest
from matplotlib.figure import Figure

from app import charts
from conftest import make_files
from core.analysis import run_batch
from core.models import CELL_LABELS


@pytest.fixture
def batch(twenty_names):
    return run_batch(make_files(twenty_names), "proposed")


def test_composition_pie(batch) -> None:
    fig = charts.composition_pie(batch.current_image)
    ax = fig.axes[0]
    assert len(ax.patches) == 6
    assert batch.current_image.file_name in ax.get_title()


def test_counts_bar_heights(batch) -> None:
    fig = charts.counts_bar(batch.current_image)
    heights = [p.get_height() for p in fig.axes[0].patches]
    assert heights == list(batch.current_image.counts.as_tuple())


def test_patch_history_lines(batch) -> None:
    fig = charts.patch_history_lines(batch)
    lines = fig.axes[0].get_lines()
    cell_lines = [line for line in lines if line.get_label() in CELL_LABELS.values()]
    assert len(cell_lines) == 6
    n1 = next(line for line in lines if line.get_label() == "N1")
    assert list(n1.get_ydata()) == [p.n1 for p in batch.patch_history]


def test_metrics_and_confusion(batch) -> None:
    fig = charts.metrics_history_lines(batch.overall_metrics)
    assert len(fig.axes[0].get_lines()) == 4
    fig = charts.confusion_matrix_heatmap(batch.overall_metrics)
    texts = sorted(int(t.get_text()) for t in fig.axes[0].texts)
    assert texts == sorted(e.value for e in batch.overall_metrics.confusion_matrix)


def test_existing_figure_is_reused(batch, tmp_path: Path) -> None:
    fig = Figure()
    out = charts.counts_bar(batch.current_image, fig)
    charts.composition_pie(batch.current_image, fig)
    assert out is fig
    assert len(fig.axes) == 1
    fig.savefig(tmp_path / "pie.png")
    assert (tmp_path / "pie.png").stat().st_size > 0
