"""离线导出一批图像的合成结果，便于核对 GUI 中的数字。

输出（默认写到 analysis_results/）：
- <name>_images.csv：每张图像的计数、百分比、生存率、预后等级与最终指标；
- <name>_summary.json：BatchResult.summary_dict()；
- <name>_patches.png：patch 历史折线图。

只使用文件名推导结果，因此也支持 `--names a.png b.png` 直接模拟，不需要真实文件。
"""
from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import List

from rich.console import Console
from rich.table import Table

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.charts import patch_history_lines
from app.services.file_selection import collect_image_paths, load_input_files
from core.analysis import run_batch
from core.models import ANALYSIS_MODES, CELL_TYPES, BatchResult, InputFile
from core.prognosis import prognosis_from_counts

console = Console()


def _rows(result: BatchResult) -> List[dict]:
    rows = []
    for index, image in enumerate(result.images):
        row = {"index": index, "file_name": image.file_name, "good_survival": index in result.good_survival_indices}
        row.update({f"{name}_count": getattr(image.counts, name) for name in CELL_TYPES})
        row["total"] = image.counts.total
        row.update({f"{name}_pct": value for name, value in image.percentages.as_dict().items()})
        row["survival_rate"] = image.survival_rate
        row["prognosis"] = prognosis_from_counts(image.counts).label
        row["precision"] = image.metrics.final_precision
        row["recall"] = image.metrics.final_recall
        row["f1_score"] = image.metrics.final_f1_score
        row["r_squared"] = image.metrics.final_r_squared
        rows.append(row)
    return rows


def export(result: BatchResult, out_dir: Path, name: str) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    rows = _rows(result)
    csv_path = out_dir / f"{name}_images.csv"
    with csv_path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    summary_path = out_dir / f"{name}_summary.json"
    summary_path.write_text(json.dumps(result.summary_dict(), indent=2))
    fig_path = out_dir / f"{name}_patches.png"
    patch_history_lines(result).savefig(fig_path, dpi=150)
    console.print(f"[bold green]Saved {csv_path.name}, {summary_path.name}, {fig_path.name} to {out_dir}[/bold green]")


def _print_table(result: BatchResult) -> None:
    table = Table(title=f"{result.image_count} images ({result.mode}), folder seed {result.folder_seed}")
    table.add_column("#", justify="right")
    table.add_column("File")
    for name in CELL_TYPES:
        table.add_column(name, justify="right")
    table.add_column("Survival", justify="right")
    for index, image in enumerate(result.images):
        marker = "*" if index in result.good_survival_indices else ""
        table.add_row(
            f"{index}{marker}",
            image.file_name,
            *(str(v) for v in image.counts.as_tuple()),
            f"{image.survival_rate:.1f}",
        )
    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="Export synthesized analysis results for a batch of images")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--folder", type=Path, help="Folder of images to analyze")
    source.add_argument("--names", nargs="+", help="File names to simulate without reading files")
    parser.add_argument("--mode", choices=ANALYSIS_MODES, default="proposed")
    parser.add_argument("--out", type=Path, default=PROJECT_ROOT / "analysis_results")
    parser.add_argument("--name", default="batch", help="Prefix for output files")
    args = parser.parse_args()

    if args.folder is not None:
        selection = load_input_files(collect_image_paths(args.folder))
        for warning in selection.warnings:
            console.print(f"[yellow]{warning}[/yellow]")
        files = selection.files
    else:
        files = [InputFile(name=n, size=0) for n in args.names]

    result = run_batch(files, args.mode)
    _print_table(result)
    export(result, args.out, args.name)


if __name__ == "__main__":
    main()
