"""核心入口：负责 orchestrate 种子推导、好生存率 patch 选择、逐图合成以及汇总。

模块划分的思路：
- 种子 / 随机数、patch 选择、单图合成各自封装成独立模块，保持依赖透明；
- `run_batch` 是纯函数（除显示句柄外无副作用），同样的输入永远得到同样的数字；
- `select_image` / `discard` 提供给会话层与 GUI 的最小操作集合。
"""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from .models import (
    AnalysisMode,
    BatchResult,
    DisplayHandleProvider,
    EvaluationMetrics,
    ImageAnalysisResult,
    InputFile,
    PatchRecord,
    validate_mode,
)
from .seeding import folder_seed as derive_folder_seed
from .selection import select_good_survival_indices
from .synthesis import synthesize_image


def _mean(values: Sequence[float]) -> float:
    """顺序累加求均值，保证与逐项相加的参考结果逐位一致。"""

    total = 0.0
    for value in values:
        total += value
    return total / len(values)


def _overall_metrics(images: Sequence[ImageAnalysisResult]) -> EvaluationMetrics:
    """最终指标取均值；混淆矩阵和历史曲线直接沿用第一张图像的值（未做平均）。"""

    first = images[0].metrics
    return EvaluationMetrics(
        confusion_matrix=first.confusion_matrix,
        history=first.history,
        final_precision=_mean([img.metrics.final_precision for img in images]),
        final_recall=_mean([img.metrics.final_recall for img in images]),
        final_f1_score=_mean([img.metrics.final_f1_score for img in images]),
        final_r_squared=_mean([img.metrics.final_r_squared for img in images]),
    )


def run_batch(
    files: Sequence[InputFile],
    mode: AnalysisMode,
    handle_provider: Optional[DisplayHandleProvider] = None,
    progress_cb: Callable[[str], None] | None = None,
) -> BatchResult:
    """对整批文件运行合成，返回完整的 BatchResult。

    中途失败时，已经申请的显示句柄会先被释放，再把异常抛给调用方，
    因此不会留下任何部分结果。
    """

    validate_mode(mode)
    if not files:
        raise ValueError("files must not be empty")

    seed = derive_folder_seed((f.name for f in files), mode)
    good_indices = select_good_survival_indices(len(files), seed)
    print(
        f"[analysis] selecting {len(good_indices)} of {len(files)} patches for good survival: "
        f"{sorted(good_indices)}"
    )
    if progress_cb:
        progress_cb(f"好生存率 patch: {sorted(good_indices)}")

    images: List[ImageAnalysisResult] = []
    try:
        for index, file in enumerate(files):
            images.append(
                synthesize_image(file, seed, index, len(files), good_indices, mode, handle_provider)
            )
            if progress_cb:
                progress_cb(f"合成 {index + 1}/{len(files)}: {file.name}")
    except Exception:
        _release_handles(images, handle_provider)
        raise

    patch_history = [PatchRecord.from_image(i + 1, img) for i, img in enumerate(images)]
    print(f"[analysis] generated {len(patch_history)} patches for {len(files)} input images")

    return BatchResult(
        images=images,
        current_image_index=0,
        patch_history=patch_history,
        overall_metrics=_overall_metrics(images),
        mode=mode,
        folder_seed=seed,
        good_survival_indices=good_indices,
    )


def select_image(result: BatchResult, index: int) -> BatchResult:
    """切换当前图像；索引越界时原样返回。"""

    if 0 <= index < result.image_count:
        return replace(result, current_image_index=index)
    return result


def _release_handles(
    images: Sequence[ImageAnalysisResult], handle_provider: Optional[DisplayHandleProvider]
) -> int:
    if handle_provider is None:
        return 0
    released = 0
    for img in images:
        if img.image_handle is not None:
            handle_provider.release(img.image_handle)
            released += 1
    return released


def discard(result: BatchResult, handle_provider: Optional[DisplayHandleProvider]) -> int:
    """释放结果持有的全部显示句柄，返回释放的数量。

    PatchRecord 与图像共享同一个句柄，只按图像释放一次。
    """

    return _release_handles(result.images, handle_provider)
