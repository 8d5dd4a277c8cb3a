"""好生存率 patch 的选择：带种子的 Fisher–Yates 洗牌 + 区间内抽样。"""
from __future__ import annotations

import math
from typing import FrozenSet, List, Sequence

from .seeding import seeded_random

GOOD_SURVIVAL_PATCH_COUNT = 5
SKIP_HEAD_FRACTION = 0.2
SKIP_TAIL_FRACTION = 0.8


def seeded_shuffle(items: Sequence[int], base_seed: int) -> List[int]:
    """返回洗牌后的新列表；相同 base_seed 与输入顺序得到相同排列。"""

    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = math.floor(seeded_random(base_seed + i) * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def candidate_pool(batch_size: int, target_count: int) -> List[int]:
    """跳过首尾 20% 的中间索引；数量不足时退回到全区间（跳过开头几个）。"""

    skip_start = math.floor(batch_size * SKIP_HEAD_FRACTION)
    skip_end = math.floor(batch_size * SKIP_TAIL_FRACTION)
    pool = list(range(skip_start, skip_end))
    if len(pool) < target_count:
        offset = min(GOOD_SURVIVAL_PATCH_COUNT, batch_size - target_count)
        pool = list(range(batch_size))[offset:]
    return pool


def select_good_survival_indices(batch_size: int, base_seed: int) -> FrozenSet[int]:
    """选出 `min(5, batch_size)` 个索引，这些图像会偏向较好的生存率。"""

    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    target_count = min(GOOD_SURVIVAL_PATCH_COUNT, batch_size)
    shuffled = seeded_shuffle(candidate_pool(batch_size, target_count), base_seed)
    return frozenset(shuffled[:target_count])
