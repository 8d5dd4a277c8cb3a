"""种子推导与确定性伪随机数。

- `generate_seed`：字符串 → 32 位非负整数种子（int32 溢出回绕）；
- `seeded_random`：`frac(sin(seed) * 10000)`，无内部状态；
- `seeded_random_in_range`：闭区间整数。

seed+1、seed+2 … 被当作互相独立的“通道”使用，这是结果可复现的前提，
不要替换为更高质量的 PRNG。
"""
from __future__ import annotations

import math
from typing import Iterable

from .models import AnalysisMode

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def to_int32(value: int) -> int:
    """按 32 位二进制补码截断整数。"""

    value &= _INT32_MASK
    return value - 0x100000000 if value & _INT32_SIGN else value


def _utf16_code_units(text: str) -> Iterable[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def generate_seed(text: str) -> int:
    """`h = h * 31 + code`（int32 回绕），返回 `abs(h)`。

    遍历 UTF-16 码元而不是 Unicode 码点，保证非 BMP 字符的文件名得到相同种子。
    """

    h = 0
    for code in _utf16_code_units(text):
        h = to_int32((to_int32(h << 5) - h) + code)
    return abs(h)


def folder_seed(file_names: Iterable[str], mode: AnalysisMode) -> int:
    """整批文件共享的种子：排序后拼接的文件名 + 模式。"""

    return generate_seed("".join(sorted(file_names)) + mode)


def file_seed(file_name: str, mode: AnalysisMode) -> int:
    return generate_seed(file_name + mode)


def combined_seed(folder: int, file_name: str, mode: AnalysisMode) -> int:
    return folder + file_seed(file_name, mode)


def seeded_random(seed: int) -> float:
    """同一种子永远返回同一个 [0, 1) 浮点数。"""

    x = math.sin(seed) * 10000
    return x - math.floor(x)


def seeded_random_in_range(seed: int, lo: int, hi: int) -> int:
    """闭区间 [lo, hi] 内的确定性整数。"""

    if hi < lo:
        raise ValueError(f"empty range [{lo}, {hi}]")
    return lo + math.floor(seeded_random(seed) * (hi - lo + 1))
