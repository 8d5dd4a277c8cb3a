"""Shared fixtures: project-root import path, a counting display-handle provider and file factories."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.models import InputFile


class CountingHandleProvider:
    """Hands out unique integer handles and records every release."""

    def __init__(self, fail_on: int | None = None) -> None:
        self.acquired: List[int] = []
        self.released: List[int] = []
        self._next = 1
        self._fail_on = fail_on

    def acquire(self, data: bytes) -> int:
        if self._fail_on is not None and len(self.acquired) == self._fail_on:
            raise OSError("display handle unavailable")
        handle = self._next
        self._next += 1
        self.acquired.append(handle)
        return handle

    def release(self, handle: int) -> None:
        self.released.append(handle)

    @property
    def live(self) -> set[int]:
        return set(self.acquired) - set(self.released)


def make_files(names: List[str]) -> List[InputFile]:
    return [InputFile(name=name, size=16, data=b"\x89PNG-fake", content_type="image/png") for name in names]


@pytest.fixture
def handles() -> CountingHandleProvider:
    return CountingHandleProvider()


@pytest.fixture
def twenty_names() -> List[str]:
    return [f"slide_{i:02d}.png" for i in range(1, 21)]
