from __future__ import annotations

from typing import Protocol

from mandelnet.kernel import escape_bailout


class IterationSource(Protocol):
    def compute_iteration_at(self, x: float, y: float) -> int: ...


class LocalIterationSource:
    """Runs the bailout kernel in-process."""

    def __init__(self, max_iteration: int):
        self.max_iteration = int(max_iteration)

    def compute_iteration_at(self, x: float, y: float) -> int:
        _, count = escape_bailout(x, y, self.max_iteration)
        return int(count)

    def __repr__(self) -> str:
        return f"LocalIterationSource(max_iteration={self.max_iteration})"
