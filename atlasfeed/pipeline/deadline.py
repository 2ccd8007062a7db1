"""Cooperative run deadline."""

import time
from typing import Callable, Optional

from ..errors import BudgetExceeded

MIN_BUDGET_SECONDS = 8.0
MAX_BUDGET_SECONDS = 120.0
FAST_MODE_BUDGET_SECONDS = 12.0


class Deadline:
    """Wall-clock budget for one run.

    Workers consult it before pulling new work; nothing is cancelled forcibly.
    """

    def __init__(self, budget_seconds: float, clock: Optional[Callable[[], float]] = None) -> None:
        self.budget_seconds = budget_seconds
        self.clock = clock or time.monotonic
        self.started_at = self.clock()

    @property
    def fast_mode(self) -> bool:
        return self.budget_seconds <= FAST_MODE_BUDGET_SECONDS

    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def remaining(self) -> float:
        return self.budget_seconds - self.elapsed()

    def within_margin(self, margin: float) -> bool:
        """True once less than ``margin`` seconds remain."""
        return self.remaining() < margin

    def check(self, margin: float = 0.0) -> None:
        """Raise BudgetExceeded once less than ``margin`` seconds remain."""
        if self.within_margin(margin):
            raise BudgetExceeded(f"{self.remaining():.1f}s left, margin {margin:.1f}s")


def clamp_budget(seconds: float) -> float:
    return max(MIN_BUDGET_SECONDS, min(MAX_BUDGET_SECONDS, float(seconds)))
