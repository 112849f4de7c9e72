"""Wall-clock budget measurement: declare, measure, warn, never truncate."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

# One frame at 60 Hz.
FRAME_SECONDS = 1.0 / 60.0

VALIDATION_BUDGET_MS = 1.0
CONVERSION_BUDGET_MS = 2.0

Clock = Callable[[], float]


@dataclass(frozen=True)
class BudgetReport:
    """How long one unit of work took against its budget."""

    label: str
    elapsed_ms: float
    budget_ms: float

    @property
    def exceeded(self) -> bool:
        return self.elapsed_ms > self.budget_ms

    @property
    def headroom_ms(self) -> float:
        return self.budget_ms - self.elapsed_ms


class Measurement:
    """Holder yielded by measure(); `report` is filled in when the block exits."""

    def __init__(self, label: str, budget_ms: float):
        self.label = label
        self.budget_ms = budget_ms
        self.report: Optional[BudgetReport] = None


@contextmanager
def measure(
    label: str,
    budget_ms: float,
    clock: Clock = time.perf_counter,
) -> Iterator[Measurement]:
    """
    Time the enclosed block against *budget_ms*.

    Overruns are logged at WARNING and recorded on the yielded
    Measurement; the block itself is never interrupted. The report is
    produced even when the block raises.
    """
    holder = Measurement(label, budget_ms)
    start = clock()
    try:
        yield holder
    finally:
        elapsed_ms = (clock() - start) * 1000.0
        holder.report = BudgetReport(label, elapsed_ms, budget_ms)
        if holder.report.exceeded:
            logger.warning(
                "%s exceeded budget: %.2fms > %.2fms",
                label, elapsed_ms, budget_ms,
            )
