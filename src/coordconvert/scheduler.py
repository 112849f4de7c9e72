"""
Debounced, budget-measured execution of keystroke-driven work.

States:

    IDLE ──submit──▶ PENDING ──poll/flush/timer──▶ EXECUTING ──▶ IDLE
                      │  ▲                              │
                      │  └──────── submit (re-arm) ─────┘ (back to PENDING)
                      └──cancel──▶ IDLE

Time comes from an injectable clock; nothing fires on its own unless a
`call_later(delay, callback)` hook is given (asyncio's loop.call_later
fits). Without one, the owner drives the machine with poll().
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Optional

from coordconvert.timing import (
    CONVERSION_BUDGET_MS,
    FRAME_SECONDS,
    BudgetReport,
    Clock,
    measure,
)

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    EXECUTING = "executing"


class BudgetedScheduler:
    """
    Coalesce rapid submissions and run *work* once per quiet window.

    Only the latest submitted input is executed. Each run is timed
    against *budget_ms*; overruns are logged and exposed through
    last_report but never cut short.
    """

    def __init__(
        self,
        work: Callable[[str], Any],
        *,
        window: float = FRAME_SECONDS,
        budget_ms: float = CONVERSION_BUDGET_MS,
        clock: Clock = time.monotonic,
        call_later: Optional[Callable[[float, Callable[[], None]], Any]] = None,
        on_result: Optional[Callable[[Any], None]] = None,
        label: str = "scheduled",
    ):
        if window < 0:
            raise ValueError("Debounce window cannot be negative")
        self._work = work
        self._window = window
        self._budget_ms = budget_ms
        self._clock = clock
        self._call_later = call_later
        self._on_result = on_result
        self._label = label

        self._state = SchedulerState.IDLE
        self._pending: Optional[str] = None
        self._deadline: Optional[float] = None
        self._timer: Any = None

        self.last_report: Optional[BudgetReport] = None
        self.last_result: Any = None
        self.executions = 0
        self.submissions = 0

    # ── Public API ────────────────────────────────────────────────

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def pending(self) -> Optional[str]:
        """Input waiting to run, if any."""
        return self._pending

    @property
    def window(self) -> float:
        return self._window

    def submit(self, raw: str) -> None:
        """Queue *raw*, replacing any pending input and restarting the window."""
        self.submissions += 1
        self._pending = raw
        self._deadline = self._clock() + self._window
        if self._state is SchedulerState.IDLE:
            self._transition(SchedulerState.PENDING)
        self._arm_timer()

    def poll(self) -> Any:
        """Run the pending input if its window has elapsed; return the result or None."""
        if self._state is not SchedulerState.PENDING or self._deadline is None:
            return None
        if self._clock() < self._deadline:
            return None
        return self._execute()

    def flush(self) -> Any:
        """Run the pending input now, ignoring the window."""
        if self._state is not SchedulerState.PENDING:
            return None
        return self._execute()

    def cancel(self) -> bool:
        """Discard the pending input. Only possible while PENDING."""
        if self._state is not SchedulerState.PENDING:
            return False
        self._disarm_timer()
        self._pending = None
        self._deadline = None
        self._transition(SchedulerState.IDLE)
        return True

    # ── Private helpers ───────────────────────────────────────────

    def _execute(self) -> Any:
        raw = self._pending
        self._pending = None
        self._deadline = None
        self._disarm_timer()
        self._transition(SchedulerState.EXECUTING)

        measurement = None
        try:
            with measure(self._label, self._budget_ms) as measurement:
                result = self._work(raw)
        finally:
            self.executions += 1
            if measurement is not None:
                self.last_report = measurement.report
            if self._pending is not None:
                self._transition(SchedulerState.PENDING)
            else:
                self._transition(SchedulerState.IDLE)

        self.last_result = result
        if self._on_result is not None:
            self._on_result(result)
        return result

    def _fire(self) -> None:
        self._timer = None
        if self._state is SchedulerState.PENDING:
            self._execute()

    def _arm_timer(self) -> None:
        if self._call_later is None:
            return
        self._disarm_timer()
        self._timer = self._call_later(self._window, self._fire)

    def _disarm_timer(self) -> None:
        if self._timer is not None and hasattr(self._timer, "cancel"):
            self._timer.cancel()
        self._timer = None

    def _transition(self, new: SchedulerState) -> None:
        logger.debug("%s scheduler %s -> %s", self._label, self._state.value, new.value)
        self._state = new
