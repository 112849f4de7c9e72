"""CoordinateConverter — the main entry point for the library."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional, Union

from coordconvert import detect as detection
from coordconvert.cache import ConversionCache
from coordconvert.config import Settings
from coordconvert.engine import ConversionEngine
from coordconvert.geocoding import Geocoder, RateLimiter, What3WordsGeocoder
from coordconvert.models import ConversionResult, Format, ValidationResult
from coordconvert.scheduler import BudgetedScheduler
from coordconvert.timing import Clock

logger = logging.getLogger(__name__)

_SCHEDULER_KINDS = ("convert", "validate")


class CoordinateConverter:
    """
    Detect, validate and convert free-text coordinates.

    Build one per application and close() it on shutdown; it owns the
    conversion cache, any geocoder it created from settings, any thread
    pool it created for *workers*, and every scheduler handed out by
    scheduler().
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        geocoder: Optional[Geocoder] = None,
        executor: Optional[Executor] = None,
        workers: Optional[int] = None,
        reverse_geocode: bool = False,
        clock: Clock = time.monotonic,
    ):
        self.settings = settings or Settings()
        self._clock = clock
        self._cache = ConversionCache(
            self.settings.cache_size, self.settings.cache_max_age, clock
        )

        if geocoder is None and self.settings.geocoding_enabled:
            geocoder = What3WordsGeocoder(
                self.settings.w3w_api_key,
                self.settings.w3w_api_url,
                timeout=self.settings.geocoder_timeout,
                max_concurrent=self.settings.geocoder_max_concurrent,
                rate_limiter=RateLimiter(self.settings.geocoder_rate_per_minute),
                cache_size=self.settings.cache_size,
            )
        self._geocoder = geocoder

        self._owned_executor: Optional[Executor] = None
        if executor is None and workers:
            executor = self._owned_executor = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="coordconvert"
            )

        self._engine = ConversionEngine(
            cache=self._cache,
            geocoder=geocoder,
            executor=executor,
            conversion_budget_ms=self.settings.conversion_budget_ms,
            validation_budget_ms=self.settings.validation_budget_ms,
            reverse_geocode=reverse_geocode,
        )
        self._schedulers: list[BudgetedScheduler] = []
        self._closed = False

    # ── Public API ────────────────────────────────────────────────

    def detect(self, raw: str) -> Optional[Format]:
        """Best-guess format of *raw*; None for blank input."""
        return detection.detect(raw)

    def validate(self, raw: str, fmt: Union[Format, str]) -> ValidationResult:
        return self._engine.validate(raw, fmt)

    async def validate_async(self, raw: str, fmt: Union[Format, str]) -> ValidationResult:
        return await self._engine.validate_async(raw, fmt)

    def convert(
        self, raw: str, fmt: Optional[Union[Format, str]] = None
    ) -> ConversionResult:
        """
        Convert *raw* into every supported format.

        Never raises for bad input; inspect ConversionResult.success,
        error and suggestions instead.
        """
        return self._engine.convert(raw, fmt)

    async def convert_async(
        self, raw: str, fmt: Optional[Union[Format, str]] = None
    ) -> ConversionResult:
        return await self._engine.convert_async(raw, fmt)

    def scheduler(
        self,
        kind: str = "convert",
        fmt: Optional[Union[Format, str]] = None,
        *,
        on_result: Optional[Callable[[Any], None]] = None,
        call_later: Optional[Callable[[float, Callable[[], None]], Any]] = None,
    ) -> BudgetedScheduler:
        """
        Debounced runner for keystroke input.

        kind="convert" runs convert(); kind="validate" runs validate(),
        against the detected format when *fmt* is None.
        """
        if kind not in _SCHEDULER_KINDS:
            raise ValueError(f"Unknown scheduler kind: {kind!r}")

        # The scheduler times each execution, so the engine runs untimed.
        if kind == "convert":
            work = lambda raw: self._engine.convert(raw, fmt, timed=False)  # noqa: E731
            budget_ms = self.settings.conversion_budget_ms
        else:
            work = lambda raw: self._engine.validate(  # noqa: E731
                raw, fmt or self.detect(raw) or Format.LATLONG, timed=False
            )
            budget_ms = self.settings.validation_budget_ms

        runner = BudgetedScheduler(
            work,
            window=self.settings.debounce_seconds,
            budget_ms=budget_ms,
            clock=self._clock,
            call_later=call_later,
            on_result=on_result,
            label=kind,
        )
        self._schedulers.append(runner)
        return runner

    @property
    def geocoder(self) -> Optional[Geocoder]:
        return self._geocoder

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> dict:
        """Cache statistics plus geocoder and scheduler status."""
        return {
            **self._cache.stats(),
            "geocoder": self._geocoder is not None,
            "schedulers": len(self._schedulers),
        }

    def clear_cache(self) -> None:
        self._cache.clear()
        detection.clear_cache()
        if isinstance(self._geocoder, What3WordsGeocoder):
            self._geocoder.clear_cache()

    def close(self) -> None:
        """Cancel pending scheduled work, drop caches and release the worker pool."""
        if self._closed:
            return
        for runner in self._schedulers:
            runner.cancel()
        self._schedulers.clear()
        self.clear_cache()
        if self._owned_executor is not None:
            self._owned_executor.shutdown(wait=True)
            self._owned_executor = None
        self._closed = True
        logger.debug("CoordinateConverter closed")

    def __enter__(self) -> CoordinateConverter:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
