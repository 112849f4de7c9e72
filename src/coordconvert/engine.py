"""
Conversion pipeline: detect, look up, parse, check, derive, store.

Every public call returns a ConversionResult. Input errors keep their
own kind, geocoder failures stay retryable, and anything unexpected is
reported as a ConversionError.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from typing import Optional, Union

from coordconvert import detect as detection
from coordconvert import projection, validator, worker
from coordconvert.cache import ConversionCache
from coordconvert.exceptions import (
    ConversionError,
    CoordConvertError,
    CoordinateInputError,
    GeocodingError,
    GrammarMismatch,
)
from coordconvert.geocoding import Geocoder
from coordconvert.models import (
    Coordinate,
    ConversionResult,
    Format,
    LatLong,
    ValidationResult,
    WordTriple,
)
from coordconvert.timing import CONVERSION_BUDGET_MS, VALIDATION_BUDGET_MS, measure

logger = logging.getLogger(__name__)


class ConversionEngine:
    """
    Cached converter from raw text to every supported notation.

    The synchronous path never performs I/O, so a word triple converted
    with convert() comes back unresolved. convert_async() resolves it
    through the geocoder and may hand the derive step to *executor*.
    """

    def __init__(
        self,
        cache: Optional[ConversionCache] = None,
        geocoder: Optional[Geocoder] = None,
        executor: Optional[Executor] = None,
        conversion_budget_ms: float = CONVERSION_BUDGET_MS,
        validation_budget_ms: float = VALIDATION_BUDGET_MS,
        reverse_geocode: bool = False,
    ):
        self.cache = cache if cache is not None else ConversionCache()
        self.geocoder = geocoder
        self.executor = executor
        self.conversion_budget_ms = conversion_budget_ms
        self.validation_budget_ms = validation_budget_ms
        self.reverse_geocode = reverse_geocode

    # ── Validation ────────────────────────────────────────────────

    def validate(
        self, raw: str, fmt: Union[Format, str], *, timed: bool = True
    ) -> ValidationResult:
        budget_ms = self.validation_budget_ms if timed else None
        return validator.validate(raw, fmt, budget_ms)

    async def validate_async(self, raw: str, fmt: Union[Format, str]) -> ValidationResult:
        return await validator.validate_async(
            raw, fmt, self.geocoder, self.validation_budget_ms
        )

    # ── Conversion ────────────────────────────────────────────────

    def convert(
        self,
        raw: str,
        fmt: Optional[Union[Format, str]] = None,
        *,
        timed: bool = True,
    ) -> ConversionResult:
        """
        Convert *raw* into every format.

        With *fmt* None the format is detected. A cached result is
        returned with from_cache=True. Pass timed=False when the caller
        already measures the call against its own budget.
        """
        if not timed:
            return self._convert(raw, fmt)
        with measure("convert", self.conversion_budget_ms):
            return self._convert(raw, fmt)

    async def convert_async(
        self, raw: str, fmt: Optional[Union[Format, str]] = None
    ) -> ConversionResult:
        """
        Like convert(), resolving word triples through the geocoder.

        With reverse_geocode enabled, other sources also get their word
        triple filled in. Geocoder failures come back as NetworkError or
        RateLimitError results, with retryable set.
        """
        with measure("convert_async", self.conversion_budget_ms):
            try:
                text, target = self._prepare(raw, fmt)
                cached = self._lookup(text, target)
                if cached is not None:
                    return cached

                coordinate = validator.parse(text, target)
                validator.check(coordinate)
                position = await self._resolve(coordinate)
                triple = await self._reverse(coordinate)

                result = await self._derive(text, target, position, triple)
                if result.success:
                    self._store(result.coordinate, result.conversions)
                return result
            except Exception as exc:
                return self._failure(raw, fmt, exc)

    # ── Private helpers ───────────────────────────────────────────

    def _convert(
        self, raw: str, fmt: Optional[Union[Format, str]]
    ) -> ConversionResult:
        try:
            text, target = self._prepare(raw, fmt)
            cached = self._lookup(text, target)
            if cached is not None:
                return cached
            coordinate = validator.parse(text, target)
            validator.check(coordinate)
            conversions = projection.derive_all(coordinate)
            self._store(coordinate, conversions)
            return ConversionResult.ok(coordinate, conversions)
        except Exception as exc:
            return self._failure(raw, fmt, exc)

    @staticmethod
    def _prepare(
        raw: str, fmt: Optional[Union[Format, str]]
    ) -> tuple[str, Format]:
        text = raw.strip()
        target = Format.coerce(fmt) if fmt is not None else None
        if not text:
            label = str(target) if target is not None else ""
            raise GrammarMismatch(raw, label, "input is empty")
        if target is None:
            target = detection.detect(text)
            logger.debug("Detected %r as %s", text, target)
        return text, target

    def _lookup(self, text: str, fmt: Format) -> Optional[ConversionResult]:
        entry = self.cache.get(text, fmt)
        if entry is None:
            return None
        logger.debug("Cache hit for %s:%r", fmt.value, text)
        return ConversionResult.ok(entry.source, entry.conversions, from_cache=True)

    def _store(self, coordinate: Coordinate, conversions) -> None:
        # Unresolved word triples carry no position yet, so nothing worth keeping.
        if _resolved(coordinate):
            self.cache.set(coordinate, conversions)

    async def _resolve(self, coordinate: Coordinate) -> Optional[LatLong]:
        if not isinstance(coordinate.value, WordTriple) or self.geocoder is None:
            return None
        return await self.geocoder.resolve(coordinate.value.text)

    async def _reverse(self, coordinate: Coordinate) -> Optional[WordTriple]:
        if (
            not self.reverse_geocode
            or self.geocoder is None
            or coordinate.format is Format.WORD_TRIPLE
        ):
            return None
        position = projection.to_latlong(coordinate)
        if position is None:
            return None
        return await self.geocoder.reverse(position)

    async def _derive(
        self,
        text: str,
        fmt: Format,
        position: Optional[LatLong],
        triple: Optional[WordTriple],
    ) -> ConversionResult:
        request = worker.build_request(text, fmt, position, triple)
        if self.executor is None:
            response = worker.handle_request(request)
        else:
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                self.executor, worker.handle_request, request
            )
        return worker.decode_response(response)

    def _failure(
        self,
        raw: str,
        fmt: Optional[Union[Format, str]],
        exc: Exception,
    ) -> ConversionResult:
        if isinstance(exc, CoordinateInputError):
            logger.debug("Rejected input %r: %s", raw, exc)
            return ConversionResult.failure(exc, self._suggestions(raw, fmt, exc))
        if isinstance(exc, GeocodingError):
            logger.warning("Geocoding failed for %r: %s", raw, exc)
            return ConversionResult.failure(exc, ("try again in a moment",))
        if isinstance(exc, CoordConvertError):
            return ConversionResult.failure(exc)
        logger.exception("Unexpected failure converting %r", raw)
        return ConversionResult.failure(
            ConversionError(f"Conversion failed: {exc}", cause=exc)
        )

    @staticmethod
    def _suggestions(
        raw: str, fmt: Optional[Union[Format, str]], exc: CoordinateInputError
    ) -> tuple[str, ...]:
        text = raw.strip()
        try:
            target = Format.coerce(fmt) if fmt is not None else detection.detect(text)
        except CoordinateInputError:
            return tuple(f.value for f in Format)
        if target is None:
            target = Format.LATLONG
        return validator.suggestions_for(text, target, exc)


def _resolved(coordinate: Optional[Coordinate]) -> bool:
    if coordinate is None:
        return False
    value = coordinate.value
    return not isinstance(value, WordTriple) or value.resolved
