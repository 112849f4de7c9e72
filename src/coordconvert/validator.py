"""Input validation with human-readable suggestions."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional, Union

from coordconvert import latlong, mgrs_grid, utm_grid, wordtriple
from coordconvert.exceptions import (
    CoordConvertError,
    CoordinateInputError,
    GrammarMismatch,
    InvalidBand,
    InvalidPrecision,
    InvalidZone,
    OutOfRange,
)
from coordconvert.models import (
    MGRS,
    UTM,
    Coordinate,
    Format,
    LatLong,
    ValidationResult,
)
from coordconvert.timing import VALIDATION_BUDGET_MS, measure

if TYPE_CHECKING:
    from coordconvert.geocoding import Geocoder

logger = logging.getLogger(__name__)

UTM_EASTING_RANGE = (100_000.0, 900_000.0)
UTM_NORTHING_RANGE = (0.0, 10_000_000.0)

_EXAMPLES = {
    Format.LATLONG: ('40.7128, -74.0060', '40°42\'46.0"N 74°00\'21.6"W'),
    Format.UTM: ("18T 585628 4511322",),
    Format.MGRS: ("18TWL8562811322",),
    Format.WORD_TRIPLE: ("filled.count.soap",),
}

_PARSERS = {
    Format.LATLONG: latlong.parse,
    Format.UTM: utm_grid.parse,
    Format.MGRS: mgrs_grid.parse,
    Format.WORD_TRIPLE: wordtriple.parse,
}


def parse(text: str, fmt: Format) -> Coordinate:
    """Run the format's parser and wrap the value as a Coordinate."""
    return Coordinate(format=fmt, value=_PARSERS[fmt](text), raw=text)


def check(coordinate: Coordinate) -> None:
    """
    Domain checks applied after a successful parse.

    Raises OutOfRange for UTM eastings/northings outside the usable
    grid and GrammarMismatch for MGRS squares that do not exist in the
    named zone.
    """
    value = coordinate.value
    if isinstance(value, UTM):
        low, high = UTM_EASTING_RANGE
        if not low <= value.easting <= high:
            raise OutOfRange("easting", value.easting, low, high)
        low, high = UTM_NORTHING_RANGE
        if not low <= value.northing <= high:
            raise OutOfRange("northing", value.northing, low, high)
    elif isinstance(value, MGRS):
        mgrs_grid.to_utm(value)


def validate(
    raw: str,
    fmt: Union[Format, str],
    budget_ms: Optional[float] = VALIDATION_BUDGET_MS,
) -> ValidationResult:
    """
    Validate *raw* as *fmt* without any I/O.

    Word triples are checked for shape only; use validate_async to also
    confirm them with a geocoder. With *budget_ms* None the call is not
    timed.
    """
    if budget_ms is None:
        return _validate(raw, fmt)
    with measure("validate", budget_ms):
        return _validate(raw, fmt)


async def validate_async(
    raw: str,
    fmt: Union[Format, str],
    geocoder: Optional[Geocoder] = None,
    budget_ms: float = VALIDATION_BUDGET_MS,
) -> ValidationResult:
    """Like validate(), but resolves word triples through *geocoder* when given."""
    result = validate(raw, fmt, budget_ms)
    if not result.valid or geocoder is None:
        return result
    if Format.coerce(fmt) is not Format.WORD_TRIPLE:
        return result

    words = wordtriple.parse(raw)
    try:
        await geocoder.resolve(words.text)
    except CoordConvertError as exc:
        return ValidationResult.failure(exc, _geocoder_suggestions(exc))
    return result


def suggestions_for(raw: str, fmt: Format, exc: CoordConvertError) -> tuple[str, ...]:
    """Actionable hints for a failed parse or check; always at least one."""
    text = raw.strip()
    hints: list[str] = []

    if isinstance(exc, InvalidZone):
        hints.append("zone must be between 1 and 60")
    elif isinstance(exc, InvalidBand):
        hints.append(
            f"band letter must be one of {utm_grid.BAND_LETTERS} "
            "(C-M south of the equator, N-X north)"
        )
    elif isinstance(exc, InvalidPrecision):
        hints.extend(_precision_hints(text))
    elif isinstance(exc, OutOfRange):
        hints.extend(_range_hints(text, fmt, exc))
    elif isinstance(exc, GrammarMismatch):
        hints.extend(_grammar_hints(text, fmt))

    if not hints:
        hints.extend(f"e.g. {example}" for example in _EXAMPLES[fmt])
    return tuple(dict.fromkeys(hints))


# ── Private helpers ───────────────────────────────────────────


def _validate(raw: str, fmt: Union[Format, str]) -> ValidationResult:
    try:
        fmt = Format.coerce(fmt)
    except CoordinateInputError as exc:
        return ValidationResult.failure(exc, tuple(f.value for f in Format))

    text = raw.strip()
    if not text:
        return ValidationResult(
            valid=False,
            error="Input cannot be empty",
            error_kind=GrammarMismatch.__name__,
            suggestions=tuple(f"e.g. {example}" for example in _EXAMPLES[fmt]),
        )

    try:
        check(parse(text, fmt))
    except CoordinateInputError as exc:
        logger.debug("Rejected %s input %r: %s", fmt.value, text, exc)
        return ValidationResult.failure(exc, suggestions_for(text, fmt, exc))
    return ValidationResult.ok()


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))


def _range_hints(text: str, fmt: Format, exc: OutOfRange) -> list[str]:
    hints = [f"{exc.field} must be between {exc.low:g} and {exc.high:g}"]
    if fmt is Format.LATLONG:
        pair = latlong.match_decimal(text)
        if pair is not None:
            clamped = LatLong(
                lat=_clamp(pair[0], latlong.LAT_LIMIT),
                lng=_clamp(pair[1], latlong.LNG_LIMIT),
            )
            hints.insert(0, f"{clamped.lat:g}, {clamped.lng:g}")
            if abs(pair[0]) > latlong.LAT_LIMIT and abs(pair[1]) <= latlong.LAT_LIMIT:
                hints.append(f"{pair[1]:g}, {pair[0]:g} (latitude first)")
    return hints


def _precision_hints(text: str) -> list[str]:
    hints = ["MGRS needs an even number of digits (2, 4, 6, 8 or 10)"]
    m = re.match(r"^([0-9]{1,2}[A-Z]{3})\s*([0-9]+)$", text.replace(" ", ""), re.IGNORECASE)
    if m is not None:
        head, digits = m.group(1).upper(), m.group(2)
        trimmed = digits[: min(len(digits) - len(digits) % 2, 10)]
        if trimmed:
            hints.insert(0, f"{head}{trimmed}")
    return hints


def _grammar_hints(text: str, fmt: Format) -> list[str]:
    hints: list[str] = []
    if fmt is Format.LATLONG:
        parts = [p for p in re.split(r"[,\s]+", text) if p]
        if len(parts) == 2:
            hints.append(f"{parts[0]}, {parts[1]}")
        if "°" in text:
            hints.append(_EXAMPLES[Format.LATLONG][1])
    elif fmt is Format.UTM:
        compact = re.match(r"^([0-9]{1,2})([A-Z])([0-9]+)$", text, re.IGNORECASE)
        if compact is not None:
            zone, letter, rest = compact.groups()
            half = len(rest) // 2
            hints.append(f"{zone}{letter.upper()} {rest[:half]} {rest[half:]}")
    elif fmt is Format.MGRS:
        if " " in text:
            hints.append(re.sub(r"\s+", "", text).upper())
    elif fmt is Format.WORD_TRIPLE:
        if "-" in text or "_" in text:
            hints.append(re.sub(r"[-_]", ".", text).lower())
        words = [w for w in re.split(r"[.\s_-]+", text) if w]
        if len(words) == 3:
            hints.append(".".join(words).lower())
    return hints


def _geocoder_suggestions(exc: CoordConvertError) -> tuple[str, ...]:
    if getattr(exc, "retryable", False):
        return ("try again in a moment",)
    return ("check the spelling of each word",)
