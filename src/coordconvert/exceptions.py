"""Custom exception hierarchy for coordconvert."""

from __future__ import annotations

from typing import Optional


class CoordConvertError(Exception):
    """Base exception for all coordconvert errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


# ── Permanent input errors ────────────────────────────────────


class CoordinateInputError(CoordConvertError):
    """The input text cannot be turned into a coordinate as written."""


class GrammarMismatch(CoordinateInputError):
    """The text matches no known pattern for the selected format."""

    def __init__(self, raw: str, fmt: str, detail: str = ""):
        self.raw = raw
        self.format = fmt
        self.detail = detail
        label = f"{fmt} coordinate" if fmt else "coordinate"
        message = f"'{raw}' is not a valid {label}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class OutOfRange(CoordinateInputError):
    """A numeric component lies outside the format's valid domain."""

    def __init__(self, field: str, value: float, low: float, high: float):
        self.field = field
        self.value = value
        self.low = low
        self.high = high
        super().__init__(
            f"{field} {value} is out of range (must be between {low:g} and {high:g})"
        )


class InvalidZone(CoordinateInputError):
    """UTM/MGRS zone number outside 1-60."""

    def __init__(self, zone: int):
        self.zone = zone
        super().__init__(f"UTM zone {zone} is invalid (must be between 1 and 60)")


class InvalidBand(CoordinateInputError):
    """Latitude band letter is not one of C-X (I and O excluded)."""

    def __init__(self, letter: str):
        self.letter = letter
        super().__init__(f"'{letter}' is not a valid latitude band letter")


class InvalidPrecision(CoordinateInputError):
    """MGRS digit string has an odd length or more than ten digits."""

    def __init__(self, digits: str):
        self.digits = digits
        super().__init__(
            f"MGRS digit string '{digits}' must have an even length "
            f"between 2 and 10 (got {len(digits)})"
        )


class UnsupportedFormat(CoordinateInputError):
    """The requested format is not one of the supported notations."""

    def __init__(self, fmt: object):
        self.format = fmt
        super().__init__(f"Unsupported format: {fmt!r}")


# ── Transient geocoding errors ────────────────────────────────


class GeocodingError(CoordConvertError):
    """Word-triple resolution failed for a reason worth retrying."""

    retryable = True


class NetworkError(GeocodingError):
    """The geocoding service could not be reached or answered badly."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Geocoding service unavailable: {detail}")


class RateLimitError(GeocodingError):
    """The geocoding request budget is exhausted for now."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(
            f"Geocoding rate limit reached; retry in {retry_after:.1f}s"
        )


# ── Internal failures ─────────────────────────────────────────


class ConversionError(CoordConvertError):
    """Unexpected internal failure, normalised at the engine boundary."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ConfigurationError(CoordConvertError):
    """An environment setting could not be interpreted."""

    def __init__(self, name: str, value: str, detail: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for {name}: '{value}' ({detail})")
