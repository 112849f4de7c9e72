"""Typed result models for coordconvert."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from coordconvert.exceptions import CoordConvertError, UnsupportedFormat


class Format(str, Enum):
    """The four supported coordinate notations."""

    LATLONG = "latlong"
    UTM = "utm"
    MGRS = "mgrs"
    WORD_TRIPLE = "what3words"

    @classmethod
    def coerce(cls, value: Union[Format, str]) -> Format:
        """Accept a Format or its string value; raise UnsupportedFormat otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormat(value) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LatLong:
    """WGS84 latitude/longitude in decimal degrees."""

    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class UTM:
    """Universal Transverse Mercator position."""

    zone: int
    hemisphere: str          # "N" or "S"
    easting: float           # metres
    northing: float          # metres
    band: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "zone": self.zone,
            "hemisphere": self.hemisphere,
            "easting": self.easting,
            "northing": self.northing,
            "band": self.band,
        }


@dataclass(frozen=True)
class MGRS:
    """Military Grid Reference System position."""

    grid_zone: str           # e.g. "18T"
    grid_square: str         # e.g. "WL"
    easting: int             # within the 100 km square, at `precision` digits
    northing: int
    precision: int           # 1-5

    @property
    def zone(self) -> int:
        return int(self.grid_zone[:-1])

    @property
    def band(self) -> str:
        return self.grid_zone[-1]

    @property
    def resolution(self) -> float:
        """Edge length of the referenced cell in metres."""
        return float(10 ** (5 - self.precision))

    def to_dict(self) -> dict:
        return {
            "grid_zone": self.grid_zone,
            "grid_square": self.grid_square,
            "easting": self.easting,
            "northing": self.northing,
            "precision": self.precision,
        }


@dataclass(frozen=True)
class WordTriple:
    """Three dot-separated words, optionally resolved to a position."""

    words: tuple[str, str, str]
    position: Optional[LatLong] = None

    @property
    def text(self) -> str:
        return ".".join(self.words)

    @property
    def resolved(self) -> bool:
        return self.position is not None

    def to_dict(self) -> dict:
        return {
            "words": self.text,
            "position": self.position.to_dict() if self.position else None,
        }


CoordinateValue = Union[LatLong, UTM, MGRS, WordTriple]

_VALUE_TYPES: dict[Format, type] = {
    Format.LATLONG: LatLong,
    Format.UTM: UTM,
    Format.MGRS: MGRS,
    Format.WORD_TRIPLE: WordTriple,
}


@dataclass(frozen=True)
class Coordinate:
    """A parsed coordinate: format tag, format-specific value and the source text."""

    format: Format
    value: CoordinateValue
    raw: str

    def __post_init__(self) -> None:
        expected = _VALUE_TYPES[self.format]
        if not isinstance(self.value, expected):
            raise TypeError(
                f"{self.format.value} coordinate requires a {expected.__name__} "
                f"value, got {type(self.value).__name__}"
            )

    def to_dict(self) -> dict:
        return {
            "format": self.format.value,
            "value": self.value.to_dict(),
            "raw": self.raw,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Coordinate:
        """Rebuild a coordinate from the output of to_dict()."""
        fmt = Format.coerce(data["format"])
        value = dict(data["value"])
        if fmt is Format.WORD_TRIPLE:
            position = value.get("position")
            parsed: CoordinateValue = WordTriple(
                words=tuple(value["words"].split(".")),
                position=LatLong(**position) if position else None,
            )
        else:
            parsed = _VALUE_TYPES[fmt](**value)
        return cls(format=fmt, value=parsed, raw=data["raw"])


Conversions = dict[Format, Optional[Coordinate]]


def conversions_to_dict(conversions: Mapping[Format, Optional[Coordinate]]) -> dict:
    return {
        fmt.value: (coord.to_dict() if coord is not None else None)
        for fmt, coord in conversions.items()
    }


def conversions_from_dict(data: Mapping[str, Any]) -> Conversions:
    return {
        Format.coerce(key): (Coordinate.from_dict(val) if val is not None else None)
        for key, val in data.items()
    }


@dataclass(frozen=True)
class CacheEntry:
    """A cached conversion: the source coordinate plus all its equivalents."""

    source: Coordinate
    conversions: Conversions
    timestamp: float


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating raw input against a format."""

    valid: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    suggestions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.valid and (self.error or self.suggestions):
            raise ValueError("a valid result carries no error or suggestions")

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def failure(
        cls, exc: CoordConvertError, suggestions: tuple[str, ...] = ()
    ) -> ValidationResult:
        return cls(
            valid=False,
            error=str(exc),
            error_kind=exc.kind,
            suggestions=tuple(suggestions),
        )

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "error": self.error,
            "error_kind": self.error_kind,
            "suggestions": list(self.suggestions),
        }


_RETRYABLE_KINDS = frozenset({"NetworkError", "RateLimitError"})


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a conversion: the parsed coordinate and its equivalents, or an error."""

    success: bool
    coordinate: Optional[Coordinate] = None
    conversions: Conversions = field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    suggestions: tuple[str, ...] = ()
    from_cache: bool = False

    @property
    def retryable(self) -> bool:
        """True when the failure is transient (network or rate limit)."""
        return self.error_kind in _RETRYABLE_KINDS

    @classmethod
    def ok(
        cls,
        coordinate: Coordinate,
        conversions: Conversions,
        from_cache: bool = False,
    ) -> ConversionResult:
        return cls(
            success=True,
            coordinate=coordinate,
            conversions=dict(conversions),
            from_cache=from_cache,
        )

    @classmethod
    def failure(
        cls, exc: CoordConvertError, suggestions: tuple[str, ...] = ()
    ) -> ConversionResult:
        return cls(
            success=False,
            error=str(exc),
            error_kind=exc.kind,
            suggestions=tuple(suggestions),
        )

    def get(self, fmt: Union[Format, str]) -> Optional[Coordinate]:
        """Return the representation in *fmt*, or None if it has none."""
        return self.conversions.get(Format.coerce(fmt))

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "coordinate": self.coordinate.to_dict() if self.coordinate else None,
            "conversions": conversions_to_dict(self.conversions),
            "error": self.error,
            "error_kind": self.error_kind,
            "suggestions": list(self.suggestions),
            "from_cache": self.from_cache,
        }
