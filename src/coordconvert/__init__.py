"""coordconvert — Detect, validate and convert lat/long, UTM, MGRS and what3words input."""

import logging

from coordconvert.client import CoordinateConverter
from coordconvert.config import Settings
from coordconvert.detect import detect
from coordconvert.exceptions import (
    ConfigurationError,
    ConversionError,
    CoordConvertError,
    CoordinateInputError,
    GeocodingError,
    GrammarMismatch,
    InvalidBand,
    InvalidPrecision,
    InvalidZone,
    NetworkError,
    OutOfRange,
    RateLimitError,
    UnsupportedFormat,
)
from coordconvert.models import (
    MGRS,
    UTM,
    Coordinate,
    ConversionResult,
    Format,
    LatLong,
    ValidationResult,
    WordTriple,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CoordinateConverter",
    "Settings",
    "detect",
    "Format",
    "Coordinate",
    "LatLong",
    "UTM",
    "MGRS",
    "WordTriple",
    "ConversionResult",
    "ValidationResult",
    "CoordConvertError",
    "CoordinateInputError",
    "GrammarMismatch",
    "OutOfRange",
    "InvalidZone",
    "InvalidBand",
    "InvalidPrecision",
    "UnsupportedFormat",
    "GeocodingError",
    "NetworkError",
    "RateLimitError",
    "ConversionError",
    "ConfigurationError",
]
