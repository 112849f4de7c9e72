"""
MGRS grid references.

Parsing, validation and formatting of the text grammar live here; the
100 km square lettering and the UTM <-> MGRS arithmetic are delegated
to the `mgrs` package.
"""

from __future__ import annotations

import re

import mgrs
from mgrs.core import MGRSError

from coordconvert.exceptions import GrammarMismatch, InvalidPrecision
from coordconvert.models import MGRS, UTM
from coordconvert.utm_grid import check_zone, hemisphere_for_band

MAX_PRECISION = 5

# Square letters skip I and O.
_EXCLUDED_SQUARE_LETTERS = frozenset("IO")

# 18TWL8562811322  |  18TWL 85628 11322
_MGRS_RE = re.compile(
    r"^([0-9]{1,2})([A-Z])([A-Z]{2})\s*([0-9]*)(?:\s+([0-9]+))?$",
    re.IGNORECASE,
)

_converter = mgrs.MGRS()


def parse(text: str) -> MGRS:
    """
    Parse '<zone><band><square><digits>' into an MGRS value.

    The digit string is split in half: easting first, northing second.
    Raises GrammarMismatch, InvalidZone, InvalidBand or InvalidPrecision.
    """
    m = _MGRS_RE.match(text.strip())
    if m is None:
        raise GrammarMismatch(text, "mgrs", "expected e.g. 18TWL8562811322")

    zone = check_zone(int(m.group(1)))
    band = m.group(2).upper()
    hemisphere_for_band(band)

    square = m.group(3).upper()
    if _EXCLUDED_SQUARE_LETTERS.intersection(square):
        raise GrammarMismatch(
            text, "mgrs", "grid square letters never include I or O"
        )

    if m.group(5) is not None:
        # Space-separated halves must be the same length.
        if len(m.group(4)) != len(m.group(5)):
            raise InvalidPrecision(m.group(4) + m.group(5))
    digits = m.group(4) + (m.group(5) or "")

    if not digits or len(digits) % 2 or len(digits) > 2 * MAX_PRECISION:
        raise InvalidPrecision(digits)

    precision = len(digits) // 2
    return MGRS(
        grid_zone=f"{zone}{band}",
        grid_square=square,
        easting=int(digits[:precision]),
        northing=int(digits[precision:]),
        precision=precision,
    )


def digit_string(value: MGRS) -> str:
    """Zero-padded easting+northing digits at the value's precision."""
    width = value.precision
    return f"{value.easting:0{width}d}{value.northing:0{width}d}"


def format_mgrs(value: MGRS) -> str:
    """Canonical compact text, e.g. '18TWL8562811322'."""
    return f"{value.grid_zone}{value.grid_square}{digit_string(value)}"


# ── UTM / lat-long encoding ───────────────────────────────────


def from_utm(value: UTM, precision: int = MAX_PRECISION) -> MGRS:
    """Encode a UTM position as MGRS, truncating to *precision* digit pairs."""
    try:
        text = _converter.UTMToMGRS(
            value.zone, value.hemisphere, value.easting, value.northing,
            MGRSPrecision=precision,
        )
    except MGRSError as exc:
        raise GrammarMismatch(
            f"{value.zone}{value.hemisphere} {value.easting:.0f} {value.northing:.0f}",
            "mgrs", f"position has no MGRS reference ({exc})",
        ) from None
    return parse(text)


def from_latlong(lat: float, lng: float, precision: int = MAX_PRECISION) -> MGRS:
    try:
        text = _converter.toMGRS(lat, lng, MGRSPrecision=precision)
    except MGRSError as exc:
        raise GrammarMismatch(
            f"{lat:g}, {lng:g}", "mgrs", f"position has no MGRS reference ({exc})"
        ) from None
    return parse(text)


def to_utm(value: MGRS, centre: bool = True) -> UTM:
    """
    Decode to a UTM position.

    With *centre* the result is the middle of the referenced cell,
    otherwise its south-west corner. Raises GrammarMismatch when the
    square letters do not exist in the value's grid zone.
    """
    text = format_mgrs(value)
    try:
        zone, hemisphere, easting, northing = _converter.MGRSToUTM(text)
    except MGRSError:
        raise GrammarMismatch(
            text, "mgrs",
            f"square {value.grid_square} does not exist in grid zone {value.grid_zone}",
        ) from None

    offset = value.resolution / 2.0 if centre else 0.0
    return UTM(
        zone=zone,
        hemisphere=hemisphere,
        easting=easting + offset,
        northing=northing + offset,
        band=value.band,
    )
