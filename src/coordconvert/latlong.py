"""Latitude/longitude parsing: decimal degrees, DMS and DDM."""

from __future__ import annotations

import re
from typing import Optional

from coordconvert.exceptions import GrammarMismatch, OutOfRange
from coordconvert.models import LatLong

LAT_LIMIT = 90.0
LNG_LIMIT = 180.0

_NUM = r"[-+]?[0-9]{1,3}(?:\.[0-9]+)?"

# 40.7128, -74.0060  |  40.7128 -74.0060  |  40.7128,-74.0060
_DECIMAL_RE = re.compile(rf"^({_NUM})\s*(?:,\s*|\s+)({_NUM})$")

# 40°42'46.0"N 74°00'21.6"W
_DMS_PART = r"([0-9]{1,3})\s*°\s*([0-9]{1,2})\s*['′]\s*([0-9]{1,2}(?:\.[0-9]+)?)\s*[\"″]\s*([NSEW])"
_DMS_RE = re.compile(rf"^{_DMS_PART}\s*,?\s*{_DMS_PART}$", re.IGNORECASE)

# 40°42.767'N 74°0.360'W
_DDM_PART = r"([0-9]{1,3})\s*°\s*([0-9]{1,2}(?:\.[0-9]+)?)\s*['′]\s*([NSEW])"
_DDM_RE = re.compile(rf"^{_DDM_PART}\s*,?\s*{_DDM_PART}$", re.IGNORECASE)


def dms_to_decimal(
    deg: float, minutes: float = 0.0, seconds: float = 0.0, hemisphere: str = ""
) -> float:
    """Convert degrees/minutes/seconds to signed decimal degrees."""
    decimal = abs(deg) + minutes / 60.0 + seconds / 3600.0
    if hemisphere.upper() in ("S", "W"):
        decimal = -decimal
    return decimal


def match_decimal(text: str) -> Optional[tuple[float, float]]:
    """Return the (lat, lng) pair if *text* is decimal-degree shaped, without range checks."""
    m = _DECIMAL_RE.match(text.strip())
    if m is None:
        return None
    return float(m.group(1)), float(m.group(2))


def parse(text: str) -> LatLong:
    """
    Parse decimal-degree, DMS or DDM text into a LatLong.

    Raises GrammarMismatch if no notation matches and OutOfRange if a
    component exceeds its domain.
    """
    stripped = text.strip()

    pair = match_decimal(stripped)
    if pair is not None:
        return _checked(*pair)

    m = _DMS_RE.match(stripped)
    if m is not None:
        first = _angle(m.group(1), m.group(2), m.group(3), m.group(4))
        second = _angle(m.group(5), m.group(6), m.group(7), m.group(8))
        return _ordered(stripped, first, second)

    m = _DDM_RE.match(stripped)
    if m is not None:
        first = _angle(m.group(1), m.group(2), "0", m.group(3))
        second = _angle(m.group(4), m.group(5), "0", m.group(6))
        return _ordered(stripped, first, second)

    raise GrammarMismatch(
        text, "latlong", 'expected "40.7128, -74.0060" or 40°42\'46.0"N 74°00\'21.6"W'
    )


def format_latlong(value: LatLong, places: int = 6) -> str:
    """Canonical decimal-degree text, e.g. '40.712800, -74.006000'."""
    return f"{value.lat:.{places}f}, {value.lng:.{places}f}"


def format_dms(value: LatLong) -> str:
    """Degree-minute-second text, e.g. 40°42'46.08"N 74°0'21.60"W."""
    return f"{_dms(value.lat, 'NS')} {_dms(value.lng, 'EW')}"


# ── Private helpers ───────────────────────────────────────────


def _angle(deg: str, minutes: str, seconds: str, hemi: str) -> tuple[float, str]:
    m = float(minutes)
    s = float(seconds)
    if m >= 60:
        raise OutOfRange("minutes", m, 0, 60)
    if s >= 60:
        raise OutOfRange("seconds", s, 0, 60)
    hemi = hemi.upper()
    return dms_to_decimal(float(deg), m, s, hemi), hemi


def _ordered(raw: str, first: tuple[float, str], second: tuple[float, str]) -> LatLong:
    """Place the N/S component first regardless of the order it was written in."""
    (a, a_hemi), (b, b_hemi) = first, second
    if a_hemi in "NS" and b_hemi in "EW":
        return _checked(a, b)
    if a_hemi in "EW" and b_hemi in "NS":
        return _checked(b, a)
    raise GrammarMismatch(raw, "latlong", "needs one N/S and one E/W component")


def _checked(lat: float, lng: float) -> LatLong:
    if abs(lat) > LAT_LIMIT:
        raise OutOfRange("latitude", lat, -LAT_LIMIT, LAT_LIMIT)
    if abs(lng) > LNG_LIMIT:
        raise OutOfRange("longitude", lng, -LNG_LIMIT, LNG_LIMIT)
    return LatLong(lat=lat, lng=lng)


def _dms(decimal: float, hemispheres: str) -> str:
    hemi = hemispheres[0] if decimal >= 0 else hemispheres[1]
    total = round(abs(decimal) * 3600.0, 2)
    deg, rest = divmod(total, 3600.0)
    minutes, seconds = divmod(rest, 60.0)
    return f"{int(deg)}°{int(minutes)}'{seconds:.2f}\"{hemi}"
