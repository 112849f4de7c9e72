"""UTM parsing and the MGRS latitude-band table."""

from __future__ import annotations

import re
from typing import Optional

from coordconvert.exceptions import GrammarMismatch, InvalidBand, InvalidZone
from coordconvert.models import UTM

MIN_ZONE = 1
MAX_ZONE = 60

# Latitude bands, 8 degrees each from 80S; X is stretched to 84N.
BAND_LETTERS = "CDEFGHJKLMNPQRSTUVWX"
_SOUTHERN_BANDS = frozenset("CDEFGHJKLM")

MIN_LATITUDE = -80.0
MAX_LATITUDE = 84.0

# 18T 585628 4511322
_UTM_RE = re.compile(
    r"^([0-9]{1,2})\s*([A-Z])\s+([0-9]+(?:\.[0-9]+)?)\s+([0-9]+(?:\.[0-9]+)?)$",
    re.IGNORECASE,
)


def hemisphere_for_band(letter: str) -> str:
    """
    Return 'N' or 'S' for a latitude band letter.

    Bands C-M lie south of the equator, N-X north of it. Raises
    InvalidBand for letters outside the table (A, B, I, O, Y, Z).
    """
    band = letter.upper()
    if len(band) != 1 or band not in BAND_LETTERS:
        raise InvalidBand(letter)
    return "S" if band in _SOUTHERN_BANDS else "N"


def band_for_latitude(lat: float) -> Optional[str]:
    """Return the band letter covering *lat*, or None outside 80S-84N."""
    if lat < MIN_LATITUDE or lat > MAX_LATITUDE:
        return None
    index = min(int((lat - MIN_LATITUDE) // 8), len(BAND_LETTERS) - 1)
    return BAND_LETTERS[index]


def check_zone(zone: int) -> int:
    if not MIN_ZONE <= zone <= MAX_ZONE:
        raise InvalidZone(zone)
    return zone


def parse(text: str) -> UTM:
    """
    Parse '<zone><band> <easting> <northing>' into a UTM value.

    Raises GrammarMismatch, InvalidZone or InvalidBand.
    """
    m = _UTM_RE.match(text.strip())
    if m is None:
        raise GrammarMismatch(text, "utm", "expected e.g. 18T 585628 4511322")

    zone = check_zone(int(m.group(1)))
    band = m.group(2).upper()
    hemisphere = hemisphere_for_band(band)

    return UTM(
        zone=zone,
        hemisphere=hemisphere,
        easting=float(m.group(3)),
        northing=float(m.group(4)),
        band=band,
    )


def format_utm(value: UTM) -> str:
    """Canonical text, e.g. '18T 585628 4511322' (whole metres)."""
    label = value.band or value.hemisphere
    return f"{value.zone}{label} {round(value.easting)} {round(value.northing)}"
