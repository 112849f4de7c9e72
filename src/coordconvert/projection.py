"""
Numeric conversion between notations.

Lat/long is the hub: every coordinate is reduced to a LatLong and the
other representations are derived from it. UTM goes through pyproj
(WGS84 to EPSG:326zz / 327zz); MGRS lettering comes from the `mgrs`
package through `mgrs_grid`.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Optional

from pyproj import Transformer

from coordconvert import latlong, mgrs_grid, utm_grid
from coordconvert.exceptions import ConversionError
from coordconvert.models import (
    MGRS,
    UTM,
    Conversions,
    Coordinate,
    Format,
    LatLong,
    WordTriple,
)

logger = logging.getLogger(__name__)

DEFAULT_MGRS_PRECISION = 5

_WGS84 = "EPSG:4326"

# Absorbs float noise so 585628.0 does not truncate to 585627.
_TRUNCATION_EPSILON = 1e-6


@lru_cache(maxsize=None)
def _transformer(zone: int, southern: bool, inverse: bool) -> Transformer:
    """Cached WGS84 <-> UTM zone transformer (x=lng/easting, y=lat/northing)."""
    utm_crs = f"EPSG:{(32700 if southern else 32600) + zone}"
    if inverse:
        return Transformer.from_crs(utm_crs, _WGS84, always_xy=True)
    return Transformer.from_crs(_WGS84, utm_crs, always_xy=True)


def utm_zone_for(lat: float, lng: float) -> int:
    """Standard UTM zone for a position, including the Norway and Svalbard exceptions."""
    if 56.0 <= lat < 64.0 and 3.0 <= lng < 12.0:
        return 32
    if 72.0 <= lat <= 84.0 and 0.0 <= lng < 42.0:
        if lng < 9.0:
            return 31
        if lng < 21.0:
            return 33
        if lng < 33.0:
            return 35
        return 37
    return int(((lng + 180.0) % 360.0) // 6.0) + 1


# ── Lat/long <-> UTM ──────────────────────────────────────────


def latlong_to_utm(value: LatLong, zone: Optional[int] = None) -> Optional[UTM]:
    """
    Project onto a UTM zone (the standard one unless *zone* is given).

    Returns None outside the 80S-84N UTM domain.
    """
    band = utm_grid.band_for_latitude(value.lat)
    if band is None:
        return None
    if zone is None:
        zone = utm_zone_for(value.lat, value.lng)
    southern = value.lat < 0
    easting, northing = _transformer(zone, southern, False).transform(
        value.lng, value.lat
    )
    return UTM(
        zone=zone,
        hemisphere="S" if southern else "N",
        easting=easting,
        northing=northing,
        band=band,
    )


def utm_to_latlong(value: UTM) -> LatLong:
    lng, lat = _transformer(value.zone, value.hemisphere == "S", True).transform(
        value.easting, value.northing
    )
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ConversionError(f"UTM position {value} cannot be projected")
    return LatLong(lat=lat, lng=lng)


# ── UTM / lat/long <-> MGRS ───────────────────────────────────


def utm_to_mgrs(value: UTM, precision: int = DEFAULT_MGRS_PRECISION) -> MGRS:
    nudged = UTM(
        zone=value.zone,
        hemisphere=value.hemisphere,
        easting=value.easting + _TRUNCATION_EPSILON,
        northing=value.northing + _TRUNCATION_EPSILON,
        band=value.band,
    )
    return mgrs_grid.from_utm(nudged, precision)


def latlong_to_mgrs(
    value: LatLong, precision: int = DEFAULT_MGRS_PRECISION
) -> Optional[MGRS]:
    """Encode as MGRS; None outside the UTM domain (polar UPS is not supported)."""
    if utm_grid.band_for_latitude(value.lat) is None:
        return None
    return mgrs_grid.from_latlong(value.lat, value.lng, precision)


def mgrs_to_utm(value: MGRS) -> UTM:
    """Centre of the referenced cell as a UTM position."""
    return mgrs_grid.to_utm(value, centre=True)


def mgrs_to_latlong(value: MGRS) -> LatLong:
    return utm_to_latlong(mgrs_to_utm(value))


# ── Coordinate-level helpers ──────────────────────────────────


def to_latlong(coordinate: Coordinate) -> Optional[LatLong]:
    """Reduce any coordinate to lat/long; None for an unresolved word triple."""
    value = coordinate.value
    if isinstance(value, LatLong):
        return value
    if isinstance(value, UTM):
        return utm_to_latlong(value)
    if isinstance(value, MGRS):
        return mgrs_to_latlong(value)
    if isinstance(value, WordTriple):
        return value.position
    raise ConversionError(f"no lat/long reduction for {type(value).__name__}")


def _direct_utm(coordinate: Coordinate, position: LatLong) -> Optional[UTM]:
    """UTM taken straight from a UTM/MGRS source when it sits in the standard zone."""
    value = coordinate.value
    if isinstance(value, MGRS):
        value = mgrs_to_utm(value)
    if not isinstance(value, UTM):
        return None
    band = utm_grid.band_for_latitude(position.lat)
    if band is None or value.zone != utm_zone_for(position.lat, position.lng):
        return None
    return UTM(
        zone=value.zone,
        hemisphere=value.hemisphere,
        easting=value.easting,
        northing=value.northing,
        band=band,
    )


def derive_all(
    coordinate: Coordinate, word_triple: Optional[WordTriple] = None
) -> Conversions:
    """
    Return the coordinate's representation in every format.

    The source coordinate is kept as-is for its own format. Entries that
    cannot be represented (polar UTM/MGRS, a word triple nobody resolved)
    are None.
    """
    conversions: Conversions = {fmt: None for fmt in Format}
    conversions[coordinate.format] = coordinate

    position = to_latlong(coordinate)
    if position is None:
        return conversions

    if conversions[Format.LATLONG] is None:
        conversions[Format.LATLONG] = Coordinate(
            Format.LATLONG, position, latlong.format_latlong(position)
        )

    utm_value = _direct_utm(coordinate, position) or latlong_to_utm(position)
    if conversions[Format.UTM] is None and utm_value is not None:
        conversions[Format.UTM] = Coordinate(
            Format.UTM, utm_value, utm_grid.format_utm(utm_value)
        )
    if conversions[Format.MGRS] is None and utm_value is not None:
        mgrs_value = utm_to_mgrs(utm_value)
        conversions[Format.MGRS] = Coordinate(
            Format.MGRS, mgrs_value, mgrs_grid.format_mgrs(mgrs_value)
        )

    if conversions[Format.WORD_TRIPLE] is None and word_triple is not None:
        conversions[Format.WORD_TRIPLE] = Coordinate(
            Format.WORD_TRIPLE, word_triple, word_triple.text
        )

    logger.debug(
        "Derived %d representations for %r",
        sum(1 for c in conversions.values() if c is not None),
        coordinate.raw,
    )
    return conversions
