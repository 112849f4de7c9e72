"""Coordinate notation auto-detection."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Optional, Union

from coordconvert.models import Format

_DETECTION_CACHE_SIZE = 50

# Tested in this order; the first match wins. MGRS shares its leading
# zone+band token with UTM, so the denser MGRS form goes first.
_WORD_TRIPLE_RE = re.compile(r"^(?:///)?[^\W\d_]+\.[^\W\d_]+\.[^\W\d_]+$")
_MGRS_RE = re.compile(r"^[0-9]{1,2}[A-Z][A-Z]{2}\s*[0-9]+(?:\s+[0-9]+)?$", re.IGNORECASE)
_UTM_RE = re.compile(
    r"^[0-9]{1,2}\s*[A-Z]\s+[0-9]+(?:\.[0-9]+)?\s+[0-9]+(?:\.[0-9]+)?$", re.IGNORECASE
)
_UTM_COMPACT_RE = re.compile(r"^[0-9]{1,2}[A-Z][0-9]{6,14}$", re.IGNORECASE)

_ZONE_PREFIX_RE = re.compile(r"^[0-9]{1,2}\s*[A-Z]", re.IGNORECASE)


def detect(raw: str) -> Optional[Format]:
    """
    Guess which notation *raw* is written in.

    Returns None only for empty or whitespace-only input; anything that
    is not recognisably a word triple, MGRS or UTM is treated as lat/long.
    """
    text = raw.strip()
    if not text:
        return None
    return _detect(text)


@lru_cache(maxsize=_DETECTION_CACHE_SIZE)
def _detect(text: str) -> Format:
    if _WORD_TRIPLE_RE.match(text):
        return Format.WORD_TRIPLE
    if _MGRS_RE.match(text):
        return Format.MGRS
    if _UTM_RE.match(text) or _UTM_COMPACT_RE.match(text):
        return Format.UTM
    return Format.LATLONG


def detect_batch(inputs: Iterable[str]) -> list[Optional[Format]]:
    return [detect(raw) for raw in inputs]


def confidence(raw: str, fmt: Union[Format, str]) -> float:
    """
    Score how plausible it is that *raw* is written in *fmt*.

    1.0 when detection agrees; a partial score when the text only shows
    some characteristics of the format; 0.0 otherwise.
    """
    fmt = Format.coerce(fmt)
    if detect(raw) is fmt:
        return 1.0

    text = raw.strip()
    if fmt is Format.LATLONG and ("," in text or "°" in text):
        return 0.5
    if fmt is Format.UTM and _ZONE_PREFIX_RE.match(text):
        return 0.5
    if fmt is Format.MGRS and _ZONE_PREFIX_RE.match(text):
        return 0.3
    if fmt is Format.WORD_TRIPLE and "." in text:
        return 0.3
    return 0.0


def clear_cache() -> None:
    _detect.cache_clear()
