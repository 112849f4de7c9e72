"""
Message-passing conversion handler.

handle_request() takes and returns plain dicts so it can run inline, in a
thread pool or in a process pool with identical results. Nothing here
touches the cache or the geocoder; the engine does both around the call.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from coordconvert import projection, validator
from coordconvert.exceptions import ConversionError, CoordConvertError, CoordinateInputError
from coordconvert.models import (
    Coordinate,
    ConversionResult,
    Format,
    LatLong,
    WordTriple,
    conversions_from_dict,
    conversions_to_dict,
)

logger = logging.getLogger(__name__)


def build_request(
    raw: str,
    fmt: Format,
    position: Optional[LatLong] = None,
    word_triple: Optional[WordTriple] = None,
) -> dict[str, Any]:
    """Request message for handle_request()."""
    message: dict[str, Any] = {"raw": raw, "format": fmt.value}
    if position is not None:
        message["position"] = position.to_dict()
    if word_triple is not None:
        message["word_triple"] = word_triple.to_dict()
    return message


def handle_request(message: Mapping[str, Any]) -> dict[str, Any]:
    """
    Parse, check and derive every representation for one input.

    Request:  {"raw": str, "format": str, "position"?: {...}, "word_triple"?: {...}}
    Response: {"coordinate": {...}, "conversions": {...}}
              or {"error": str, "kind": str, "suggestions": [...]}

    "position" resolves a word-triple source; "word_triple" supplies the
    reverse-geocoded triple for other sources.
    """
    raw = str(message.get("raw", ""))
    try:
        fmt = Format.coerce(message.get("format", ""))
    except CoordinateInputError as exc:
        return {"error": str(exc), "kind": exc.kind, "suggestions": [f.value for f in Format]}

    try:
        coordinate = validator.parse(raw, fmt)
        validator.check(coordinate)

        position = message.get("position")
        if position is not None and isinstance(coordinate.value, WordTriple):
            coordinate = Coordinate(
                format=fmt,
                value=WordTriple(coordinate.value.words, LatLong(**position)),
                raw=coordinate.raw,
            )

        reverse = message.get("word_triple")
        triple = None
        if reverse is not None:
            triple = WordTriple(
                words=tuple(reverse["words"].split(".")),
                position=LatLong(**reverse["position"]) if reverse.get("position") else None,
            )

        conversions = projection.derive_all(coordinate, triple)
    except CoordinateInputError as exc:
        return {
            "error": str(exc),
            "kind": exc.kind,
            "suggestions": list(validator.suggestions_for(raw, fmt, exc)),
        }
    except CoordConvertError as exc:
        return {"error": str(exc), "kind": exc.kind, "suggestions": []}
    except Exception as exc:
        logger.exception("Conversion worker failed for %r", message.get("raw"))
        wrapped = ConversionError(f"Conversion failed: {exc}", cause=exc)
        return {"error": str(wrapped), "kind": wrapped.kind, "suggestions": []}

    return {
        "coordinate": coordinate.to_dict(),
        "conversions": conversions_to_dict(conversions),
    }


def decode_response(response: Mapping[str, Any]) -> ConversionResult:
    """Turn a handle_request() response back into a ConversionResult."""
    if "error" in response:
        return ConversionResult(
            success=False,
            error=response["error"],
            error_kind=response["kind"],
            suggestions=tuple(response.get("suggestions", ())),
        )
    return ConversionResult.ok(
        Coordinate.from_dict(response["coordinate"]),
        conversions_from_dict(response["conversions"]),
    )
