"""
Coordinate Converter — Interactive CLI
======================================
Thin wrapper around the coordconvert library.

Usage:
    coordconvert                                  # interactive mode
    coordconvert "40.7128, -74.0060"              # single conversion
    coordconvert --format utm "18T 585628 4511322"
    coordconvert --json "18TWL8562811322"

Settings are read from environment variables (see coordconvert.config):
    W3W_API_KEY               enables word-triple resolution
    COORDCONVERT_CACHE_SIZE   conversion cache capacity
    ...
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from coordconvert import CoordinateConverter
from coordconvert.config import Settings
from coordconvert.exceptions import ConfigurationError
from coordconvert.models import ConversionResult, Format

_BANNER = """\
╔══════════════════════════════════════╗
║        Coordinate Converter          ║
║  Lat/Long · UTM · MGRS · what3words  ║
╚══════════════════════════════════════╝
Type 'q' to quit.
"""

_LABELS = {
    Format.LATLONG: "Lat/Long",
    Format.UTM: "UTM",
    Format.MGRS: "MGRS",
    Format.WORD_TRIPLE: "what3words",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coordconvert",
        description="Convert coordinates between lat/long, UTM, MGRS and what3words.",
    )
    parser.add_argument("coordinate", nargs="*", help="coordinate text (omit for interactive mode)")
    parser.add_argument(
        "-f", "--format",
        choices=[f.value for f in Format],
        help="force the input format instead of detecting it",
    )
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    parser.add_argument(
        "--reverse", action="store_true",
        help="also look up the what3words address (needs W3W_API_KEY)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def _convert(
    converter: CoordinateConverter, raw: str, fmt: Optional[str]
) -> ConversionResult:
    if converter.geocoder is not None:
        return asyncio.run(converter.convert_async(raw, fmt))
    return converter.convert(raw, fmt)


def _print_result(result: ConversionResult) -> None:
    if not result.success:
        print(f"  ✗ {result.error}")
        for hint in result.suggestions:
            print(f"      try: {hint}")
        return

    source = result.coordinate
    cached = " (cached)" if result.from_cache else ""
    print(f"  ✓ Detected {_LABELS[source.format]}{cached}")
    print()
    print(f"  ┌──────────────────────────────────────────────────────┐")
    for fmt in Format:
        coord = result.conversions.get(fmt)
        text = coord.raw if coord is not None else "—"
        print(f"  │  {_LABELS[fmt]:<16}{text:<37}│")
    print(f"  └──────────────────────────────────────────────────────┘")


def _run_interactive(converter: CoordinateConverter, fmt: Optional[str]) -> None:
    print(_BANNER)

    while True:
        try:
            raw = input("\nCoordinate:  ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            break

        if raw.lower() in ("q", "quit", "exit"):
            print("Bye!")
            break
        if not raw:
            print("  ✗ A coordinate is required.")
            continue

        _print_result(_convert(converter, raw, fmt))


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point — supports both CLI args and interactive mode."""
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    with CoordinateConverter(settings, reverse_geocode=args.reverse) as converter:
        if not args.coordinate:
            _run_interactive(converter, args.format)
            return 0

        # Single-shot mode
        result = _convert(converter, " ".join(args.coordinate), args.format)
        if args.json:
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        else:
            _print_result(result)
        return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
