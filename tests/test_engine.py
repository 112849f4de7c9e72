"""Tests for coordconvert.engine module."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from coordconvert import projection
from coordconvert.cache import ConversionCache
from coordconvert.engine import ConversionEngine
from coordconvert.exceptions import NetworkError, RateLimitError
from coordconvert.models import MGRS, UTM, Format, LatLong

from conftest import INDEX_HOME_RAFT, StubGeocoder


@pytest.fixture()
def engine(clock) -> ConversionEngine:
    return ConversionEngine(cache=ConversionCache(clock=clock))


class TestScenarios:
    def test_latlong(self, engine):
        result = engine.convert("40.7128, -74.0060", "latlong")
        assert result.success
        assert result.coordinate.value == LatLong(lat=40.7128, lng=-74.006)
        assert result.get(Format.UTM).value.zone == 18
        assert result.get(Format.MGRS).value.grid_zone == "18T"

    def test_mgrs(self, engine):
        result = engine.convert("18TWL8562811322", "mgrs")
        assert result.success
        assert result.coordinate.value == MGRS(
            grid_zone="18T", grid_square="WL", easting=85628, northing=11322, precision=5
        )
        assert result.get("latlong").value.lat == pytest.approx(40.748, abs=2e-3)

    def test_utm(self, engine):
        result = engine.convert("18T 585628 4511322", "utm")
        assert result.success
        value = result.coordinate.value
        assert isinstance(value, UTM)
        assert (value.zone, value.easting, value.northing) == (18, 585628.0, 4511322.0)
        assert value.hemisphere == "N"
        assert result.get(Format.MGRS).raw == "18TWL8562811322"

    def test_validate_out_of_range(self, engine):
        result = engine.validate("91.0, 0.0", "latlong")
        assert not result.valid
        assert "out of range" in result.error
        assert result.suggestions


class TestConvert:
    @pytest.mark.parametrize(
        "raw,fmt",
        [
            ("40.7128, -74.0060", Format.LATLONG),
            ("18T 585628 4511322", Format.UTM),
            ("18TWL8562811322", Format.MGRS),
            ("filled.count.soap", Format.WORD_TRIPLE),
        ],
    )
    def test_detects_when_format_omitted(self, engine, raw, fmt):
        result = engine.convert(raw)
        assert result.success
        assert result.coordinate.format is fmt

    def test_every_format_present(self, engine):
        result = engine.convert("51.5007, -0.1246")
        assert set(result.conversions) == set(Format)
        assert result.get(Format.WORD_TRIPLE) is None

    def test_source_kept_for_its_own_format(self, engine):
        result = engine.convert("18T 585628 4511322")
        assert result.get(Format.UTM) == result.coordinate

    def test_southern_hemisphere(self, engine):
        result = engine.convert("-33.8688, 151.2093")
        utm = result.get(Format.UTM).value
        assert (utm.zone, utm.band, utm.hemisphere) == (56, "H", "S")
        assert result.get(Format.MGRS).raw.startswith("56HLH")

    @pytest.mark.parametrize("raw", ["90, 0", "-90, 0", "85, 10", "-82, 10"])
    def test_polar_has_no_grid(self, engine, raw):
        result = engine.convert(raw, "latlong")
        assert result.success
        assert result.get(Format.UTM) is None
        assert result.get(Format.MGRS) is None

    @pytest.mark.parametrize("raw", ["0, 180", "0, -180"])
    def test_antimeridian(self, engine, raw):
        result = engine.convert(raw, "latlong")
        assert result.success
        assert result.get(Format.UTM).value.zone in (1, 60)

    @pytest.mark.parametrize(
        "raw,kind",
        [
            ("90.0000001, 0", "OutOfRange"),
            ("0T 500000 4500000", "InvalidZone"),
            ("61T 500000 4500000", "InvalidZone"),
            ("18TWL856", "InvalidPrecision"),
            ("18IWL8562811322", "InvalidBand"),
            ("nonsense", "GrammarMismatch"),
            ("\u0661\u0662, 5", "GrammarMismatch"),
        ],
    )
    def test_input_errors_keep_kind(self, engine, raw, kind):
        result = engine.convert(raw)
        assert not result.success
        assert result.error_kind == kind
        assert result.suggestions
        assert not result.retryable

    @pytest.mark.parametrize("zone", [1, 60])
    def test_zone_limits(self, engine, zone):
        assert engine.convert(f"{zone}N 500000 100000", "utm").success

    def test_empty_input(self, engine):
        result = engine.convert("   ")
        assert not result.success
        assert result.error_kind == "GrammarMismatch"
        assert result.error == "'   ' is not a valid coordinate: input is empty"
        assert result.suggestions

    def test_empty_input_with_format(self, engine):
        result = engine.convert("", Format.UTM)
        assert result.error == "'' is not a valid utm coordinate: input is empty"

    def test_unsupported_format(self, engine):
        result = engine.convert("40, 10", "geohash")
        assert result.error_kind == "UnsupportedFormat"
        assert "utm" in result.suggestions

    def test_forced_format_mismatch(self, engine):
        result = engine.convert("40.7128, -74.0060", Format.MGRS)
        assert result.error_kind == "GrammarMismatch"

    def test_unresolved_word_triple(self, engine):
        result = engine.convert("///Index.Home.Raft")
        assert result.success
        assert result.coordinate.value.text == "index.home.raft"
        assert not result.coordinate.value.resolved
        assert result.get(Format.LATLONG) is None
        assert len(engine.cache) == 0


class TestCaching:
    def test_repeat_is_cache_hit(self, engine):
        first = engine.convert("40.7128, -74.0060", "latlong")
        second = engine.convert("40.7128, -74.0060", "latlong")
        assert not first.from_cache
        assert second.from_cache
        assert second.coordinate == first.coordinate
        assert second.conversions == first.conversions

    def test_key_ignores_case_and_padding(self, engine):
        engine.convert("18TWL8562811322")
        assert engine.convert("  18twl8562811322 ").from_cache

    def test_expired_entry_is_rebuilt(self, engine, clock):
        engine.convert("40.7128, -74.0060")
        clock.advance(301.0)
        result = engine.convert("40.7128, -74.0060")
        assert result.success
        assert not result.from_cache

    def test_failures_are_not_cached(self, engine):
        engine.convert("91, 0")
        assert len(engine.cache) == 0

    def test_unexpected_error_is_normalised(self, engine, monkeypatch, caplog):
        def explode(*args, **kwargs):
            raise RuntimeError("projection backend unavailable")

        monkeypatch.setattr(projection, "derive_all", explode)
        with caplog.at_level(logging.ERROR, logger="coordconvert.engine"):
            result = engine.convert("40.7128, -74.0060")
        assert not result.success
        assert result.error_kind == "ConversionError"
        assert "projection backend unavailable" in result.error
        assert len(engine.cache) == 0
        assert "Unexpected failure" in caplog.text


class TestConvertAsync:
    def test_resolves_word_triple(self, clock):
        geocoder = StubGeocoder()
        engine = ConversionEngine(cache=ConversionCache(clock=clock), geocoder=geocoder)
        result = asyncio.run(engine.convert_async("///index.home.raft"))
        assert result.success
        assert result.coordinate.value.position == INDEX_HOME_RAFT
        assert result.get(Format.LATLONG).value == INDEX_HOME_RAFT
        assert result.get(Format.UTM).value.zone == 30
        assert result.get(Format.MGRS).value.band == "U"
        assert geocoder.resolve_calls == ["index.home.raft"]

    def test_resolved_triple_is_cached(self, clock):
        geocoder = StubGeocoder()
        engine = ConversionEngine(cache=ConversionCache(clock=clock), geocoder=geocoder)
        asyncio.run(engine.convert_async("index.home.raft"))
        again = engine.convert("index.home.raft")
        assert again.from_cache
        assert again.coordinate.value.resolved
        assert len(geocoder.resolve_calls) == 1

    def test_unknown_words(self, clock):
        engine = ConversionEngine(cache=ConversionCache(clock=clock), geocoder=StubGeocoder())
        result = asyncio.run(engine.convert_async("no.such.place"))
        assert result.error_kind == "GrammarMismatch"
        assert not result.retryable

    @pytest.mark.parametrize(
        "error,kind",
        [
            (NetworkError("timed out"), "NetworkError"),
            (RateLimitError(12.0), "RateLimitError"),
        ],
    )
    def test_geocoder_failures_are_retryable(self, clock, error, kind):
        engine = ConversionEngine(
            cache=ConversionCache(clock=clock), geocoder=StubGeocoder(error=error)
        )
        result = asyncio.run(engine.convert_async("index.home.raft"))
        assert not result.success
        assert result.error_kind == kind
        assert result.retryable
        assert len(engine.cache) == 0

    def test_reverse_geocode(self, clock):
        geocoder = StubGeocoder()
        engine = ConversionEngine(
            cache=ConversionCache(clock=clock), geocoder=geocoder, reverse_geocode=True
        )
        result = asyncio.run(engine.convert_async("51.520847, -0.195521"))
        assert result.get(Format.WORD_TRIPLE).raw == "filled.count.soap"
        assert len(geocoder.reverse_calls) == 1

    def test_reverse_skipped_without_flag(self, clock):
        geocoder = StubGeocoder()
        engine = ConversionEngine(cache=ConversionCache(clock=clock), geocoder=geocoder)
        result = asyncio.run(engine.convert_async("51.520847, -0.195521"))
        assert result.get(Format.WORD_TRIPLE) is None
        assert geocoder.reverse_calls == []

    def test_executor_matches_inline(self, clock):
        inline = ConversionEngine(cache=ConversionCache(clock=clock))
        with ThreadPoolExecutor(max_workers=2) as pool:
            offloaded = ConversionEngine(cache=ConversionCache(clock=clock), executor=pool)
            for raw in ["40.7128, -74.0060", "18T 585628 4511322", "18TWL8562811322", "91, 0"]:
                a = asyncio.run(inline.convert_async(raw))
                b = asyncio.run(offloaded.convert_async(raw))
                assert a == b

    def test_async_without_geocoder(self, engine):
        result = asyncio.run(engine.convert_async("index.home.raft"))
        assert result.success
        assert not result.coordinate.value.resolved

    def test_async_cache_hit(self, engine):
        engine.convert("18TWL8562811322")
        result = asyncio.run(engine.convert_async("18TWL8562811322"))
        assert result.from_cache


class TestValidateAsync:
    def test_delegates_to_geocoder(self, clock):
        geocoder = StubGeocoder()
        engine = ConversionEngine(geocoder=geocoder)
        result = asyncio.run(engine.validate_async("index.home.raft", "what3words"))
        assert result.valid
        assert geocoder.resolve_calls == ["index.home.raft"]
