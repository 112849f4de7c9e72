"""Tests for coordconvert.geocoding module."""

import asyncio

import httpx
import pytest

from coordconvert.exceptions import GrammarMismatch, NetworkError, RateLimitError
from coordconvert.geocoding import RateLimiter
from coordconvert.models import LatLong


def _coordinates_payload(words: str, lat: float, lng: float) -> dict:
    return {
        "country": "GB",
        "coordinates": {"lng": lng, "lat": lat},
        "words": words,
        "language": "en",
    }


class TestRateLimiter:
    def test_allows_up_to_limit(self, clock):
        limiter = RateLimiter(max_calls=2, period=60.0, clock=clock)
        limiter.acquire()
        limiter.acquire()
        assert limiter.remaining == 0
        with pytest.raises(RateLimitError) as exc_info:
            limiter.acquire()
        assert exc_info.value.retry_after == pytest.approx(60.0)

    def test_window_slides(self, clock):
        limiter = RateLimiter(max_calls=1, period=60.0, clock=clock)
        limiter.acquire()
        clock.advance(45.0)
        with pytest.raises(RateLimitError) as exc_info:
            limiter.acquire()
        assert exc_info.value.retry_after == pytest.approx(15.0)
        clock.advance(15.0)
        limiter.acquire()

    def test_rate_limit_is_retryable(self, clock):
        limiter = RateLimiter(max_calls=0, clock=clock)
        with pytest.raises(RateLimitError) as exc_info:
            limiter.acquire()
        assert exc_info.value.retryable


class TestResolve:
    def test_request_shape(self, make_geocoder):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=_coordinates_payload("index.home.raft", 51.521251, -0.203586)
            )

        geocoder = make_geocoder(handler)
        position = asyncio.run(geocoder.resolve("///Index.Home.Raft"))

        assert position == LatLong(lat=51.521251, lng=-0.203586)
        request = seen[0]
        assert request.url.path == "/v3/convert-to-coordinates"
        assert request.url.params["words"] == "index.home.raft"
        assert request.url.params["key"] == "test-key"

    def test_results_are_cached(self, make_geocoder):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_coordinates_payload("a.b.c", 1.0, 2.0))

        geocoder = make_geocoder(handler)
        asyncio.run(geocoder.resolve("a.b.c"))
        asyncio.run(geocoder.resolve("A.B.C"))
        assert len(calls) == 1
        assert geocoder.requests_made == 1

        geocoder.clear_cache()
        asyncio.run(geocoder.resolve("a.b.c"))
        assert len(calls) == 2

    def test_concurrent_requests_are_deduplicated(self, make_geocoder):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_coordinates_payload("a.b.c", 1.0, 2.0))

        geocoder = make_geocoder(handler)

        async def scenario():
            return await asyncio.gather(*(geocoder.resolve("a.b.c") for _ in range(5)))

        results = asyncio.run(scenario())
        assert len(calls) == 1
        assert all(r == LatLong(1.0, 2.0) for r in results)

    def test_bad_words(self, make_geocoder):
        def handler(request):
            return httpx.Response(
                400,
                json={
                    "error": {
                        "code": "BadWords",
                        "message": "Invalid or non-existent 3 word address",
                    }
                },
            )

        geocoder = make_geocoder(handler)
        with pytest.raises(GrammarMismatch, match="non-existent"):
            asyncio.run(geocoder.resolve("no.such.place"))

    def test_malformed_input_never_sent(self, make_geocoder):
        calls = []
        geocoder = make_geocoder(lambda request: calls.append(request))
        with pytest.raises(GrammarMismatch):
            asyncio.run(geocoder.resolve("not a triple"))
        assert calls == []

    def test_invalid_key_is_network_error(self, make_geocoder):
        def handler(request):
            return httpx.Response(
                401, json={"error": {"code": "InvalidKey", "message": "Authentication failed"}}
            )

        geocoder = make_geocoder(handler)
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(geocoder.resolve("a.b.c"))
        assert exc_info.value.status_code == 401
        assert "InvalidKey" in str(exc_info.value)

    def test_server_rate_limit(self, make_geocoder):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "30"}, text="slow down")

        geocoder = make_geocoder(handler)
        with pytest.raises(RateLimitError) as exc_info:
            asyncio.run(geocoder.resolve("a.b.c"))
        assert exc_info.value.retry_after == 30.0

    def test_client_side_rate_limit(self, make_geocoder):
        calls = []

        def handler(request):
            calls.append(request)
            words = request.url.params["words"]
            return httpx.Response(200, json=_coordinates_payload(words, 1.0, 2.0))

        geocoder = make_geocoder(handler, max_calls=2)
        asyncio.run(geocoder.resolve("a.b.c"))
        asyncio.run(geocoder.resolve("d.e.f"))
        with pytest.raises(RateLimitError):
            asyncio.run(geocoder.resolve("g.h.i"))
        assert len(calls) == 2

    def test_transport_failure(self, make_geocoder):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        geocoder = make_geocoder(handler)
        with pytest.raises(NetworkError, match="connection refused"):
            asyncio.run(geocoder.resolve("a.b.c"))

    def test_non_json_body(self, make_geocoder):
        geocoder = make_geocoder(lambda request: httpx.Response(502, text="<html>"))
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(geocoder.resolve("a.b.c"))
        assert exc_info.value.status_code == 502

    def test_unexpected_payload(self, make_geocoder):
        geocoder = make_geocoder(lambda request: httpx.Response(200, json={"words": "a.b.c"}))
        with pytest.raises(NetworkError, match="unexpected response"):
            asyncio.run(geocoder.resolve("a.b.c"))

    def test_failure_is_not_cached(self, make_geocoder):
        responses = [
            httpx.Response(503, json={"error": {"code": "InternalServerError", "message": "down"}}),
            httpx.Response(200, json=_coordinates_payload("a.b.c", 1.0, 2.0)),
        ]
        geocoder = make_geocoder(lambda request: responses.pop(0))
        with pytest.raises(NetworkError):
            asyncio.run(geocoder.resolve("a.b.c"))
        assert asyncio.run(geocoder.resolve("a.b.c")) == LatLong(1.0, 2.0)


class TestReverse:
    def test_reverse(self, make_geocoder):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=_coordinates_payload("filled.count.soap", 51.5, -0.2))

        geocoder = make_geocoder(handler)
        position = LatLong(51.520847, -0.195521)
        triple = asyncio.run(geocoder.reverse(position))

        assert triple.text == "filled.count.soap"
        assert triple.position == position
        assert seen[0].url.path == "/v3/convert-to-3wa"
        assert seen[0].url.params["coordinates"] == "51.520847,-0.195521"

        asyncio.run(geocoder.reverse(position))
        assert len(seen) == 1

    def test_reverse_without_words(self, make_geocoder):
        geocoder = make_geocoder(lambda request: httpx.Response(200, json={}))
        with pytest.raises(NetworkError):
            asyncio.run(geocoder.reverse(LatLong(0.0, 0.0)))

    def test_reverse_bad_coordinates(self, make_geocoder):
        def handler(request):
            return httpx.Response(
                400, json={"error": {"code": "BadCoordinates", "message": "latitude must be >=-90"}}
            )

        geocoder = make_geocoder(handler)
        with pytest.raises(GrammarMismatch):
            asyncio.run(geocoder.reverse(LatLong(0.0, 0.0)))
