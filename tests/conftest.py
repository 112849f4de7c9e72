"""Shared test fixtures — a controllable clock, a stub geocoder and a converter."""

from __future__ import annotations

from typing import Callable, Optional

import httpx
import pytest

from coordconvert import CoordinateConverter
from coordconvert.exceptions import CoordConvertError, GrammarMismatch
from coordconvert.geocoding import RateLimiter, What3WordsGeocoder
from coordconvert.models import LatLong, WordTriple

INDEX_HOME_RAFT = LatLong(lat=51.521251, lng=-0.203586)
FILLED_COUNT_SOAP = LatLong(lat=51.520847, lng=-0.195521)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubGeocoder:
    """In-memory geocoder recording every call."""

    def __init__(
        self,
        positions: Optional[dict[str, LatLong]] = None,
        error: Optional[CoordConvertError] = None,
    ):
        self.positions = positions if positions is not None else {
            "index.home.raft": INDEX_HOME_RAFT,
            "filled.count.soap": FILLED_COUNT_SOAP,
        }
        self.error = error
        self.resolve_calls: list[str] = []
        self.reverse_calls: list[LatLong] = []

    async def resolve(self, words: str) -> LatLong:
        self.resolve_calls.append(words)
        if self.error is not None:
            raise self.error
        try:
            return self.positions[words]
        except KeyError:
            raise GrammarMismatch(words, "what3words", "no such address") from None

    async def reverse(self, position: LatLong) -> WordTriple:
        self.reverse_calls.append(position)
        if self.error is not None:
            raise self.error
        return WordTriple(words=("filled", "count", "soap"), position=position)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def stub_geocoder() -> StubGeocoder:
    return StubGeocoder()


@pytest.fixture()
def converter(clock: FakeClock):
    """A converter with a fake clock and no geocoder."""
    c = CoordinateConverter(clock=clock)
    yield c
    c.close()


@pytest.fixture()
def make_geocoder(clock: FakeClock) -> Callable[..., What3WordsGeocoder]:
    """Build a What3WordsGeocoder whose HTTP traffic goes to *handler*."""

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        max_calls: int = 60,
        **kwargs,
    ) -> What3WordsGeocoder:
        return What3WordsGeocoder(
            "test-key",
            rate_limiter=RateLimiter(max_calls, 60.0, clock),
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return _make
