"""
Word-triple geocoding collaborator.

Resolution is the only network-bound step in the pipeline. Requests are
bounded in concurrency, rate-limited on the caller's side, de-duplicated
while in flight and cached once resolved.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Any, Callable, Optional, Protocol

import httpx

from coordconvert import wordtriple
from coordconvert.cache import BoundedLRUCache
from coordconvert.exceptions import GrammarMismatch, NetworkError, RateLimitError
from coordconvert.models import LatLong, WordTriple

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.what3words.com/v3"
DEFAULT_TIMEOUT = 10.0
DEFAULT_RATE_PER_MINUTE = 60
DEFAULT_MAX_CONCURRENT = 4
DEFAULT_CACHE_SIZE = 100

# Provider error codes that mean the caller's input is wrong, not the service.
_INPUT_ERROR_CODES = frozenset({"BadWords", "MissingWords", "BadCoordinates"})


class Geocoder(Protocol):
    """Anything that maps word triples to positions and back."""

    async def resolve(self, words: str) -> LatLong: ...

    async def reverse(self, position: LatLong) -> WordTriple: ...


class RateLimiter:
    """
    Sliding-window request limiter.

    acquire() never waits: when the window is full it raises
    RateLimitError with the number of seconds until a slot frees up, so
    the caller decides whether and when to retry.
    """

    def __init__(
        self,
        max_calls: int = DEFAULT_RATE_PER_MINUTE,
        period: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_calls = max_calls
        self._period = period
        self._clock = clock
        self._calls: deque[float] = deque()

    def acquire(self) -> None:
        now = self._clock()
        while self._calls and now - self._calls[0] >= self._period:
            self._calls.popleft()
        if len(self._calls) >= self._max_calls:
            oldest = self._calls[0] if self._calls else now
            raise RateLimitError(self._period - (now - oldest))
        self._calls.append(now)

    @property
    def remaining(self) -> int:
        now = self._clock()
        active = sum(1 for t in self._calls if now - t < self._period)
        return max(0, self._max_calls - active)


class What3WordsGeocoder:
    """
    Client for the what3words v3 REST API.

    Each request opens a short-lived httpx.AsyncClient; pass *transport*
    to route requests elsewhere (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        rate_limiter: Optional[RateLimiter] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_concurrent = max_concurrent
        self._limiter = rate_limiter or RateLimiter()
        self._transport = transport
        self._positions: BoundedLRUCache[str, LatLong] = BoundedLRUCache(cache_size)
        self._triples: BoundedLRUCache[tuple[float, float], WordTriple] = BoundedLRUCache(
            cache_size
        )
        self._inflight: dict[str, asyncio.Future] = {}
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None
        self.requests_made = 0

    # ── Public API ────────────────────────────────────────────────

    async def resolve(self, words: str) -> LatLong:
        """
        Return the position of a word triple.

        Raises GrammarMismatch for malformed or unknown words,
        NetworkError for transport/service failures and RateLimitError
        when the request budget is spent.
        """
        key = wordtriple.normalise(words)
        cached = self._positions.get(key)
        if cached is not None:
            return cached

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_position(key))
            self._inflight[key] = pending
            pending.add_done_callback(lambda _f, k=key: self._inflight.pop(k, None))
        return await asyncio.shield(pending)

    async def reverse(self, position: LatLong) -> WordTriple:
        """Return the word triple covering *position*."""
        key = (round(position.lat, 6), round(position.lng, 6))
        cached = self._triples.get(key)
        if cached is not None:
            return cached

        data = await self._request(
            "convert-to-3wa",
            {"coordinates": f"{key[0]},{key[1]}"},
            subject=f"{key[0]},{key[1]}",
        )
        words = data.get("words")
        if not isinstance(words, str):
            raise NetworkError("response did not include words")
        triple = WordTriple(words=wordtriple.parse(words).words, position=position)
        self._triples.set(key, triple)
        return triple

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    def clear_cache(self) -> None:
        self._positions.clear()
        self._triples.clear()

    # ── Private helpers ───────────────────────────────────────────

    async def _fetch_position(self, words: str) -> LatLong:
        data = await self._request(
            "convert-to-coordinates", {"words": words}, subject=words
        )
        try:
            coords = data["coordinates"]
            position = LatLong(lat=float(coords["lat"]), lng=float(coords["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise NetworkError(f"unexpected response shape: {exc}") from exc
        self._positions.set(words, position)
        return position

    def _get_semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
            self._semaphore_loop = loop
        return self._semaphore

    async def _request(
        self, endpoint: str, params: dict[str, str], subject: str
    ) -> dict[str, Any]:
        async with self._get_semaphore():
            self._limiter.acquire()
            self.requests_made += 1
            logger.debug("what3words %s request for %r", endpoint, subject)
            try:
                async with httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    transport=self._transport,
                ) as client:
                    response = await client.get(
                        f"/{endpoint}", params={**params, "key": self._api_key}
                    )
            except httpx.HTTPError as exc:
                logger.warning("what3words request failed: %s", exc)
                raise NetworkError(str(exc) or type(exc).__name__) from exc

        return self._decode(response, subject)

    @staticmethod
    def _decode(response: httpx.Response, subject: str) -> dict[str, Any]:
        if response.status_code == 429:
            retry_after = _retry_after(response.headers.get("Retry-After"))
            raise RateLimitError(retry_after)

        try:
            data = response.json()
        except ValueError:
            raise NetworkError(
                f"HTTP {response.status_code} with a non-JSON body",
                response.status_code,
            ) from None

        error = data.get("error") if isinstance(data, dict) else None
        if error or response.status_code >= 400:
            error = error or {}
            code = error.get("code", "")
            message = error.get("message", f"HTTP {response.status_code}")
            if code in _INPUT_ERROR_CODES:
                raise GrammarMismatch(subject, "what3words", message)
            raise NetworkError(f"{code or 'HTTPError'}: {message}", response.status_code)
        return data


def _retry_after(header: Optional[str]) -> float:
    try:
        return max(0.0, float(header)) if header is not None else 60.0
    except ValueError:
        return 60.0
