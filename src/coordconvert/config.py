"""Runtime settings, read from the environment with sensible defaults."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar

from coordconvert.cache import DEFAULT_CAPACITY, DEFAULT_MAX_AGE
from coordconvert.exceptions import ConfigurationError
from coordconvert.geocoding import (
    DEFAULT_API_URL,
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_RATE_PER_MINUTE,
    DEFAULT_TIMEOUT,
)
from coordconvert.timing import (
    CONVERSION_BUDGET_MS,
    FRAME_SECONDS,
    VALIDATION_BUDGET_MS,
)

T = TypeVar("T", int, float)


@dataclass(frozen=True)
class Settings:
    """Tunables for a CoordinateConverter."""

    cache_size: int = DEFAULT_CAPACITY
    cache_max_age: float = DEFAULT_MAX_AGE
    debounce_ms: float = round(FRAME_SECONDS * 1000.0, 2)
    validation_budget_ms: float = VALIDATION_BUDGET_MS
    conversion_budget_ms: float = CONVERSION_BUDGET_MS
    w3w_api_key: Optional[str] = None
    w3w_api_url: str = DEFAULT_API_URL
    geocoder_timeout: float = DEFAULT_TIMEOUT
    geocoder_rate_per_minute: int = DEFAULT_RATE_PER_MINUTE
    geocoder_max_concurrent: int = DEFAULT_MAX_CONCURRENT

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def geocoding_enabled(self) -> bool:
        return bool(self.w3w_api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """
        Build settings from COORDCONVERT_* and W3W_* variables.

        Unset variables keep their defaults. Raises ConfigurationError
        naming the variable when a value cannot be used.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            cache_size=_read(env, "COORDCONVERT_CACHE_SIZE", int, defaults.cache_size),
            cache_max_age=_read(
                env, "COORDCONVERT_CACHE_MAX_AGE", float, defaults.cache_max_age
            ),
            debounce_ms=_read(
                env, "COORDCONVERT_DEBOUNCE_MS", float, defaults.debounce_ms,
                allow_zero=True,
            ),
            validation_budget_ms=_read(
                env, "COORDCONVERT_VALIDATION_BUDGET_MS", float,
                defaults.validation_budget_ms,
            ),
            conversion_budget_ms=_read(
                env, "COORDCONVERT_CONVERSION_BUDGET_MS", float,
                defaults.conversion_budget_ms,
            ),
            w3w_api_key=env.get("W3W_API_KEY") or None,
            w3w_api_url=env.get("W3W_API_URL") or defaults.w3w_api_url,
            geocoder_timeout=_read(
                env, "COORDCONVERT_GEOCODER_TIMEOUT", float, defaults.geocoder_timeout
            ),
            geocoder_rate_per_minute=_read(
                env, "COORDCONVERT_GEOCODER_RATE", int,
                defaults.geocoder_rate_per_minute,
            ),
            geocoder_max_concurrent=_read(
                env, "COORDCONVERT_GEOCODER_CONCURRENCY", int,
                defaults.geocoder_max_concurrent,
            ),
        )


def _read(
    env: Mapping[str, str],
    name: str,
    cast: Callable[[str], T],
    default: T,
    allow_zero: bool = False,
) -> T:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigurationError(name, raw, f"expected {cast.__name__}") from None
    if not math.isfinite(value):
        raise ConfigurationError(name, raw, "must be a finite number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigurationError(name, raw, "must be positive")
    return value
