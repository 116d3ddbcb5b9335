"""Rate limiter configuration and environment loading utilities."""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_BAN_DURATION_SECONDS = 30 * 60.0
DEFAULT_SHARDS = 16


def _load_dotenv() -> None:
    env_path = Path(".env")
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


_load_dotenv()


class BanExpiry(str, Enum):
    """Which configured span ends a ban."""

    BAN_DURATION = "ban_duration"
    WINDOW = "window"

    @classmethod
    def parse(cls, value: Optional[str]) -> "BanExpiry":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            LOGGER.warning("Unknown ban expiry mode, using ban_duration", extra={"value": value})
            return cls.BAN_DURATION


def _positive(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    return number


@dataclass(frozen=True)
class RateLimiterConfig:
    """Immutable limiter parameters.

    Non-positive values are replaced by the defaults (100 requests per
    1 minute window, 30 minute bans) instead of raising.
    """

    max_requests: int = DEFAULT_MAX_REQUESTS
    window: float = DEFAULT_WINDOW_SECONDS
    ban_duration: float = DEFAULT_BAN_DURATION_SECONDS
    ban_expiry: BanExpiry = BanExpiry.BAN_DURATION

    def __post_init__(self) -> None:
        max_requests = int(_positive(self.max_requests, DEFAULT_MAX_REQUESTS))
        if max_requests <= 0:
            max_requests = DEFAULT_MAX_REQUESTS
        object.__setattr__(self, "max_requests", max_requests)
        object.__setattr__(self, "window", _positive(self.window, DEFAULT_WINDOW_SECONDS))
        object.__setattr__(
            self, "ban_duration", _positive(self.ban_duration, DEFAULT_BAN_DURATION_SECONDS)
        )
        if not isinstance(self.ban_expiry, BanExpiry):
            object.__setattr__(self, "ban_expiry", BanExpiry.parse(self.ban_expiry))

    @property
    def ban_span(self) -> float:
        """Seconds a ban stays in effect after it is issued."""

        if self.ban_expiry is BanExpiry.WINDOW:
            return self.window
        return self.ban_duration


def _env(name: str, default: Any, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        LOGGER.warning("Invalid value for %s, using default", name, extra={"value": raw})
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime configuration derived from environment variables."""

    max_requests: int = DEFAULT_MAX_REQUESTS
    window_seconds: float = DEFAULT_WINDOW_SECONDS
    ban_duration_seconds: float = DEFAULT_BAN_DURATION_SECONDS
    ban_expiry: BanExpiry = BanExpiry.BAN_DURATION
    identify: str = "remote"
    shards: int = DEFAULT_SHARDS

    def limiter_config(self) -> RateLimiterConfig:
        return RateLimiterConfig(
            max_requests=self.max_requests,
            window=self.window_seconds,
            ban_duration=self.ban_duration_seconds,
            ban_expiry=self.ban_expiry,
        )

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            max_requests=_env("GOVERNOR_MAX_REQUESTS", DEFAULT_MAX_REQUESTS, int),
            window_seconds=_env("GOVERNOR_WINDOW_SECONDS", DEFAULT_WINDOW_SECONDS, float),
            ban_duration_seconds=_env(
                "GOVERNOR_BAN_DURATION_SECONDS", DEFAULT_BAN_DURATION_SECONDS, float
            ),
            ban_expiry=BanExpiry.parse(os.getenv("GOVERNOR_BAN_EXPIRY", "ban_duration")),
            identify=os.getenv("GOVERNOR_IDENTIFY", "remote").strip() or "remote",
            shards=_env("GOVERNOR_SHARDS", DEFAULT_SHARDS, int),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings.from_env()
