"""Per-client request rate governor with temporary bans."""

from .config import BanExpiry, RateLimiterConfig, Settings, get_settings
from .identity import (
    ForwardedForIdentifier,
    HeaderIdentifier,
    Identifier,
    RemoteAddressIdentifier,
    identifier_from_name,
)
from .limiter import Decision, RateLimited, RateLimiter, is_valid_request
from .logging_config import configure_logging
from .middleware import install
from .store import ClientRecord, HistoryStore

__all__ = [
    "BanExpiry",
    "ClientRecord",
    "Decision",
    "ForwardedForIdentifier",
    "HeaderIdentifier",
    "HistoryStore",
    "Identifier",
    "RateLimited",
    "RateLimiter",
    "RateLimiterConfig",
    "RemoteAddressIdentifier",
    "Settings",
    "configure_logging",
    "get_settings",
    "identifier_from_name",
    "install",
    "is_valid_request",
]
