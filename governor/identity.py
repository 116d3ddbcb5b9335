"""Client identification strategies."""
from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

from fastapi import Request

LOGGER = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@runtime_checkable
class Identifier(Protocol):
    """Turns an inbound request into a stable client identifier."""

    def __call__(self, request: Request) -> str:
        ...


def _peer_address(request: Request) -> str:
    client = getattr(request, "client", None)
    host: Optional[str] = getattr(client, "host", None) if client else None
    return host or UNKNOWN_CLIENT


class RemoteAddressIdentifier:
    """Identify clients by their network peer address."""

    def __call__(self, request: Request) -> str:
        return _peer_address(request)


class ForwardedForIdentifier:
    """Use the first ``X-Forwarded-For`` hop, for deployments behind a proxy."""

    header = "x-forwarded-for"

    def __call__(self, request: Request) -> str:
        forwarded = request.headers.get(self.header, "")
        first = forwarded.split(",", 1)[0].strip()
        return first or _peer_address(request)


class HeaderIdentifier:
    """Identify clients by a request header such as an API key.

    Header values and peer addresses are prefixed so a header value can never
    impersonate an address bucket.
    """

    def __init__(self, header: str) -> None:
        self.header = header.strip().lower()

    def __call__(self, request: Request) -> str:
        value = request.headers.get(self.header, "").strip()
        if value:
            return f"header:{value}"
        return f"ip:{_peer_address(request)}"


def identifier_from_name(name: str) -> Identifier:
    """Build a strategy from ``remote``, ``forwarded`` or ``header:<Name>``."""

    kind, _, argument = (name or "").strip().partition(":")
    kind = kind.lower()
    if kind == "forwarded":
        return ForwardedForIdentifier()
    if kind == "header" and argument.strip():
        return HeaderIdentifier(argument)
    if kind != "remote":
        LOGGER.warning("Unknown identification strategy, using remote address", extra={"value": name})
    return RemoteAddressIdentifier()
