"""Sliding-window admission and temporary bans per client."""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from governor.config import DEFAULT_SHARDS, RateLimiterConfig
from governor.identity import Identifier, RemoteAddressIdentifier
from governor.store import ClientRecord, HistoryStore

LOGGER = logging.getLogger(__name__)


class Decision(str, Enum):
    """Outcome of running a request through the limiter."""

    ADMITTED = "admitted"
    BANNED = "banned"
    LIMITED = "limited"

    @property
    def admitted(self) -> bool:
        return self is Decision.ADMITTED


class RateLimited(RuntimeError):
    """Raised when a client is banned or exceeds its request budget."""

    def __init__(self, client_id: str, decision: Decision, retry_after: float = 0.0) -> None:
        super().__init__(f"Too many requests from {client_id} ({decision.value})")
        self.client_id = client_id
        self.decision = decision
        self.retry_after = retry_after


def is_valid_request(requests: Sequence[float], window: float, max_requests: int) -> bool:
    """Return ``True`` if the newest ``max_requests`` requests respect the limit.

    Only the trailing ``max_requests`` entries are inspected: the request is
    valid when fewer have been made, or when the oldest of them is more than
    ``window`` seconds older than the newest.
    """

    count = len(requests)
    if count < max_requests:
        return True
    oldest = requests[count - max_requests]
    latest = requests[count - 1]
    return latest - oldest > window


class RateLimiter:
    """Decides whether a client's request is admitted, rejected or banned."""

    def __init__(
        self,
        config: Optional[RateLimiterConfig] = None,
        *,
        identifier: Optional[Identifier] = None,
        store: Optional[HistoryStore] = None,
        shards: int = DEFAULT_SHARDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or RateLimiterConfig()
        self.identifier: Identifier = identifier or RemoteAddressIdentifier()
        self.store = store if store is not None else HistoryStore(
            window=self.config.window,
            max_entries=self.config.max_requests,
            shards=shards,
            clock=clock,
        )

    def identify(self, request: Any) -> str:
        return self.identifier(request)

    def record_request(self, client_id: str) -> None:
        self.store.record_request(client_id)

    def ban(self, client_id: str) -> None:
        self.store.ban(client_id)

    def get_history(self, client_id: str) -> Optional[ClientRecord]:
        return self.store.get_history(client_id)

    def is_banned(self, client_id: str) -> bool:
        return self.retry_after(client_id) > 0

    def retry_after(self, client_id: str) -> float:
        """Seconds until the client's current ban lapses, ``0.0`` if not banned."""

        last_ban_at = self.store.last_ban_at(client_id)
        if last_ban_at is None:
            return 0.0
        remaining = last_ban_at + self.config.ban_span - self.store.now()
        return remaining if remaining > 0 else 0.0

    def is_allowed(self, client_id: str) -> bool:
        n = self.config.max_requests
        recent = self.store.last_requests(client_id, n)
        if not recent:
            return True
        return is_valid_request(recent, self.config.window, n)

    def check(self, client_id: str) -> Decision:
        """Run one request through the ban test, record and admission test.

        The whole sequence holds the client's store lock, so concurrent
        requests from the same client are serialized.
        """

        with self.store.locked(client_id):
            if self.is_banned(client_id):
                LOGGER.debug(
                    "Rejected banned client",
                    extra={"client_id": client_id, "decision": Decision.BANNED.value},
                )
                return Decision.BANNED

            self.record_request(client_id)

            if not self.is_allowed(client_id):
                self.ban(client_id)
                LOGGER.warning(
                    "Client exceeded rate limit, banning",
                    extra={
                        "client_id": client_id,
                        "decision": Decision.LIMITED.value,
                        "retry_after": self.config.ban_span,
                    },
                )
                return Decision.LIMITED

        LOGGER.debug("Admitted request", extra={"client_id": client_id})
        return Decision.ADMITTED

    def enforce(self, client_id: str) -> None:
        """Like :meth:`check` but raise :class:`RateLimited` on rejection."""

        decision = self.check(client_id)
        if not decision.admitted:
            raise RateLimited(client_id, decision, self.retry_after(client_id))
