"""Thread-safe per-client request history."""
from __future__ import annotations

import time
import zlib
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import RLock
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

from governor.config import DEFAULT_SHARDS


@dataclass
class ClientRecord:
    """Ban state and recent request timestamps for one client."""

    last_ban_at: Optional[float] = None
    requests: Deque[float] = field(default_factory=deque)

    def snapshot(self) -> "ClientRecord":
        return ClientRecord(last_ban_at=self.last_ban_at, requests=deque(self.requests))


class _Shard:
    __slots__ = ("lock", "records")

    def __init__(self) -> None:
        self.lock = RLock()
        self.records: Dict[str, ClientRecord] = {}


class HistoryStore:
    """Maps client identifiers to their :class:`ClientRecord`.

    Identifiers are hashed onto independently locked shards, so clients in
    different shards never contend. Every operation holds its shard lock for
    the whole read-modify-write, and :meth:`locked` lets callers extend that
    to a multi-step sequence.

    ``window`` and ``max_entries`` bound each log: timestamps strictly older
    than ``window`` are evicted on record, and at most ``max_entries`` of the
    newest are kept.
    """

    def __init__(
        self,
        *,
        window: Optional[float] = None,
        max_entries: Optional[int] = None,
        shards: int = DEFAULT_SHARDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._window = window
        self._max_entries = max_entries
        self._clock = clock
        self._shards: Tuple[_Shard, ...] = tuple(_Shard() for _ in range(max(shards, 1)))

    def now(self) -> float:
        return self._clock()

    def _shard(self, client_id: str) -> _Shard:
        index = zlib.crc32(client_id.encode("utf-8")) % len(self._shards)
        return self._shards[index]

    def _get_or_create(self, shard: _Shard, client_id: str) -> ClientRecord:
        record = shard.records.get(client_id)
        if record is None:
            record = shard.records[client_id] = ClientRecord(
                requests=deque(maxlen=self._max_entries)
            )
        return record

    @contextmanager
    def locked(self, client_id: str) -> Iterator[None]:
        """Hold the lock guarding ``client_id`` for the duration of the block."""

        with self._shard(client_id).lock:
            yield

    def record_request(self, client_id: str) -> None:
        shard = self._shard(client_id)
        with shard.lock:
            now = self._clock()
            record = self._get_or_create(shard, client_id)
            log = record.requests
            if self._window is not None:
                cutoff = now - self._window
                while log and log[0] < cutoff:
                    log.popleft()
            log.append(now)

    def get_history(self, client_id: str) -> Optional[ClientRecord]:
        """Return a copy of the client's record, or ``None`` if unknown."""

        shard = self._shard(client_id)
        with shard.lock:
            record = shard.records.get(client_id)
            return record.snapshot() if record is not None else None

    def last_requests(self, client_id: str, count: int) -> List[float]:
        """Return up to ``count`` of the newest timestamps, oldest first."""

        shard = self._shard(client_id)
        with shard.lock:
            record = shard.records.get(client_id)
            if record is None or count <= 0:
                return []
            log = record.requests
            return [log[i] for i in range(max(len(log) - count, 0), len(log))]

    def last_ban_at(self, client_id: str) -> Optional[float]:
        shard = self._shard(client_id)
        with shard.lock:
            record = shard.records.get(client_id)
            return record.last_ban_at if record is not None else None

    def ban(self, client_id: str) -> None:
        """Mark ``client_id`` as banned from now, creating the record if needed."""

        shard = self._shard(client_id)
        with shard.lock:
            record = self._get_or_create(shard, client_id)
            record.last_ban_at = self._clock()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total
