from __future__ import annotations

import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Optional, Tuple

from pintodo.security.logger import auth_logger as logger


@dataclass
class AttemptRecord:
    count: int
    first_attempt: float
    lockout_until: float = 0.0
    last_attempt: float = 0.0


class AttemptStore(ABC):
    """Storage backend for attempt records keyed by client id."""

    @abstractmethod
    def get(self, key: str) -> Optional[AttemptRecord]:
        ...

    @abstractmethod
    def set(self, key: str, record: AttemptRecord) -> None:
        ...

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove ``key``; removing a missing key is a no-op."""

    @abstractmethod
    def items(self) -> Iterable[Tuple[str, AttemptRecord]]:
        ...


class InMemoryAttemptStore(AttemptStore):
    """In-memory default store, lives for the process lifetime."""

    def __init__(self) -> None:
        self._store: Dict[str, AttemptRecord] = {}

    def get(self, key: str) -> Optional[AttemptRecord]:
        return self._store.get(key)

    def set(self, key: str, record: AttemptRecord) -> None:
        self._store[key] = record

    def clear(self, key: str) -> None:
        self._store.pop(key, None)

    def items(self) -> Iterable[Tuple[str, AttemptRecord]]:
        return list(self._store.items())

    def __len__(self) -> int:
        return len(self._store)


class AttemptTracker:
    """Per-client PIN attempt counting with a rolling window and lockout."""

    def __init__(
        self,
        store: Optional[AttemptStore] = None,
        *,
        max_attempts: int = 5,
        lockout_seconds: int = 15 * 60,
        reset_window_seconds: int = 60 * 60,
    ) -> None:
        self.store = store if store is not None else InMemoryAttemptStore()
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.reset_window_seconds = reset_window_seconds
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings, store: Optional[AttemptStore] = None) -> "AttemptTracker":
        return cls(
            store,
            max_attempts=settings.max_attempts,
            lockout_seconds=settings.lockout_seconds,
            reset_window_seconds=settings.attempt_reset_seconds,
        )

    def _now(self) -> float:
        return time.time()

    def _window_expired(self, record: AttemptRecord, now: float) -> bool:
        return now - record.first_attempt > self.reset_window_seconds

    def _count_attempt(self, client_id: str, now: float) -> AttemptRecord:
        # Caller holds self._lock.
        record = self.store.get(client_id)
        if record is None:
            record = AttemptRecord(count=0, first_attempt=now)
        elif self._window_expired(record, now):
            record.count = 0
            record.first_attempt = now

        record.count += 1
        record.last_attempt = now
        if record.count >= self.max_attempts:
            record.lockout_until = now + self.lockout_seconds
        self.store.set(client_id, record)
        return replace(record)

    def _lockout_minutes(self, record: Optional[AttemptRecord], now: float) -> int:
        if record is None or not record.lockout_until:
            return 0
        remaining = record.lockout_until - now
        if remaining <= 0:
            return 0
        return math.ceil(remaining / 60)

    def _log_lockout(self, client_id: str, snapshot: AttemptRecord, now: float) -> None:
        if snapshot.lockout_until > now:
            logger.warning(
                f"Client {client_id} locked out for {self.lockout_seconds}s after {snapshot.count} attempts"
            )

    def record_attempt(self, client_id: str) -> AttemptRecord:
        """
        Count one attempt for ``client_id``.

        Rolls the window when it has expired and locks the client once the
        count reaches ``max_attempts``. Returns a snapshot of the record.
        """
        now = self._now()
        with self._lock:
            snapshot = self._count_attempt(client_id, now)
        self._log_lockout(client_id, snapshot, now)
        return snapshot

    def begin_attempt(self, client_id: str) -> Tuple[int, Optional[AttemptRecord]]:
        """
        Check the lockout and count the attempt as one step.

        Returns ``(minutes, None)`` when the client is locked out, otherwise
        ``(0, snapshot)`` with the attempt already counted. A verification that
        turns out correct hands the snapshot back to ``settle_success``.
        """
        now = self._now()
        with self._lock:
            minutes = self._lockout_minutes(self.store.get(client_id), now)
            if minutes:
                return minutes, None
            snapshot = self._count_attempt(client_id, now)
        self._log_lockout(client_id, snapshot, now)
        return 0, snapshot

    def settle_success(self, client_id: str, reservation: AttemptRecord) -> int:
        """
        Clear the record after a correct PIN counted by ``begin_attempt``.

        A lockout earned by attempts counted after ``reservation`` stands: the
        record is kept and the remaining minutes are returned. Otherwise the
        record is removed and 0 is returned.
        """
        now = self._now()
        with self._lock:
            record = self.store.get(client_id)
            minutes = self._lockout_minutes(record, now)
            if minutes and record.count != reservation.count:
                return minutes
            self.store.clear(client_id)
        return 0

    def is_locked_out(self, client_id: str) -> int:
        """Minutes (rounded up) left on the lockout, or 0 when not locked."""
        return self._lockout_minutes(self.store.get(client_id), self._now())

    def attempts_left(self, client_id: str) -> int:
        record = self.store.get(client_id)
        if record is None or self._window_expired(record, self._now()):
            return self.max_attempts
        return max(0, self.max_attempts - record.count)

    def reset(self, client_id: str) -> None:
        with self._lock:
            self.store.clear(client_id)

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict records whose last attempt is at least one lockout old."""
        now = self._now() if now is None else now
        evicted = 0
        for key, _ in self.store.items():
            with self._lock:
                # Re-read under the lock; the record may have moved on or gone.
                record = self.store.get(key)
                if record is not None and now - record.last_attempt >= self.lockout_seconds:
                    self.store.clear(key)
                    evicted += 1
        return evicted


__all__ = [
    "AttemptRecord",
    "AttemptStore",
    "AttemptTracker",
    "InMemoryAttemptStore",
]
