"""Deduplication layer: in-memory key mirror backed by the store collaborator."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Iterator, Protocol

import structlog

from ..models import DedupKey


class DedupPersistence(Protocol):
    def load_dedup_keys(self) -> set[DedupKey]: ...

    def append_dedup_key(self, key: DedupKey) -> None: ...


@dataclass(slots=True)
class _KeyLock:
    lock: Lock = field(default_factory=Lock)
    holders: int = 0


class DedupStore:
    """Single source of truth for "already reported" events.

    ``claim`` serialises the is-new check, the downstream handoff and the commit
    for one key, so two workers never emit the same event. Persistence is
    written before the in-memory mirror; a failed append leaves the key
    uncommitted and the event is retried on the next scan.
    """

    def __init__(self, persistence: DedupPersistence | None = None) -> None:
        self.persistence = persistence
        self._lock = Lock()
        self._key_locks: dict[DedupKey, _KeyLock] = {}
        self._keys: set[DedupKey] = set()
        self.logger = structlog.get_logger("signal_tracker.dedup")
        self.reload()

    def reload(self) -> None:
        keys = self.persistence.load_dedup_keys() if self.persistence else set()
        with self._lock:
            self._keys = set(keys)
        self.logger.debug("dedup_keys_loaded", count=len(keys))

    def is_new(self, key: DedupKey) -> bool:
        with self._lock:
            return key not in self._keys

    def commit(self, key: DedupKey) -> None:
        if self.persistence is not None:
            self.persistence.append_dedup_key(key)
        with self._lock:
            self._keys.add(key)

    @contextmanager
    def claim(self, key: DedupKey) -> Iterator[bool]:
        """Hold the per-key lock; yields True when the key has not been reported."""

        key_lock = self._enter(key)
        try:
            with key_lock.lock:
                yield self.is_new(key)
        finally:
            self._leave(key)

    def _enter(self, key: DedupKey) -> _KeyLock:
        with self._lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = _KeyLock()
            key_lock.holders += 1
            return key_lock

    def _leave(self, key: DedupKey) -> None:
        # Entries live only while a claim is waiting on or holding the key.
        with self._lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                return
            key_lock.holders -= 1
            if key_lock.holders <= 0:
                del self._key_locks[key]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def reset(self) -> None:
        reset = getattr(self.persistence, "reset_dedup_keys", None)
        if callable(reset):
            reset()
        with self._lock:
            self._keys.clear()


__all__ = ["DedupPersistence", "DedupStore"]
