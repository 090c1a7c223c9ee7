from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from signal_tracker.engine import DedupStore
from signal_tracker.models import DedupKey


class FlakyPersistence:
    def __init__(self, keys=None, fail: bool = False) -> None:
        self.keys = set(keys or [])
        self.fail = fail
        self.appended: list[DedupKey] = []

    def load_dedup_keys(self):
        return set(self.keys)

    def append_dedup_key(self, key):
        if self.fail:
            raise OSError("disk full")
        self.appended.append(key)
        self.keys.add(key)


def test_store_loads_persisted_keys() -> None:
    key = DedupKey("hires|jane doe|acme corp|cto")
    store = DedupStore(FlakyPersistence({key}))
    assert key in store
    assert not store.is_new(key)
    assert len(store) == 1


def test_commit_writes_through() -> None:
    persistence = FlakyPersistence()
    store = DedupStore(persistence)
    key = DedupKey("jobs|engineer|acme corp|london")
    assert store.is_new(key)
    store.commit(key)
    assert persistence.appended == [key]
    assert not store.is_new(key)


def test_failed_persist_leaves_key_uncommitted() -> None:
    store = DedupStore(FlakyPersistence(fail=True))
    key = DedupKey("jobs|engineer|acme corp|london")
    with pytest.raises(OSError):
        store.commit(key)
    assert store.is_new(key)


def test_claim_serialises_concurrent_emitters() -> None:
    store = DedupStore(FlakyPersistence())
    key = DedupKey("hires|jane doe|acme corp|cto")
    emitted: list[int] = []
    barrier = threading.Barrier(8)

    def worker(index: int) -> None:
        barrier.wait()
        with store.claim(key) as is_new:
            if is_new:
                emitted.append(index)
                store.commit(key)

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(worker, range(8)))
    assert len(emitted) == 1
    assert store._key_locks == {}


def test_claim_locks_are_released_after_use() -> None:
    store = DedupStore(FlakyPersistence())
    for index in range(100):
        key = DedupKey(f"jobs|engineer {index}|acme corp|london")
        with store.claim(key) as is_new:
            assert is_new
            store.commit(key)
        with store.claim(key) as is_new:
            assert not is_new
    assert store._key_locks == {}

    key = DedupKey("jobs|engineer 0|acme corp|london")
    with pytest.raises(RuntimeError):
        with store.claim(key):
            raise RuntimeError("sink exploded")
    assert store._key_locks == {}


def test_reset_clears_memory_and_persistence(temp_store) -> None:
    store = DedupStore(temp_store)
    key = DedupKey("jobs|engineer|acme corp|london")
    store.commit(key)
    assert temp_store.load_dedup_keys() == {key}
    store.reset()
    assert len(store) == 0
    assert temp_store.load_dedup_keys() == set()


def test_store_without_persistence_is_memory_only() -> None:
    store = DedupStore()
    key = DedupKey("jobs|engineer|acme corp|london")
    store.commit(key)
    assert key in store
