"""Named, bounded executors for the stages of a scan.

* ``companies``: one worker per batch slot, so a batch of companies scans in parallel.
* ``fetch``: strategy fetches, run off the company worker so each can be timed out.
* ``cli``: the single background scan started by the command line.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict

COMPANY_POOL = "companies"
FETCH_POOL = "fetch"
CLI_POOL = "cli"
MIN_FETCH_WORKERS = 4


class ThreadPoolManager:
    """Create executors lazily by name and shut them all down together."""

    def __init__(self, default_workers: int = 3) -> None:
        self.default_workers = default_workers
        self._executors: Dict[str, ThreadPoolExecutor] = {}
        self._lock = Lock()

    def get(self, name: str = "default", max_workers: int | None = None) -> ThreadPoolExecutor:
        # ``max_workers`` only applies the first time a name is requested.
        with self._lock:
            executor = self._executors.get(name)
            if executor is None:
                executor = ThreadPoolExecutor(
                    max_workers=max_workers or self.default_workers,
                    thread_name_prefix=f"tracker-{name}",
                )
                self._executors[name] = executor
            return executor

    def company_workers(self, batch_size: int) -> ThreadPoolExecutor:
        return self.get(COMPANY_POOL, max_workers=batch_size)

    def fetch_workers(self, batch_size: int) -> ThreadPoolExecutor:
        # Two in-flight fetches per company leaves room for one abandoned after a timeout.
        return self.get(FETCH_POOL, max_workers=max(MIN_FETCH_WORKERS, batch_size * 2))

    def scan_runner(self) -> ThreadPoolExecutor:
        return self.get(CLI_POOL, max_workers=1)

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            executors = list(self._executors.values())
            self._executors.clear()
        for executor in executors:
            executor.shutdown(wait=wait)


__all__ = ["CLI_POOL", "COMPANY_POOL", "FETCH_POOL", "ThreadPoolManager"]
