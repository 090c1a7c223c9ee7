"""JSON Lines sink writing one file per run."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from ...models import Candidate
from .base import BaseSink


class JsonlSink(BaseSink):
    """Append emitted candidates to ``candidates-<run_tag>.jsonl``."""

    name = "jsonl"

    def __init__(self, output_dir: Path, run_tag: str | None = None) -> None:
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.path = self.output_dir / f"candidates-{self.run_tag}.jsonl"
        self._lock = Lock()
        self._file = None

    def notify(self, candidate: Candidate) -> None:
        line = json.dumps(candidate.to_record(), ensure_ascii=False)
        with self._lock:
            if self._file is None:
                self._file = self.path.open("a", encoding="utf-8")
            self._file.write(line + "\n")
            self._file.flush()

    def flush(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


__all__ = ["JsonlSink"]
