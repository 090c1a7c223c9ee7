"""Notification sink Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

import structlog

from ...errors import DeliveryError
from ...models import Candidate


class BaseSink(ABC):
    """Uniform sink contract; ``notify`` raises ``DeliveryError`` when delivery fails."""

    name = "sink"

    @abstractmethod
    def notify(self, candidate: Candidate) -> None:
        """Deliver a single net-new candidate."""

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


class NullSink(BaseSink):
    name = "null"

    def notify(self, candidate: Candidate) -> None:
        return


class CompositeSink(BaseSink):
    """Fan out to several sinks; one failing sink never stops the others."""

    name = "composite"

    def __init__(self, sinks: Iterable[BaseSink] | None = None) -> None:
        self.sinks = list(sinks or [])
        self.logger = structlog.get_logger("signal_tracker.sinks")

    def notify(self, candidate: Candidate) -> None:
        failed: list[str] = []
        for sink in self.sinks:
            try:
                sink.notify(candidate)
            except Exception as exc:  # noqa: BLE001
                failed.append(sink.name)
                self.logger.warning(
                    "sink_delivery_failed",
                    sink=sink.name,
                    key=str(candidate.dedup_key),
                    error=str(exc),
                )
        if failed:
            raise DeliveryError(f"delivery failed for sinks: {', '.join(failed)}")

    def flush(self) -> None:
        for sink in self.sinks:
            sink.flush()

    def close(self) -> None:
        for sink in self.sinks:
            try:
                sink.close()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("sink_close_failed", sink=sink.name, error=str(exc))


__all__ = ["BaseSink", "CompositeSink", "NullSink"]
