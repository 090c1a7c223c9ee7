"""Ordered strategy chain with fallthrough on failure, timeout or empty results."""

from __future__ import annotations

from concurrent.futures import Executor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from threading import Event
from typing import Callable, Iterable, List, Protocol, Sequence

import structlog

from ...errors import SourceError, StrategyTimeout, StrategyUnavailable
from ...models import (
    Candidate,
    Company,
    DetectionType,
    RawContent,
    ScanState,
    SourceTag,
    StrategyAttempt,
)
from ..extraction import ExtractionResult

ExtractFn = Callable[[Sequence[RawContent], Company], ExtractionResult]

STATUS_ACCEPTED = "accepted"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"
STATUS_TIMEOUT = "timeout"
STATUS_UNAVAILABLE = "unavailable"

QUEUE_POLL_SECONDS = 0.05


class Strategy(Protocol):
    """Acquisition behaviour expected by the chain."""

    name: str
    source_tag: SourceTag

    def fetch(self, company: Company) -> List[RawContent]:
        """Return raw content for one company or raise ``SourceError``."""


@dataclass(slots=True)
class ChainEntry:
    strategy: Strategy
    timeout: float = 20.0


@dataclass(slots=True)
class ChainOutcome:
    """Result of running the chain for one company."""

    company: str
    candidates: list[Candidate] = field(default_factory=list)
    winning_strategy: str | None = None
    attempts: list[StrategyAttempt] = field(default_factory=list)
    rejected: int = 0

    @property
    def failures(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.status in {STATUS_FAILED, STATUS_TIMEOUT})

    @property
    def state(self) -> ScanState:
        return ScanState.VALIDATED if self.candidates else ScanState.EXHAUSTED


class StrategyChain:
    """Run strategies sequentially in priority order; stop at the first accepted candidate."""

    def __init__(
        self,
        detection_type: DetectionType,
        entries: Iterable[ChainEntry] | None = None,
        executor: Executor | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.detection_type = detection_type
        self.entries: list[ChainEntry] = list(entries or [])
        self.executor = executor
        self.logger = logger or structlog.get_logger("signal_tracker.chain")

    def __len__(self) -> int:
        return len(self.entries)

    def add_strategy(self, strategy: Strategy, timeout: float = 20.0) -> None:
        self.entries.append(ChainEntry(strategy=strategy, timeout=timeout))

    @property
    def names(self) -> list[str]:
        return [entry.strategy.name for entry in self.entries]

    # ------------------------------------------------------------------
    def run(self, company: Company, extract: ExtractFn) -> ChainOutcome:
        outcome = ChainOutcome(company=company.name)
        for entry in self.entries:
            name = entry.strategy.name
            try:
                items = self._fetch(entry, company)
            except StrategyUnavailable as exc:
                outcome.attempts.append(StrategyAttempt(name, STATUS_UNAVAILABLE, exc.reason))
                self.logger.debug("strategy_unavailable", company=company.name, strategy=name, reason=exc.reason)
                continue
            except StrategyTimeout as exc:
                outcome.attempts.append(StrategyAttempt(name, STATUS_TIMEOUT, exc.reason))
                self.logger.warning("strategy_timeout", company=company.name, strategy=name, timeout=entry.timeout)
                continue
            except Exception as exc:  # noqa: BLE001
                reason = exc.reason if isinstance(exc, SourceError) else f"{type(exc).__name__}: {exc}"
                outcome.attempts.append(StrategyAttempt(name, STATUS_FAILED, reason))
                self.logger.warning("strategy_failed", company=company.name, strategy=name, error=reason)
                continue

            result = extract(items, company)
            outcome.rejected += len(result.rejected)
            if result.accepted:
                outcome.attempts.append(
                    StrategyAttempt(
                        name, STATUS_ACCEPTED, None, len(result.accepted), len(result.rejected)
                    )
                )
                outcome.candidates = list(result.accepted)
                outcome.winning_strategy = name
                self.logger.info(
                    "strategy_accepted",
                    company=company.name,
                    strategy=name,
                    detection_type=self.detection_type.value,
                    accepted=len(result.accepted),
                    rejected=len(result.rejected),
                )
                return outcome
            outcome.attempts.append(
                StrategyAttempt(name, STATUS_EMPTY, f"{len(items)} items", 0, len(result.rejected))
            )
            self.logger.debug(
                "strategy_empty", company=company.name, strategy=name, items=len(items)
            )

        self.logger.info(
            "chain_exhausted",
            company=company.name,
            detection_type=self.detection_type.value,
            attempts=len(outcome.attempts),
        )
        return outcome

    def _fetch(self, entry: ChainEntry, company: Company) -> list[RawContent]:
        if self.executor is None:
            return list(entry.strategy.fetch(company) or [])
        started = Event()

        def call() -> List[RawContent]:
            started.set()
            return entry.strategy.fetch(company)

        future = self.executor.submit(call)
        # The timeout runs from the moment the fetch starts, not while it waits for a worker.
        while not started.wait(QUEUE_POLL_SECONDS):
            if future.done():
                break
        try:
            return list(future.result(timeout=entry.timeout) or [])
        except FutureTimeout as exc:
            raise StrategyTimeout(
                entry.strategy.name, f"no response within {entry.timeout:g}s"
            ) from exc


__all__ = [
    "ChainEntry",
    "ChainOutcome",
    "ExtractFn",
    "STATUS_ACCEPTED",
    "STATUS_EMPTY",
    "STATUS_FAILED",
    "STATUS_TIMEOUT",
    "STATUS_UNAVAILABLE",
    "Strategy",
    "StrategyChain",
]
