"""Scan orchestrator: batches companies through the strategy chain, dedup store and sinks."""

from __future__ import annotations

import random
import time
from collections import Counter
from concurrent.futures import Future
from threading import Event
from typing import Callable, Iterable, Mapping, Sequence

import structlog

from .analytics import AnalyticsRecorder
from .config import TrackerConfig
from .errors import ConfigurationError
from .engine.dedup import DedupStore
from .engine.extraction import Extractor
from .engine.fetcher import Fetcher
from .engine.sinks import BaseSink, NullSink
from .engine.strategies import StrategyChain, build_chain
from .engine.strategies.chain import STATUS_FAILED
from .engine.thread_pool import ThreadPoolManager
from .infra.storage import CandidateStore
from .logging_conf import configure_logging
from .models import (
    Candidate,
    Company,
    CompanyOutcome,
    DetectionType,
    ScanReport,
    ScanState,
    StrategyAttempt,
    utcnow,
)

EMITTED = "emitted"
DUPLICATE = "duplicate"
PERSIST_FAILED = "persist_failed"


class ScanOrchestrator:
    """Single trigger entry point: ``run_scan(detection_type) -> ScanReport``."""

    def __init__(
        self,
        config: TrackerConfig,
        store: CandidateStore,
        dedup: DedupStore | None = None,
        sink: BaseSink | None = None,
        chains: Mapping[DetectionType, StrategyChain] | None = None,
        fetcher: Fetcher | None = None,
        extractor: Extractor | None = None,
        thread_pool: ThreadPoolManager | None = None,
        analytics: AnalyticsRecorder | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.dedup = dedup or DedupStore(store)
        self.sink = sink or NullSink()
        self.fetcher = fetcher
        self.extractor = extractor or Extractor(
            vocabulary=config.vocabulary, confidence_floor=config.scan.confidence_floor
        )
        self.thread_pool = thread_pool or ThreadPoolManager(default_workers=config.scan.batch_size)
        self.analytics = analytics
        self._chains: dict[DetectionType, StrategyChain] = dict(chains or {})
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.logger = logger or configure_logging().bind(component="orchestrator")

    # ------------------------------------------------------------------
    def chain_for(self, detection_type: DetectionType) -> StrategyChain:
        chain = self._chains.get(detection_type)
        if chain is None:
            if self.fetcher is None:
                raise ConfigurationError("No fetcher available to build strategy chains")
            entries = getattr(self.config.strategies, detection_type.value)
            executor = self.thread_pool.fetch_workers(self.config.scan.batch_size)
            chain = build_chain(detection_type, entries, self.fetcher, executor=executor)
            self._chains[detection_type] = chain
        return chain

    def run_scan(
        self,
        detection_type: DetectionType,
        cancel_event: Event | None = None,
        companies: Iterable[Company] | None = None,
    ) -> ScanReport:
        chain = self.chain_for(detection_type)
        if len(chain) == 0:
            raise ConfigurationError(f"No enabled strategies for {detection_type.value} detection")
        roster = list(companies) if companies is not None else list(self.store.list_companies())
        active = [company for company in roster if company.is_active]
        if not active:
            raise ConfigurationError("No active companies to scan")

        started_at = utcnow()
        batch_size = self.config.scan.batch_size
        batches = [active[index : index + batch_size] for index in range(0, len(active), batch_size)]
        self.logger.info(
            "scan_started",
            detection_type=detection_type.value,
            companies=len(active),
            batches=len(batches),
            strategies=chain.names,
        )

        outcomes: list[CompanyOutcome] = []
        emitted: list[Candidate] = []
        cancelled = False
        executor = self.thread_pool.company_workers(batch_size)
        for batch_index, batch in enumerate(batches):
            if self._is_cancelled(cancel_event):
                cancelled = True
                break
            if batch_index > 0:
                self._pause(self.config.scan.inter_batch_delay, "inter_batch")
            futures: list[Future] = []
            for position, company in enumerate(batch):
                if self._is_cancelled(cancel_event):
                    cancelled = True
                    break
                if position > 0:
                    self._pause(self.config.scan.intra_batch_delay, "intra_batch")
                futures.append(
                    executor.submit(self._scan_company, company, detection_type, chain)
                )
            for future in futures:
                outcome, company_emitted = future.result()
                outcomes.append(outcome)
                emitted.extend(company_emitted)
            if cancelled:
                break

        report = self._build_report(
            detection_type, started_at, len(active), outcomes, emitted, cancelled
        )
        if self.analytics is not None:
            self.analytics.record(report)
        self.logger.info("scan_complete", **report.summary())
        return report

    # ------------------------------------------------------------------
    def _scan_company(
        self, company: Company, detection_type: DetectionType, chain: StrategyChain
    ) -> tuple[CompanyOutcome, list[Candidate]]:
        log = self.logger.bind(company=company.name, detection_type=detection_type.value)
        log.debug("company_state", state=ScanState.RUNNING.value)
        try:
            chain_outcome = chain.run(
                company,
                lambda items, target: self.extractor.extract_many(items, target, detection_type),
            )
        except Exception as exc:  # noqa: BLE001
            log.error("company_scan_error", error=str(exc))
            return (
                CompanyOutcome(
                    company=company.name,
                    state=ScanState.EXHAUSTED,
                    winning_strategy=None,
                    attempts=(StrategyAttempt("chain", STATUS_FAILED, str(exc)),),
                ),
                [],
            )

        counts: Counter[str] = Counter()
        emitted: list[Candidate] = []
        for candidate in chain_outcome.candidates:
            status = self._emit(candidate, log)
            counts[status] += 1
            if status == EMITTED:
                emitted.append(candidate)
        self._mark_scanned(company, log)

        outcome = CompanyOutcome(
            company=company.name,
            state=chain_outcome.state,
            winning_strategy=chain_outcome.winning_strategy,
            attempts=tuple(chain_outcome.attempts),
            candidates_found=len(chain_outcome.candidates),
            candidates_emitted=counts[EMITTED],
            candidates_duplicate=counts[DUPLICATE],
            candidates_rejected=chain_outcome.rejected,
            persistence_failures=counts[PERSIST_FAILED],
        )
        log.info(
            "company_scanned",
            state=outcome.state.value,
            strategy=outcome.winning_strategy,
            found=outcome.candidates_found,
            emitted=outcome.candidates_emitted,
            duplicate=outcome.candidates_duplicate,
        )
        return outcome, emitted

    def _emit(self, candidate: Candidate, log: structlog.BoundLogger) -> str:
        """Save, notify and commit under the key's claim; an uncommitted key is retried next scan."""

        key = candidate.dedup_key
        with self.dedup.claim(key) as is_new:
            if not is_new:
                log.debug("candidate_duplicate", key=str(key))
                return DUPLICATE
            try:
                self.store.save_candidate(candidate)
                self.sink.notify(candidate)
                self.dedup.commit(key)
            except Exception as exc:  # noqa: BLE001
                log.warning("candidate_persist_failed", key=str(key), error=str(exc))
                return PERSIST_FAILED
        log.info("candidate_emitted", key=str(key), confidence=candidate.confidence)
        return EMITTED

    def _mark_scanned(self, company: Company, log: structlog.BoundLogger) -> None:
        mark = getattr(self.store, "mark_scanned", None)
        if not callable(mark):
            return
        try:
            mark(company)
        except Exception as exc:  # noqa: BLE001
            log.warning("mark_scanned_failed", error=str(exc))

    def _pause(self, delay_range: Sequence[float], kind: str) -> None:
        low, high = delay_range
        delay = self._rng.uniform(low, high) if high > 0 else 0.0
        if delay <= 0:
            return
        self.logger.debug("scan_delay", kind=kind, seconds=round(delay, 2))
        self._sleep(delay)

    @staticmethod
    def _is_cancelled(cancel_event: Event | None) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    @staticmethod
    def _build_report(
        detection_type: DetectionType,
        started_at,
        companies_total: int,
        outcomes: list[CompanyOutcome],
        emitted: list[Candidate],
        cancelled: bool,
    ) -> ScanReport:
        wins: Counter[str] = Counter(
            outcome.winning_strategy for outcome in outcomes if outcome.winning_strategy
        )
        return ScanReport(
            detection_type=detection_type,
            started_at=started_at,
            finished_at=utcnow(),
            companies_total=companies_total,
            companies_processed=len(outcomes),
            candidates_found=sum(outcome.candidates_found for outcome in outcomes),
            candidates_emitted=sum(outcome.candidates_emitted for outcome in outcomes),
            candidates_duplicate=sum(outcome.candidates_duplicate for outcome in outcomes),
            candidates_rejected=sum(outcome.candidates_rejected for outcome in outcomes),
            failures=sum(outcome.failures for outcome in outcomes),
            persistence_failures=sum(outcome.persistence_failures for outcome in outcomes),
            cancelled=cancelled,
            strategy_wins=dict(wins),
            outcomes=tuple(outcomes),
            emitted=tuple(emitted),
        )


__all__ = ["ScanOrchestrator"]
