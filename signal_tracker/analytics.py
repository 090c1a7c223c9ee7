"""Aggregate scan reports across runs; the caller owns the recorder instance."""

from __future__ import annotations

from collections import Counter
from threading import Lock

from .models import DetectionType, ScanReport


class AnalyticsRecorder:
    def __init__(self) -> None:
        self._lock = Lock()
        self._reports: list[ScanReport] = []

    def record(self, report: ScanReport) -> None:
        with self._lock:
            self._reports.append(report)

    def reports(self) -> list[ScanReport]:
        with self._lock:
            return list(self._reports)

    def latest(self, detection_type: DetectionType | None = None) -> ScanReport | None:
        with self._lock:
            for report in reversed(self._reports):
                if detection_type is None or report.detection_type is detection_type:
                    return report
        return None

    def totals(self, detection_type: DetectionType | None = None) -> dict[str, float | int]:
        reports = [
            report
            for report in self.reports()
            if detection_type is None or report.detection_type is detection_type
        ]
        durations = [report.duration_seconds for report in reports]
        return {
            "scans": len(reports),
            "companies_processed": sum(report.companies_processed for report in reports),
            "candidates_found": sum(report.candidates_found for report in reports),
            "candidates_emitted": sum(report.candidates_emitted for report in reports),
            "candidates_rejected": sum(report.candidates_rejected for report in reports),
            "failures": sum(report.failures for report in reports),
            "avg_duration_seconds": round(sum(durations) / len(durations), 3) if durations else 0.0,
        }

    def strategy_wins(self) -> dict[str, int]:
        wins: Counter[str] = Counter()
        for report in self.reports():
            wins.update(report.strategy_wins)
        return dict(wins)

    def reset(self) -> None:
        with self._lock:
            self._reports.clear()


__all__ = ["AnalyticsRecorder"]
