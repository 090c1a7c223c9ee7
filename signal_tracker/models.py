"""Core value types: companies, candidates, dedup keys and scan reports."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DetectionType(str, Enum):
    """The two signal families the tracker detects."""

    JOBS = "jobs"
    HIRES = "hires"


class SourceTag(str, Enum):
    """Reliability class of the strategy that produced raw content."""

    AUTHENTICATED_SCRAPE = "authenticated_scrape"
    PUBLIC_API = "public_api"
    CAREER_PAGE = "career_page"
    SEARCH_SNIPPET = "search_snippet"
    HEURISTIC = "heuristic"


class ScanState(str, Enum):
    """Per company, per detection type state machine."""

    PENDING = "pending"
    RUNNING = "running"
    VALIDATED = "validated"
    EXHAUSTED = "exhausted"


class Company(BaseModel):
    """A tracked company as read from the store collaborator."""

    model_config = ConfigDict(frozen=True)

    name: str
    id: str | None = None
    website: str | None = None
    linkedin_url: str | None = None
    career_page_url: str | None = None
    is_active: bool = True
    last_scanned_at: datetime | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("company name cannot be empty")
        return value

    @property
    def locators(self) -> dict[str, str]:
        found = {
            "website": self.website,
            "linkedin_url": self.linkedin_url,
            "career_page_url": self.career_page_url,
        }
        return {key: value for key, value in found.items() if value}


_PUNCT_EDGES = re.compile(r"^[\W_]+|[\W_]+$")
_SPACES = re.compile(r"\s+")


def normalise_key_part(value: str | None) -> str:
    text = _SPACES.sub(" ", (value or "").strip().lower())
    return _PUNCT_EDGES.sub("", text)


@dataclass(frozen=True, slots=True)
class DedupKey:
    """Normalised, case-insensitive identity of one real-world event."""

    value: str

    @classmethod
    def from_parts(cls, kind: DetectionType, *parts: str | None) -> "DedupKey":
        normalised = [normalise_key_part(part) for part in parts]
        return cls("|".join([kind.value, *normalised]))

    @classmethod
    def for_candidate(cls, candidate: "Candidate") -> "DedupKey":
        if isinstance(candidate, HireCandidate):
            return cls.from_parts(
                DetectionType.HIRES, candidate.person_name, candidate.company, candidate.position
            )
        return cls.from_parts(
            DetectionType.JOBS, candidate.title, candidate.company, candidate.location
        )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class JobCandidate:
    """A newly posted job extracted from raw content."""

    title: str
    company: str
    location: str
    confidence: int
    source_tag: SourceTag
    strategy: str
    url: str | None = None
    evidence: str = ""
    discovered_at: datetime = field(default_factory=utcnow)

    @property
    def kind(self) -> DetectionType:
        return DetectionType.JOBS

    @property
    def dedup_key(self) -> DedupKey:
        return DedupKey.for_candidate(self)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["source_tag"] = self.source_tag.value
        record["discovered_at"] = self.discovered_at.isoformat()
        record["kind"] = self.kind.value
        return record


@dataclass(frozen=True, slots=True)
class HireCandidate:
    """A newly announced hire extracted from raw content."""

    person_name: str
    company: str
    position: str
    confidence: int
    source_tag: SourceTag
    strategy: str
    profile_url: str | None = None
    evidence: str = ""
    discovered_at: datetime = field(default_factory=utcnow)

    @property
    def kind(self) -> DetectionType:
        return DetectionType.HIRES

    @property
    def dedup_key(self) -> DedupKey:
        return DedupKey.for_candidate(self)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["source_tag"] = self.source_tag.value
        record["discovered_at"] = self.discovered_at.isoformat()
        record["kind"] = self.kind.value
        return record


Candidate = Union[JobCandidate, HireCandidate]


@dataclass(frozen=True, slots=True)
class RawContent:
    """One unit of unstructured (or pre-structured) content returned by a strategy."""

    text: str
    source_tag: SourceTag
    strategy: str
    url: str | None = None
    fields: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StrategyAttempt:
    """One strategy invocation inside a chain run."""

    strategy: str
    status: str
    reason: str | None = None
    accepted: int = 0
    rejected: int = 0


@dataclass(frozen=True, slots=True)
class CompanyOutcome:
    """Final state of one company for one detection type."""

    company: str
    state: ScanState
    winning_strategy: str | None
    attempts: tuple[StrategyAttempt, ...]
    candidates_found: int = 0
    candidates_emitted: int = 0
    candidates_duplicate: int = 0
    candidates_rejected: int = 0
    persistence_failures: int = 0

    @property
    def failures(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.status in {"failed", "timeout"})


@dataclass(frozen=True, slots=True)
class ScanReport:
    """Write-once aggregate returned by one scan."""

    detection_type: DetectionType
    started_at: datetime
    finished_at: datetime
    companies_total: int
    companies_processed: int
    candidates_found: int
    candidates_emitted: int
    candidates_duplicate: int
    candidates_rejected: int
    failures: int
    persistence_failures: int
    cancelled: bool
    strategy_wins: dict[str, int] = field(default_factory=dict)
    outcomes: tuple[CompanyOutcome, ...] = ()
    emitted: tuple[Candidate, ...] = ()

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> dict[str, Any]:
        return {
            "detection_type": self.detection_type.value,
            "companies_total": self.companies_total,
            "companies_processed": self.companies_processed,
            "candidates_found": self.candidates_found,
            "candidates_emitted": self.candidates_emitted,
            "candidates_duplicate": self.candidates_duplicate,
            "candidates_rejected": self.candidates_rejected,
            "failures": self.failures,
            "persistence_failures": self.persistence_failures,
            "cancelled": self.cancelled,
            "duration_seconds": round(self.duration_seconds, 3),
            "strategy_wins": dict(self.strategy_wins),
        }


__all__ = [
    "Candidate",
    "Company",
    "CompanyOutcome",
    "DedupKey",
    "DetectionType",
    "HireCandidate",
    "JobCandidate",
    "RawContent",
    "ScanReport",
    "ScanState",
    "SourceTag",
    "StrategyAttempt",
    "normalise_key_part",
    "utcnow",
]
