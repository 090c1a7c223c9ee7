"""Optional classifier collaborator consulted after rule-based validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..models import Candidate


@dataclass(frozen=True, slots=True)
class ClassifierVerdict:
    accept: bool = True
    confidence_delta: int = 0
    reason: str | None = None


class CandidateClassifier(Protocol):
    """Second opinion on a validated candidate; may veto it or nudge its confidence."""

    def classify(self, candidate: Candidate, text: str) -> ClassifierVerdict: ...


__all__ = ["CandidateClassifier", "ClassifierVerdict"]
