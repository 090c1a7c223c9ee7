"""Extraction, validation and confidence scoring."""

from .extractor import ExtractionResult, Extractor, Rejection, collapse_duplicates
from .rules import DEFAULT_RULES, ExtractionRule, rules_for
from .scoring import CONFIDENCE_CAP, SOURCE_BASE_SCORES
from .validators import CandidateValidator

__all__ = [
    "CONFIDENCE_CAP",
    "CandidateValidator",
    "DEFAULT_RULES",
    "ExtractionResult",
    "ExtractionRule",
    "Extractor",
    "Rejection",
    "SOURCE_BASE_SCORES",
    "collapse_duplicates",
    "rules_for",
]
