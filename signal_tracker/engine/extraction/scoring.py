"""Confidence scoring: source reliability base plus keyword bonuses, capped below 100."""

from __future__ import annotations

from ...models import SourceTag

SOURCE_BASE_SCORES: dict[SourceTag, int] = {
    SourceTag.AUTHENTICATED_SCRAPE: 85,
    SourceTag.PUBLIC_API: 80,
    SourceTag.CAREER_PAGE: 75,
    SourceTag.SEARCH_SNIPPET: 70,
    SourceTag.HEURISTIC: 60,
}

HIRE_SENIORITY_BONUS = 15
JOB_SENIORITY_BONUS = 5
FULL_NAME_BONUS = 5
CONFIDENCE_CAP = 98


def raw_hire_score(
    source_tag: SourceTag, rule_weight: int, has_seniority: bool, name_tokens: int
) -> int:
    score = SOURCE_BASE_SCORES[source_tag] + rule_weight
    if has_seniority:
        score += HIRE_SENIORITY_BONUS
    if name_tokens == 3:
        score += FULL_NAME_BONUS
    return score


def raw_job_score(source_tag: SourceTag, rule_weight: int, has_seniority: bool) -> int:
    score = SOURCE_BASE_SCORES[source_tag] + rule_weight
    if has_seniority:
        score += JOB_SENIORITY_BONUS
    return score


def finalise(score: int, delta: int = 0) -> int:
    """Apply an external adjustment, then clamp into ``[0, CONFIDENCE_CAP]``."""

    return max(0, min(CONFIDENCE_CAP, score + delta))


__all__ = [
    "CONFIDENCE_CAP",
    "FULL_NAME_BONUS",
    "HIRE_SENIORITY_BONUS",
    "JOB_SENIORITY_BONUS",
    "SOURCE_BASE_SCORES",
    "finalise",
    "raw_hire_score",
    "raw_job_score",
]
