from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from signal_tracker.models import (
    Company,
    CompanyOutcome,
    DedupKey,
    DetectionType,
    HireCandidate,
    JobCandidate,
    ScanReport,
    ScanState,
    SourceTag,
    StrategyAttempt,
    utcnow,
)


def _hire(name: str, company: str, position: str, **overrides) -> HireCandidate:
    base = {
        "person_name": name,
        "company": company,
        "position": position,
        "confidence": 90,
        "source_tag": SourceTag.SEARCH_SNIPPET,
        "strategy": "custom_search",
    }
    base.update(overrides)
    return HireCandidate(**base)


def test_hire_dedup_key_is_case_and_whitespace_insensitive() -> None:
    first = _hire("Jane Doe", "Acme Corp", "VP of Engineering")
    second = _hire("  jane   DOE ", "ACME CORP", "vp of engineering.", confidence=70)
    assert first.dedup_key == second.dedup_key
    assert str(first.dedup_key) == "hires|jane doe|acme corp|vp of engineering"


def test_job_and_hire_keys_never_collide() -> None:
    job = JobCandidate(
        title="Jane Doe",
        company="Acme Corp",
        location="VP of Engineering",
        confidence=80,
        source_tag=SourceTag.CAREER_PAGE,
        strategy="career_page",
    )
    hire = _hire("Jane Doe", "Acme Corp", "VP of Engineering")
    assert job.dedup_key != hire.dedup_key
    assert job.kind is DetectionType.JOBS


def test_dedup_key_ignores_source_and_confidence() -> None:
    first = _hire("Jane Doe", "Acme Corp", "CTO", source_tag=SourceTag.PUBLIC_API, confidence=98)
    second = _hire("Jane Doe", "Acme Corp", "CTO", strategy="website_news", confidence=60)
    assert first.dedup_key == second.dedup_key
    assert DedupKey.for_candidate(first) == first.dedup_key


def test_candidate_record_is_json_ready() -> None:
    record = _hire("Jane Doe", "Acme Corp", "CTO").to_record()
    assert record["kind"] == "hires"
    assert record["source_tag"] == "search_snippet"
    assert isinstance(record["discovered_at"], str)


def test_company_requires_name_and_lists_locators() -> None:
    with pytest.raises(ValidationError):
        Company(name="  ")
    company = Company(name="Acme Corp", website="https://acme.example")
    assert company.locators == {"website": "https://acme.example"}


def test_scan_report_summary() -> None:
    started = utcnow()
    outcome = CompanyOutcome(
        company="Acme Corp",
        state=ScanState.VALIDATED,
        winning_strategy="custom_search",
        attempts=(
            StrategyAttempt("authenticated_profile", "unavailable"),
            StrategyAttempt("jobs_api", "failed", "boom"),
            StrategyAttempt("custom_search", "accepted", accepted=1),
        ),
        candidates_found=1,
        candidates_emitted=1,
    )
    assert outcome.failures == 1
    report = ScanReport(
        detection_type=DetectionType.HIRES,
        started_at=started,
        finished_at=started + timedelta(seconds=2),
        companies_total=1,
        companies_processed=1,
        candidates_found=1,
        candidates_emitted=1,
        candidates_duplicate=0,
        candidates_rejected=0,
        failures=outcome.failures,
        persistence_failures=0,
        cancelled=False,
        strategy_wins={"custom_search": 1},
        outcomes=(outcome,),
    )
    summary = report.summary()
    assert summary["duration_seconds"] == 2.0
    assert summary["detection_type"] == "hires"
    assert summary["strategy_wins"] == {"custom_search": 1}
