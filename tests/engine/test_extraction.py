from __future__ import annotations

import pytest

from signal_tracker.engine import ClassifierVerdict
from signal_tracker.engine.extraction import CONFIDENCE_CAP, CandidateValidator, Extractor
from signal_tracker.engine.extraction.validators import clean_person_name, clean_position, fallback_location
from signal_tracker.models import Company, DetectionType, HireCandidate, JobCandidate, RawContent, SourceTag

ACME = Company(name="Acme Corp", website="https://acme.example")


def _raw(text: str, tag: SourceTag = SourceTag.SEARCH_SNIPPET, **kwargs) -> RawContent:
    return RawContent(text=text, source_tag=tag, strategy=kwargs.pop("strategy", "test"), **kwargs)


def _hires(text: str, tag: SourceTag = SourceTag.SEARCH_SNIPPET, extractor: Extractor | None = None):
    return (extractor or Extractor()).extract(_raw(text, tag), ACME, DetectionType.HIRES)


# ----------------------------------------------------------------------
# Hires
# ----------------------------------------------------------------------
def test_search_snippet_announcement() -> None:
    result = _hires("Acme Corp is pleased to welcome Jane Doe as our new VP of Engineering.")
    assert len(result.accepted) == 1
    hire = result.accepted[0]
    assert isinstance(hire, HireCandidate)
    assert hire.person_name == "Jane Doe"
    assert hire.position == "VP of Engineering"
    assert hire.company == "Acme Corp"
    assert hire.confidence == 90
    assert hire.source_tag is SourceTag.SEARCH_SNIPPET


def test_appointment_from_public_api_is_high_confidence() -> None:
    result = _hires(
        "Andrew Hernandez has been appointed Senior Director of Sales at Acme Corp.",
        SourceTag.PUBLIC_API,
    )
    hire = result.accepted[0]
    assert hire.person_name == "Andrew Hernandez"
    assert hire.position == "Senior Director of Sales"
    assert 80 <= hire.confidence <= CONFIDENCE_CAP


def test_three_token_name_earns_bonus() -> None:
    two = _hires("John Smith has been appointed Chief Operating Officer.", SourceTag.HEURISTIC)
    three = _hires("Mary Ann Smith has been appointed Chief Operating Officer.", SourceTag.HEURISTIC)
    assert three.accepted[0].person_name == "Mary Ann Smith"
    assert three.accepted[0].confidence - two.accepted[0].confidence == 5


def test_confidence_is_capped() -> None:
    result = _hires(
        "Acme Corp is thrilled to announce Mary Ann Smith has joined the team as Chief Executive Officer.",
        SourceTag.AUTHENTICATED_SCRAPE,
    )
    assert result.accepted[0].confidence == CONFIDENCE_CAP


def test_denylisted_name_is_rejected() -> None:
    result = _hires("Acme Corp is excited to welcome Team Member as our new Head of Sales.")
    assert not result
    assert [rejection.reason for rejection in result.rejected] == ["name_denylisted"]


def test_position_without_seniority_is_rejected() -> None:
    result = _hires("Please welcome Jane Doe to the team as our new Marketing Assistant.")
    assert not result.accepted
    assert result.rejected[0].reason == "position_without_seniority"


def test_single_letter_name_is_rejected() -> None:
    raw = _raw("J, CTO", SourceTag.PUBLIC_API, fields={"person_name": "J", "position": "CTO"})
    result = Extractor().extract(raw, ACME, DetectionType.HIRES)
    assert not result.accepted
    assert result.rejected[0].rule == "structured"
    assert result.rejected[0].reason == "name_too_short"


def test_structured_fields_are_cleaned() -> None:
    raw = _raw(
        "",
        SourceTag.PUBLIC_API,
        fields={"person_name": "JANE O'DOE", "position": "the Chief Technology Officer."},
    )
    hire = Extractor().extract(raw, ACME, DetectionType.HIRES).accepted[0]
    assert hire.person_name == "Jane Odoe"
    assert hire.position == "Chief Technology Officer"
    assert hire.confidence == 95


def test_prefilter_skips_units_without_triggers() -> None:
    result = _hires("Jane Doe enjoys hiking with the VP of Engineering.")
    assert not result.accepted
    assert not result.rejected


def test_confidence_floor_rejects_weak_candidates() -> None:
    extractor = Extractor(confidence_floor=95)
    result = _hires("Acme Corp is pleased to welcome Jane Doe as our new VP of Engineering.", extractor=extractor)
    assert not result.accepted
    assert result.rejected[0].reason == "below_confidence_floor"


def test_duplicate_events_collapse_to_most_confident() -> None:
    text = "Acme Corp is pleased to welcome Jane Doe as our new VP of Engineering."
    result = Extractor().extract_many(
        [_raw(text, SourceTag.HEURISTIC), _raw(text, SourceTag.AUTHENTICATED_SCRAPE)],
        ACME,
        DetectionType.HIRES,
    )
    assert len(result.accepted) == 1
    assert result.accepted[0].source_tag is SourceTag.AUTHENTICATED_SCRAPE


@pytest.mark.parametrize(
    "text",
    [
        "Globex Inc appoints John Smith as Chief Technology Officer.",
        "Globex welcomes new Chief Technology Officer John Smith.",
        "John Smith has joined Globex as Chief Financial Officer.",
        "Globex is pleased to welcome Jane Doe as our new VP of Engineering.",
    ],
)
def test_hire_at_other_company_is_rejected(text: str) -> None:
    result = _hires(text)
    assert not result.accepted
    assert [rejection.reason for rejection in result.rejected] == ["company_mismatch"]


@pytest.mark.parametrize(
    ("text", "person"),
    [
        ("Acme Corp appoints John Smith as Chief Technology Officer.", "John Smith"),
        ("Acme welcomes new Chief Technology Officer John Smith.", "John Smith"),
        ("Jane Doe has joined Acme's London office as Head of Sales.", "Jane Doe"),
        ("Jane Doe has joined the team as Head of Sales.", "Jane Doe"),
    ],
)
def test_hire_naming_scanned_company_is_accepted(text: str, person: str) -> None:
    result = _hires(text)
    assert [hire.person_name for hire in result.accepted] == [person]
    assert result.accepted[0].company == "Acme Corp"


# ----------------------------------------------------------------------
# Classifier collaborator
# ----------------------------------------------------------------------
class StubClassifier:
    def __init__(self, verdict: ClassifierVerdict | None = None, error: Exception | None = None) -> None:
        self.verdict = verdict
        self.error = error
        self.calls: list[str] = []

    def classify(self, candidate, text):  # noqa: ANN001
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.verdict


ANNOUNCEMENT = "Acme Corp is pleased to welcome Jane Doe as our new VP of Engineering."


def test_classifier_can_veto() -> None:
    classifier = StubClassifier(ClassifierVerdict(accept=False, reason="sports_roster"))
    result = _hires(ANNOUNCEMENT, extractor=Extractor(classifier=classifier))
    assert not result.accepted
    assert result.rejected[0].reason == "sports_roster"
    assert classifier.calls == [ANNOUNCEMENT]


def test_classifier_adjusts_confidence() -> None:
    classifier = StubClassifier(ClassifierVerdict(confidence_delta=-10))
    result = _hires(ANNOUNCEMENT, extractor=Extractor(classifier=classifier))
    assert result.accepted[0].confidence == 80


def test_classifier_errors_do_not_block_extraction() -> None:
    classifier = StubClassifier(error=RuntimeError("model offline"))
    result = _hires(ANNOUNCEMENT, extractor=Extractor(classifier=classifier))
    assert result.accepted[0].confidence == 90


# ----------------------------------------------------------------------
# Jobs
# ----------------------------------------------------------------------
CAREERS_HTML = """
<html><body>
  <h1>Careers at Acme</h1>
  <ul>
    <li>Senior Backend Engineer - London</li>
    <li>Product Designer - Remote</li>
  </ul>
  <a href="/apply">Apply</a>
</body></html>
"""


def test_career_page_jobs() -> None:
    result = Extractor().extract(_raw(CAREERS_HTML, SourceTag.CAREER_PAGE), ACME, DetectionType.JOBS)
    jobs = {job.title: job for job in result.accepted}
    assert set(jobs) == {"Senior Backend Engineer", "Product Designer"}
    assert jobs["Senior Backend Engineer"].location == "London"
    assert jobs["Senior Backend Engineer"].confidence == 85
    assert jobs["Product Designer"].location == "Remote"
    assert all(isinstance(job, JobCandidate) for job in result.accepted)


def test_search_title_matches_company() -> None:
    result = Extractor().extract(
        _raw("Staff Software Engineer at Acme Corp | LinkedIn"), ACME, DetectionType.JOBS
    )
    job = result.accepted[0]
    assert job.title == "Staff Software Engineer"
    assert job.location == "Not specified"


def test_search_title_for_other_company_is_rejected() -> None:
    result = Extractor().extract(
        _raw("Staff Software Engineer at Globex | LinkedIn"), ACME, DetectionType.JOBS
    )
    assert not result.accepted
    assert result.rejected[0].reason == "company_mismatch"


def test_hiring_phrase_with_location() -> None:
    result = Extractor().extract(
        _raw("Acme Corp is hiring a Senior Data Engineer in Berlin."), ACME, DetectionType.JOBS
    )
    job = result.accepted[0]
    assert job.title == "Senior Data Engineer"
    assert job.location == "Berlin"


def test_structured_job_fields() -> None:
    raw = _raw(
        "Platform Engineer - Remote",
        SourceTag.PUBLIC_API,
        fields={"title": "Platform Engineer", "location": "", "url": "https://jobs.example/1"},
    )
    job = Extractor().extract(raw, ACME, DetectionType.JOBS).accepted[0]
    assert job.location == "Remote"
    assert job.url == "https://jobs.example/1"
    assert job.confidence == 80


# ----------------------------------------------------------------------
# Validators
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    ("name", "reason"),
    [
        ("Jo", "name_too_short"),
        ("Madonna", "name_token_count"),
        ("Ann Bea Cid Dee Eve", "name_token_count"),
        ("Jane Doe2", "name_token_shape"),
        ("Football Star", "name_denylisted"),
        ("Director Jane", "name_contains_title"),
        ("Jane Doe", None),
    ],
)
def test_check_person_name(name, reason) -> None:
    assert CandidateValidator().check_person_name(name) == reason


def test_check_job_title() -> None:
    validator = CandidateValidator()
    assert validator.check_job_title("Senior Engineer") is None
    assert validator.check_job_title("Engineers") is None
    assert validator.check_job_title("Click here") == "title_denylisted"
    assert validator.check_job_title("Engineering") == "title_without_role_keyword"


def test_cleaners() -> None:
    assert clean_person_name("jane  DOE!") == "Jane Doe"
    assert clean_position("our new Head of Sales.") == "Head of Sales"
    assert fallback_location("Backend Engineer (Hybrid)") == "Hybrid"
    assert fallback_location("based in New York City") == "New York City"
    assert fallback_location("no hints here") is None
