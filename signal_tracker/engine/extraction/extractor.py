"""Turn raw strategy content into validated, scored candidates."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence, Union

import structlog

from ...config import VocabularyConfig
from ...models import (
    Candidate,
    Company,
    DetectionType,
    HireCandidate,
    JobCandidate,
    RawContent,
    normalise_key_part,
)
from ..classifier import CandidateClassifier
from ..parser import html_to_units, looks_like_html
from .rules import ExtractionRule, rules_for
from .scoring import finalise, raw_hire_score, raw_job_score
from .validators import (
    DEFAULT_LOCATION,
    CandidateValidator,
    clean_person_name,
    clean_position,
    clean_title,
    collapse,
    fallback_location,
)

EVIDENCE_LIMIT = 300
STRUCTURED_RULE = "structured"
COMPANY_SUFFIXES = frozenset(
    {"inc", "corp", "corporation", "co", "company", "ltd", "llc", "plc", "gmbh", "group", "holdings"}
)
_WORD = re.compile(r"[a-z0-9&]+")


@dataclass(frozen=True, slots=True)
class Rejection:
    rule: str
    reason: str
    evidence: str = ""


@dataclass(slots=True)
class ExtractionResult:
    accepted: list[Candidate] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.accepted)


@dataclass(slots=True)
class _Scored:
    span: tuple[int, int]
    order: int
    outcome: Union[Candidate, Rejection]


def _company_words(value: str) -> list[str]:
    words = _WORD.findall(value.lower())
    return [word for word in words if word not in COMPANY_SUFFIXES]


def _contains_run(words: list[str], run: list[str]) -> bool:
    size = len(run)
    return any(words[index : index + size] == run for index in range(len(words) - size + 1))


def _overlaps(left: tuple[int, int], right: tuple[int, int]) -> bool:
    return left[0] < right[1] and right[0] < left[1]


def collapse_duplicates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Keep one candidate per dedup key (the most confident), in first-seen order."""

    best: dict = {}
    for candidate in candidates:
        key = candidate.dedup_key
        current = best.get(key)
        if current is None or candidate.confidence > current.confidence:
            best[key] = candidate
    return list(best.values())


class Extractor:
    """Rules-table driven extraction with validation and confidence scoring."""

    def __init__(
        self,
        vocabulary: VocabularyConfig | None = None,
        rules: Sequence[ExtractionRule] | None = None,
        confidence_floor: int = 60,
        classifier: CandidateClassifier | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.vocabulary = vocabulary or VocabularyConfig()
        self.validator = CandidateValidator(self.vocabulary)
        self.confidence_floor = confidence_floor
        self.classifier = classifier
        self.logger = logger or structlog.get_logger("signal_tracker.extraction")
        self._rules = {
            detection_type: rules_for(detection_type, rules) for detection_type in DetectionType
        }
        self._triggers = {
            DetectionType.HIRES: tuple(self.vocabulary.hire_trigger_keywords),
            DetectionType.JOBS: tuple(self.vocabulary.job_trigger_keywords),
        }

    # ------------------------------------------------------------------
    def extract(
        self, raw: RawContent, company: Company, detection_type: DetectionType
    ) -> ExtractionResult:
        result = ExtractionResult()
        if raw.fields:
            outcome = self._build(raw.fields, STRUCTURED_RULE, 0, raw, company, detection_type, raw.text)
            self._collect(outcome, result, company, raw)
        else:
            for unit in self._units(raw.text):
                if not self._passes_prefilter(unit, detection_type):
                    continue
                for outcome in self._extract_unit(unit, raw, company, detection_type):
                    self._collect(outcome, result, company, raw)
        result.accepted = collapse_duplicates(result.accepted)
        return result

    def extract_many(
        self, items: Iterable[RawContent], company: Company, detection_type: DetectionType
    ) -> ExtractionResult:
        combined = ExtractionResult()
        for raw in items:
            partial = self.extract(raw, company, detection_type)
            combined.accepted.extend(partial.accepted)
            combined.rejected.extend(partial.rejected)
        combined.accepted = collapse_duplicates(combined.accepted)
        return combined

    # ------------------------------------------------------------------
    @staticmethod
    def _units(text: str) -> list[str]:
        if looks_like_html(text):
            return html_to_units(text)
        return [line for line in (collapse(part) for part in (text or "").splitlines()) if line]

    def _passes_prefilter(self, unit: str, detection_type: DetectionType) -> bool:
        lowered = unit.lower()
        return any(word in lowered for word in self._triggers[detection_type])

    def _extract_unit(
        self, unit: str, raw: RawContent, company: Company, detection_type: DetectionType
    ) -> list[Union[Candidate, Rejection]]:
        scored: list[_Scored] = []
        for order, rule in enumerate(self._rules[detection_type]):
            for match in rule.finditer(unit):
                outcome = self._build(
                    rule.extract_fields(match), rule.name, rule.weight, raw, company, detection_type, unit
                )
                scored.append(_Scored(span=match.span(), order=order, outcome=outcome))

        # Overlapping spans keep only the most confident candidate; ties go to the earlier rule.
        accepted = sorted(
            (item for item in scored if not isinstance(item.outcome, Rejection)),
            key=lambda item: (-item.outcome.confidence, item.order),
        )
        kept: list[_Scored] = []
        for item in accepted:
            if not any(_overlaps(item.span, other.span) for other in kept):
                kept.append(item)
        rejected: list[_Scored] = []
        for item in scored:
            if not isinstance(item.outcome, Rejection):
                continue
            if any(_overlaps(item.span, other.span) for other in kept + rejected):
                continue
            rejected.append(item)
        ordered = sorted(kept + rejected, key=lambda item: item.span[0])
        return [item.outcome for item in ordered]

    def _build(
        self,
        fields: dict,
        rule: str,
        weight: int,
        raw: RawContent,
        company: Company,
        detection_type: DetectionType,
        text: str,
    ) -> Union[Candidate, Rejection]:
        evidence = collapse(text)[:EVIDENCE_LIMIT]
        mentioned = fields.get("company")
        if mentioned and not self._same_company(str(mentioned), company.name):
            return Rejection(rule=rule, reason="company_mismatch", evidence=evidence)
        if detection_type is DetectionType.HIRES:
            name = clean_person_name(str(fields.get("person_name") or ""))
            position = clean_position(str(fields.get("position") or ""))
            reason = self.validator.check_hire(name, position, company.name)
            if reason:
                return Rejection(rule=rule, reason=reason, evidence=evidence)
            score = raw_hire_score(
                raw.source_tag, weight, self.validator.has_seniority(position), len(name.split(" "))
            )
            candidate: Candidate = HireCandidate(
                person_name=name,
                company=company.name,
                position=position,
                confidence=finalise(score),
                source_tag=raw.source_tag,
                strategy=raw.strategy,
                profile_url=fields.get("profile_url") or raw.url,
                evidence=evidence,
            )
        else:
            title = clean_title(str(fields.get("title") or ""))
            location = clean_title(str(fields.get("location") or ""))
            location = location or fallback_location(text) or DEFAULT_LOCATION
            reason = self.validator.check_job(title, company.name, location)
            if reason:
                return Rejection(rule=rule, reason=reason, evidence=evidence)
            score = raw_job_score(raw.source_tag, weight, self.validator.has_seniority(title))
            candidate = JobCandidate(
                title=title,
                company=company.name,
                location=location,
                confidence=finalise(score),
                source_tag=raw.source_tag,
                strategy=raw.strategy,
                url=fields.get("url") or raw.url,
                evidence=evidence,
            )
        return self._finalise(candidate, score, rule, text, evidence)

    def _finalise(
        self, candidate: Candidate, score: int, rule: str, text: str, evidence: str
    ) -> Union[Candidate, Rejection]:
        delta = 0
        if self.classifier is not None:
            try:
                verdict = self.classifier.classify(candidate, text)
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("classifier_error", rule=rule, error=str(exc))
                verdict = None
            if verdict is not None:
                if not verdict.accept:
                    return Rejection(
                        rule=rule, reason=verdict.reason or "classifier_veto", evidence=evidence
                    )
                delta = verdict.confidence_delta
        confidence = finalise(score, delta)
        if confidence < self.confidence_floor:
            return Rejection(rule=rule, reason="below_confidence_floor", evidence=evidence)
        if confidence != candidate.confidence:
            candidate = replace(candidate, confidence=confidence)
        return candidate

    @staticmethod
    def _same_company(mentioned: str, expected: str) -> bool:
        said, known = _company_words(mentioned), _company_words(expected)
        if not said or not known:
            return bool(mentioned) and normalise_key_part(mentioned) == normalise_key_part(expected)
        return _contains_run(said, known) or _contains_run(known, said)

    def _collect(
        self,
        outcome: Union[Candidate, Rejection],
        result: ExtractionResult,
        company: Company,
        raw: RawContent,
    ) -> None:
        if isinstance(outcome, Rejection):
            result.rejected.append(outcome)
            self.logger.debug(
                "candidate_rejected",
                company=company.name,
                strategy=raw.strategy,
                rule=outcome.rule,
                reason=outcome.reason,
            )
        else:
            result.accepted.append(outcome)


__all__ = ["ExtractionResult", "Extractor", "Rejection", "collapse_duplicates"]
