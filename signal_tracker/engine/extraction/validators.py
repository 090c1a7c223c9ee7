"""Field cleaning and domain validation for extracted candidates."""

from __future__ import annotations

import re
from typing import Iterable

from ...config import VocabularyConfig

NAME_TOKEN = re.compile(r"^[A-Z][A-Za-z]{1,19}$")
_NON_LETTERS = re.compile(r"[^A-Za-z\s]")
_SPACES = re.compile(r"\s+")
_LEADING_FILLER = re.compile(r"^(?:(?:our|the|a|an|as|its|their|new)\s+)+", re.IGNORECASE)
_TRAILING_PUNCT = re.compile(r"[\s.,;:!?'\"|-]+$")
_LOCATION_FALLBACK = re.compile(
    r"\b(?P<mode>Remote|Hybrid|On-?site)\b|\b(?:in|based in)\s+"
    r"(?P<place>[A-Z][a-z]+(?:[ ,]+[A-Z][A-Za-z]+){0,2})"
)

MAX_POSITION_LENGTH = 100
MAX_LOCATION_LENGTH = 100
MAX_COMPANY_LENGTH = 200
DEFAULT_LOCATION = "Not specified"


def _keyword_pattern(keywords: Iterable[str], plurals: bool = False) -> re.Pattern[str] | None:
    words = sorted({word for word in keywords if word}, key=len, reverse=True)
    if not words:
        return None
    suffix = r"s?\b" if plurals else r"\b"
    alternation = "|".join(re.escape(word) for word in words)
    return re.compile(rf"\b(?:{alternation}){suffix}", re.IGNORECASE)


def collapse(text: str) -> str:
    return _SPACES.sub(" ", text or "").strip()


def clean_person_name(raw: str) -> str:
    """Strip non-letters and normalise the casing of shouted or lower-case tokens."""

    tokens = collapse(_NON_LETTERS.sub("", raw or "")).split(" ")
    cleaned = []
    for token in tokens:
        if not token:
            continue
        if token.isupper() or token.islower():
            token = token.capitalize()
        cleaned.append(token)
    return " ".join(cleaned)


def clean_position(raw: str) -> str:
    text = collapse(raw)
    text = _LEADING_FILLER.sub("", text)
    return _TRAILING_PUNCT.sub("", text)


def clean_title(raw: str) -> str:
    text = collapse(raw)
    return _TRAILING_PUNCT.sub("", text)


def fallback_location(text: str) -> str | None:
    match = _LOCATION_FALLBACK.search(text or "")
    if not match:
        return None
    return match.group("mode") or match.group("place")


class CandidateValidator:
    """Type-specific validation rules built from the configured vocabulary.

    Every ``check_*`` method returns ``None`` for a valid record or a short
    machine-readable rejection reason.
    """

    def __init__(self, vocabulary: VocabularyConfig | None = None) -> None:
        self.vocabulary = vocabulary or VocabularyConfig()
        self._name_denylist = set(self.vocabulary.name_denylist)
        self._seniority = _keyword_pattern(self.vocabulary.seniority_keywords)
        self._job_keywords = _keyword_pattern(self.vocabulary.job_keywords, plurals=True)
        self._title_denylist = _keyword_pattern(self.vocabulary.title_denylist)

    # ------------------------------------------------------------------
    def has_seniority(self, text: str) -> bool:
        return bool(self._seniority and self._seniority.search(text or ""))

    def check_person_name(self, name: str) -> str | None:
        if len(name) < 3:
            return "name_too_short"
        tokens = name.split(" ")
        if not 2 <= len(tokens) <= 4:
            return "name_token_count"
        for token in tokens:
            if not NAME_TOKEN.match(token):
                return "name_token_shape"
            if token.lower() in self._name_denylist:
                return "name_denylisted"
        if self.has_seniority(name):
            return "name_contains_title"
        return None

    def check_position(self, position: str, require_seniority: bool = True) -> str | None:
        if len(position) < 3:
            return "position_too_short"
        if len(position) > MAX_POSITION_LENGTH:
            return "position_too_long"
        if require_seniority and not self.has_seniority(position):
            return "position_without_seniority"
        return None

    def check_job_title(self, title: str) -> str | None:
        if len(title) < 3:
            return "title_too_short"
        if len(title) > MAX_POSITION_LENGTH:
            return "title_too_long"
        if self._title_denylist and self._title_denylist.search(title):
            return "title_denylisted"
        if not (self._job_keywords and self._job_keywords.search(title)):
            return "title_without_role_keyword"
        return None

    @staticmethod
    def check_location(location: str) -> str | None:
        if not location:
            return "location_empty"
        if len(location) > MAX_LOCATION_LENGTH:
            return "location_too_long"
        return None

    @staticmethod
    def check_company(company: str) -> str | None:
        if not company:
            return "company_empty"
        if len(company) > MAX_COMPANY_LENGTH:
            return "company_too_long"
        return None

    def check_hire(self, person_name: str, position: str, company: str) -> str | None:
        return (
            self.check_person_name(person_name)
            or self.check_position(position, require_seniority=True)
            or self.check_company(company)
        )

    def check_job(self, title: str, company: str, location: str) -> str | None:
        return self.check_job_title(title) or self.check_company(company) or self.check_location(location)


__all__ = [
    "CandidateValidator",
    "DEFAULT_LOCATION",
    "clean_person_name",
    "clean_position",
    "clean_title",
    "collapse",
    "fallback_location",
]
