"""Declarative extraction rules, ordered most specific first.

Each rule is a compiled pattern plus the mapping from its named groups to
candidate fields and a confidence weight. Adding a rule means appending to
``DEFAULT_RULES``; nothing in the extraction routine branches on rule names.

Verb phrases are wrapped in scoped ``(?i:...)`` groups so that the person name
groups stay case-sensitive (capitalised tokens only).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ...models import DetectionType

NAME = r"(?P<name>[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+){1,3})"
NAME_PAIR = r"(?P<name>[A-Z][a-z]+[ \t]+[A-Z][a-z]+)"
POSITION_END = (
    r"(?=[ \t]*(?:[.;:!?()\n]|,[ \t]|$)"
    r"|[ \t]+(?:at|with|for|from|to|in|effective|starting|who|and[ \t]+will)\b)"
)
POSITION = r"(?P<position>[A-Za-z][A-Za-z&/' \t-]{1,80}?)" + POSITION_END
ARTICLE = r"(?i:(?:our|the|its|their|a|an)[ \t]+)?(?i:new[ \t]+)?"

TITLE = r"(?P<title>[A-Za-z][A-Za-z0-9&/+#.,()' \t-]{1,98}?)"
LOCATION = r"(?P<location>[A-Z][A-Za-z.\t ,-]{1,60}?)"
# Lines naming an employer ("X at Company") belong to search_title only.
NOT_AT_COMPANY = r"^(?![^\n]*[ \t](?i:at)[ \t])[ \t]*"
# Employer named as the subject of an announcement ("Globex appoints ...").
SUBJECT = r"(?P<company>[A-Z][\w&.'-]*(?:[ \t]+[A-Z][\w&.'-]*){0,4})"


@dataclass(frozen=True, slots=True)
class ExtractionRule:
    """One row of the rules table."""

    name: str
    detection_type: DetectionType
    pattern: re.Pattern[str]
    fields: Mapping[str, str] = field(default_factory=dict)
    weight: int = 0

    def finditer(self, text: str) -> Iterable[re.Match[str]]:
        return self.pattern.finditer(text)

    def extract_fields(self, match: re.Match[str]) -> dict[str, str]:
        groups = match.groupdict()
        return {
            target: groups[group].strip()
            for group, target in self.fields.items()
            if groups.get(group)
        }


def _rule(
    name: str,
    detection_type: DetectionType,
    pattern: str,
    fields: Mapping[str, str],
    weight: int = 0,
    flags: int = 0,
) -> ExtractionRule:
    return ExtractionRule(
        name=name,
        detection_type=detection_type,
        pattern=re.compile(pattern, flags),
        fields=dict(fields),
        weight=weight,
    )


HIRE_FIELDS = {"name": "person_name", "position": "position", "company": "company"}
JOB_FIELDS = {"title": "title", "location": "location", "company": "company"}

DEFAULT_RULES: tuple[ExtractionRule, ...] = (
    # "Acme is pleased to welcome Jane Doe as our new VP of Engineering"
    _rule(
        "hire_announcement",
        DetectionType.HIRES,
        r"(?:(?!(?i:we|our|i)\b)" + SUBJECT + r"[ \t]+(?i:is|are)[ \t]+)?"
        r"(?i:pleased|excited|thrilled|delighted|happy|proud)[ \t]+to[ \t]+"
        r"(?i:announce|welcome)[ \t]+(?i:that[ \t]+)?" + NAME + r"[ \t]+"
        r"(?i:as|has[ \t]+joined[ \t]+(?:us|the[ \t]+team|our[ \t]+team)[ \t]+as|"
        r"(?:has[ \t]+been[ \t]+|was[ \t]+)?(?:appointed|named)(?:[ \t]+as)?)[ \t]+"
        + ARTICLE
        + POSITION,
        HIRE_FIELDS,
        weight=5,
    ),
    # "Jane Doe has been appointed Chief Financial Officer"
    _rule(
        "appointment",
        DetectionType.HIRES,
        NAME + r"[ \t]+(?i:has[ \t]+been|was|is|will[ \t]+be)[ \t]+"
        r"(?i:appointed|named|hired)[ \t]+(?i:as[ \t]+)?" + ARTICLE + POSITION,
        HIRE_FIELDS,
        weight=3,
    ),
    # "Acme Corp appoints Jane Doe as Chief Revenue Officer"
    _rule(
        "press_release",
        DetectionType.HIRES,
        r"(?:" + SUBJECT + r"[ \t]+)?(?i:names|appoints|hires|taps|welcomes)[ \t]+"
        + NAME
        + r"[ \t]+(?i:as)[ \t]+"
        + ARTICLE
        + POSITION,
        HIRE_FIELDS,
        weight=2,
    ),
    # "Jane Doe has joined Acme Corp as Head of Sales"
    _rule(
        "joins",
        DetectionType.HIRES,
        NAME + r"[ \t]+(?i:has[ \t]+)?(?i:joined|joins|is[ \t]+joining)[ \t]+"
        r"(?:(?P<company>[A-Z][^.\n]{0,59}?)|[^.\n]{0,60}?)"
        r"[ \t](?i:as)[ \t]+" + ARTICLE + POSITION,
        HIRE_FIELDS,
    ),
    # "Acme Corp welcomes new Chief Technology Officer John Smith."
    _rule(
        "title_first",
        DetectionType.HIRES,
        r"(?:" + SUBJECT + r"[ \t]+)?"
        r"(?i:welcomes|announces|appoints|names|introduces)[ \t]+(?i:new)[ \t]+"
        r"(?P<position>[A-Z][A-Za-z&/ \t-]*[A-Za-z])[ \t]+" + NAME_PAIR
        + r"(?=[ \t]*(?:[.,;!\n]|$)|[ \t]+(?i:to|as|who)\b)",
        HIRE_FIELDS,
    ),
    # "Please welcome Jane Doe to the team as our new Head of Design"
    _rule(
        "welcome_to_team",
        DetectionType.HIRES,
        r"(?i:welcome|welcoming|introducing|meet)[ \t]+" + NAME + r"[ \t]+"
        r"(?i:to|who[ \t]+joins)[ \t]+[^.\n]{0,40}?[ \t](?i:as)[ \t]+" + ARTICLE + POSITION,
        HIRE_FIELDS,
    ),
    # "Senior Backend Engineer - London"
    _rule(
        "job_with_location",
        DetectionType.JOBS,
        NOT_AT_COMPANY + TITLE + r"[ \t]+[-–—|·][ \t]+" + LOCATION + r"[ \t]*$",
        JOB_FIELDS,
        weight=5,
        flags=re.MULTILINE,
    ),
    # "We are hiring a Senior Data Engineer in Berlin."
    _rule(
        "hiring_phrase",
        DetectionType.JOBS,
        r"(?i:hiring|looking[ \t]+for|seeking|recruiting)[ \t]+(?i:(?:an?|our[ \t]+next)[ \t]+)?"
        r"(?P<title>[A-Za-z][A-Za-z/&+# \t-]{2,80}?)"
        r"(?:[ \t]+(?i:in|at|based[ \t]+in)[ \t]+(?P<location>[A-Z][A-Za-z.\- \t]{1,40}?))?"
        r"(?=[ \t]*(?:[.,;!?()\n]|$)|[ \t]+(?i:to|who|with)\b)",
        JOB_FIELDS,
        weight=2,
    ),
    # "Staff Software Engineer at Acme Corp | LinkedIn"
    _rule(
        "search_title",
        DetectionType.JOBS,
        r"^[ \t]*(?i:job[ \t]+application[ \t]+for[ \t]+)?" + TITLE + r"[ \t]+(?i:at)[ \t]+"
        r"(?P<company>[A-Z][\w&.' \t-]*?)(?:[ \t]*[-–|:][ \t]*.*)?[ \t]*$",
        JOB_FIELDS,
        flags=re.MULTILINE,
    ),
    # A bare job heading on a career page
    _rule(
        "job_heading",
        DetectionType.JOBS,
        NOT_AT_COMPANY + r"(?P<title>[A-Z][A-Za-z0-9&/+#,()' \t-]{2,80}?)[ \t]*$",
        JOB_FIELDS,
        weight=-5,
        flags=re.MULTILINE,
    ),
)


def rules_for(
    detection_type: DetectionType, rules: Iterable[ExtractionRule] | None = None
) -> list[ExtractionRule]:
    """Return the rules for one detection type, preserving table order."""

    table = DEFAULT_RULES if rules is None else rules
    return [rule for rule in table if rule.detection_type is detection_type]


__all__ = ["DEFAULT_RULES", "ExtractionRule", "rules_for"]
