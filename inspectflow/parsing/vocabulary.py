"""Fixed keyword vocabulary for calendar event parsing.

Job types, urgency cues and street-suffix tokens as they show up in
inspectors' calendar titles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Characters treated as token delimiters in titles ("MI - Test | 3/15")
DELIMITER_CHARS = "-|:_,;()[]"
_DELIMITER_TRANSLATION = str.maketrans({ch: " " for ch in DELIMITER_CHARS})


def mask_delimiters(text: str) -> str:
    """Lowercase and blank out delimiters, preserving character offsets."""
    return text.lower().translate(_DELIMITER_TRANSLATION)


@dataclass(frozen=True)
class JobTypePattern:
    job_type: str
    label: str
    patterns: tuple[str, ...]

    def compiled(self) -> list[tuple[str, re.Pattern[str]]]:
        return [(p, _keyword_regex(p)) for p in self.patterns]


def _keyword_regex(pattern: str) -> re.Pattern[str]:
    words = mask_delimiters(pattern).split()
    body = r"\s+".join(re.escape(w) for w in words)
    return re.compile(rf"(?<![a-z0-9]){body}(?![a-z0-9])")


JOB_TYPE_PATTERNS: tuple[JobTypePattern, ...] = (
    JobTypePattern(
        "sv2",
        "Pre-Drywall",
        ("sv2", "sv 2", "s.v.2", "pre-drywall", "predrywall", "pre-dry", "predry", "stage 2"),
    ),
    JobTypePattern(
        "rough_duct",
        "Rough Duct",
        ("rough duct", "duct rough", "rough-in duct", "duct rough-in"),
    ),
    JobTypePattern(
        "bdoor_retest",
        "Blower Door Retest",
        ("blower retest", "bdoor retest", "failed retest", "retest", "re-test"),
    ),
    JobTypePattern(
        "code_bdoor",
        "Code Blower Door",
        ("code bdoor", "code blower", "blower door only", "bdoor only", "bd only", "blower door", "bdoor"),
    ),
    JobTypePattern(
        "duct_test",
        "Duct Leakage Test",
        ("duct leakage", "duct test", "duct blaster", "duct"),
    ),
    JobTypePattern(
        "full_test",
        "Full Test",
        ("full test", "test-spec", "final test", "test"),
    ),
    JobTypePattern("final", "Final", ("final",)),
    JobTypePattern("rough", "Rough", ("rough-in", "rough")),
    JobTypePattern("rehab", "Rehab", ("rehab", "rehabilitation", "retrofit")),
    JobTypePattern(
        "multifamily",
        "Multifamily",
        ("multifamily", "multi-family", "apartment"),
    ),
    JobTypePattern(
        "energy_star",
        "Energy Star",
        ("energy star", "energystar", "e-star", "estar"),
    ),
)

JOB_TYPES: dict[str, JobTypePattern] = {p.job_type: p for p in JOB_TYPE_PATTERNS}

# (pattern text, compiled regex, job type), longest pattern first
COMPILED_JOB_PATTERNS: list[tuple[str, re.Pattern[str], str]] = sorted(
    (
        (text, regex, p.job_type)
        for p in JOB_TYPE_PATTERNS
        for text, regex in p.compiled()
    ),
    key=lambda entry: len(entry[0]),
    reverse=True,
)

# Single-word patterns eligible for typo-tolerant matching ("tets" → "test")
FUZZY_JOB_KEYWORDS: dict[str, str] = {
    text: job_type
    for text, _, job_type in COMPILED_JOB_PATTERNS
    if " " not in mask_delimiters(text).strip() and len(text) >= 4
}

HIGH_URGENCY_KEYWORDS = ("asap", "urgent", "rush", "emergency", "priority")
LOW_URGENCY_KEYWORDS = ("tentative", "flexible", "whenever", "tbd")

STREET_SUFFIXES = (
    "st", "street", "ave", "avenue", "rd", "road", "dr", "drive", "ln", "lane",
    "blvd", "boulevard", "ct", "court", "way", "pl", "place", "cir", "circle",
    "pkwy", "parkway", "trl", "trail", "ter", "terrace", "hwy", "highway", "curve",
)


def normalize_job_type(value: str | None) -> str | None:
    """Map a reviewer-supplied job type (label or key) onto a canonical key."""
    if value is None:
        return None
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    if key in JOB_TYPES:
        return key
    for pattern in JOB_TYPE_PATTERNS:
        if pattern.label.lower() == value.strip().lower():
            return pattern.job_type
    return key or None


def job_type_label(job_type: str) -> str:
    pattern = JOB_TYPES.get(job_type)
    return pattern.label if pattern else job_type.replace("_", " ").title()
