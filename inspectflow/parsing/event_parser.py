"""Calendar event parser.

Extracts builder-name, job-type, address and urgency guesses from the free
text of one raw calendar event. Parsing never fails: an event with nothing
recognisable yields an empty ParsedCandidate that scores low downstream.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rapidfuzz.distance import OSA

from inspectflow.models import ParsedCandidate, RawCalendarEvent, UrgencyLevel
from inspectflow.parsing.vocabulary import (
    COMPILED_JOB_PATTERNS,
    FUZZY_JOB_KEYWORDS,
    HIGH_URGENCY_KEYWORDS,
    LOW_URGENCY_KEYWORDS,
    STREET_SUFFIXES,
    mask_delimiters,
)

_SEGMENT_SPLIT = re.compile(r"\s*[|:]\s*|\s+-\s+|\s*--+\s*")
_WORD = re.compile(r"[a-z0-9][a-z0-9.'/&]*")
_DATE_TOKEN = re.compile(r"\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b")
_TIME_TOKEN = re.compile(r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b", re.IGNORECASE)
_URGENCY_TOKEN = re.compile(
    r"\b(?:" + "|".join(HIGH_URGENCY_KEYWORDS + LOW_URGENCY_KEYWORDS) + r")\b!*",
    re.IGNORECASE,
)
_STREET_ADDRESS = re.compile(
    r"\b\d{1,6}(?:\s+[A-Za-z0-9.'#]+){1,5}?\s+(?:"
    + "|".join(STREET_SUFFIXES)
    + r")\b\.?(?:\s*,\s*[A-Za-z .'-]+)*",
    re.IGNORECASE,
)
_FUZZY_MIN_SIMILARITY = 0.75

# Fuzzy job-type hits count half as much as an exact keyword
EXACT_KEYWORD_QUALITY = 1.0
FUZZY_KEYWORD_QUALITY = 0.5


@dataclass(frozen=True)
class _KeywordHit:
    job_type: str
    keyword: str
    start: int
    quality: float


class EventParser:
    """Turns raw calendar text into a ParsedCandidate. Stateless."""

    def parse(self, event: RawCalendarEvent) -> ParsedCandidate:
        title = event.title or ""
        description = event.description or ""

        hit = self._find_job_type(title)
        in_title = hit is not None
        if hit is None and description:
            hit = self._find_job_type(description)

        if hit is not None and in_title:
            builder_guess = self._builder_guess(title[: hit.start])
        else:
            builder_guess = self._builder_guess(self._first_segment(title))

        return ParsedCandidate(
            builder_name_guess=builder_guess,
            job_type_guess=hit.job_type if hit else None,
            job_type_keyword=hit.keyword if hit else None,
            job_type_quality=hit.quality if hit else 0.0,
            address_guess=self._address_guess(event.location, description, title),
            urgency=self._urgency(title, description),
        )

    def _find_job_type(self, text: str) -> _KeywordHit | None:
        if not text.strip():
            return None
        masked = mask_delimiters(text)

        best: _KeywordHit | None = None
        # Patterns are sorted longest-first, so on equal start the longer one wins
        for keyword, regex, job_type in COMPILED_JOB_PATTERNS:
            match = regex.search(masked)
            if match and (best is None or match.start() < best.start):
                best = _KeywordHit(job_type, keyword, match.start(), EXACT_KEYWORD_QUALITY)
        if best is not None:
            return best

        return self._find_fuzzy_job_type(masked)

    def _find_fuzzy_job_type(self, masked: str) -> _KeywordHit | None:
        # Skip the first word: it is usually the builder abbreviation
        words = list(_WORD.finditer(masked))[1:]
        for word in words:
            token = word.group(0)
            if len(token) < 4:
                continue
            best_keyword, best_similarity = None, 0.0
            for keyword in FUZZY_JOB_KEYWORDS:
                similarity = OSA.normalized_similarity(token, keyword)
                if similarity > best_similarity:
                    best_keyword, best_similarity = keyword, similarity
            if best_keyword and best_similarity >= _FUZZY_MIN_SIMILARITY:
                return _KeywordHit(
                    FUZZY_JOB_KEYWORDS[best_keyword],
                    token,
                    word.start(),
                    FUZZY_KEYWORD_QUALITY,
                )
        return None

    @staticmethod
    def _first_segment(title: str) -> str:
        for segment in _SEGMENT_SPLIT.split(title.strip()):
            if segment.strip():
                return segment
        return ""

    @staticmethod
    def _builder_guess(prefix: str) -> str | None:
        segments = [s for s in _SEGMENT_SPLIT.split(prefix.strip()) if s.strip()]
        # Last segment before the keyword: "URGENT | MI Homes - Rough" → "MI Homes"
        for segment in reversed(segments):
            cleaned = _URGENCY_TOKEN.sub(" ", segment)
            cleaned = _DATE_TOKEN.sub(" ", cleaned)
            cleaned = _TIME_TOKEN.sub(" ", cleaned)
            cleaned = re.sub(r"\s+", " ", cleaned).strip(" -|:,;?!")
            if cleaned:
                return cleaned
        return None

    @staticmethod
    def _address_guess(location: str | None, description: str, title: str) -> str | None:
        if location and location.strip():
            loc = location.strip()
            if _STREET_ADDRESS.search(loc) or re.match(r"^\d{1,6}\s+\w+", loc):
                return loc
        for text in (description, title):
            if not text:
                continue
            match = _STREET_ADDRESS.search(text)
            if match:
                return match.group(0).strip(" ,")
        return None

    @staticmethod
    def _urgency(title: str, description: str) -> UrgencyLevel:
        text = f"{title} {description}".lower()
        words = set(_WORD.findall(text))
        if words.intersection(HIGH_URGENCY_KEYWORDS):
            return UrgencyLevel.HIGH
        if words.intersection(LOW_URGENCY_KEYWORDS):
            return UrgencyLevel.LOW
        return UrgencyLevel.MEDIUM


def parse_event(event: RawCalendarEvent) -> ParsedCandidate:
    """Convenience function: parse one event."""
    return EventParser().parse(event)


def derive_territory(address: str | None) -> str | None:
    """City part of a comma-separated address ("12 Oak St, Plymouth, MN" → "Plymouth")."""
    if not address:
        return None
    parts = [p.strip() for p in address.split(",")]
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]
