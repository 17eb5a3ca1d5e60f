"""Builder matching against the abbreviation dictionary.

Resolution order (first hit wins):
1. Exact abbreviation match → 100 (primary) / 90 (secondary)
2. Whole-word containment or prefix match → 70
3. Normalized edit-distance similarity above a floor → 0-60

Pure and deterministic for a given dictionary snapshot.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

from inspectflow.models import BuilderAbbreviation, BuilderMatch, MatchMethod

EXACT_PRIMARY_SCORE = 100
EXACT_SECONDARY_SCORE = 90
SUBSTRING_SCORE = 70
FUZZY_MAX_SCORE = 60

_MIN_PREFIX_LENGTH = 3


def normalize_builder_text(text: str | None) -> str:
    """Case-fold, strip punctuation and collapse whitespace.

    "M/I Homes" → "mi homes", "M.I" → "mi", "Greg's" → "gregs"
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFKD", text).casefold()
    text = re.sub(r"[./'’]", "", text)
    text = re.sub(r"[^a-z0-9&]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _lookup_keys(guess: str) -> list[str]:
    """Full guess first, then its leading-word prefixes, longest first."""
    words = guess.split()
    return [" ".join(words[:n]) for n in range(len(words), 0, -1)]


def _rank_key(entry: BuilderAbbreviation) -> tuple:
    # Primary first, then the builder with more history, then stable text order
    return (
        not entry.is_primary,
        -entry.builder_job_count,
        str(entry.builder_id),
        entry.abbreviation,
    )


class BuilderMatcher:
    """Resolves a free-text builder guess to a builder id."""

    def __init__(
        self,
        abbreviations: Iterable[BuilderAbbreviation],
        similarity_floor: float = 0.6,
    ):
        self.similarity_floor = similarity_floor
        self._entries: list[tuple[str, BuilderAbbreviation]] = []
        self._by_text: dict[str, list[BuilderAbbreviation]] = {}

        for entry in abbreviations:
            key = normalize_builder_text(entry.abbreviation)
            if not key:
                continue
            self._entries.append((key, entry))
            self._by_text.setdefault(key, []).append(entry)

        for entries in self._by_text.values():
            entries.sort(key=_rank_key)

    def match(self, guess: str | None) -> BuilderMatch:
        normalized = normalize_builder_text(guess)
        if not normalized or not self._entries:
            return BuilderMatch()

        keys = _lookup_keys(normalized)

        exact = self._exact(keys)
        if exact is not None:
            return exact

        partial = self._substring(normalized)
        if partial is not None:
            return partial

        return self._fuzzy(keys)

    def _exact(self, keys: list[str]) -> BuilderMatch | None:
        # "MI Homes" hits both the secondary "MI Homes" and the primary "MI";
        # a primary hit wins, then the longest key
        hits = [self._by_text[key][0] for key in keys if key in self._by_text]
        if not hits:
            return None
        best = min(hits, key=lambda entry: not entry.is_primary)
        return BuilderMatch(
            builder_id=best.builder_id,
            score=EXACT_PRIMARY_SCORE if best.is_primary else EXACT_SECONDARY_SCORE,
            abbreviation=best.abbreviation,
            method=MatchMethod.EXACT_PRIMARY if best.is_primary else MatchMethod.EXACT_SECONDARY,
            similarity=1.0,
        )

    def _substring(self, normalized: str) -> BuilderMatch | None:
        padded = f" {normalized} "
        hits = [
            entry
            for key, entry in self._entries
            if f" {key} " in padded
            or (len(normalized) >= _MIN_PREFIX_LENGTH and key.startswith(normalized))
        ]
        if not hits:
            return None
        best = min(hits, key=_rank_key)
        return BuilderMatch(
            builder_id=best.builder_id,
            score=SUBSTRING_SCORE,
            abbreviation=best.abbreviation,
            method=MatchMethod.SUBSTRING,
        )

    def _fuzzy(self, keys: list[str]) -> BuilderMatch:
        best_entry: BuilderAbbreviation | None = None
        best_similarity = 0.0

        for abbreviation_key, entry in self._entries:
            similarity = max(
                Levenshtein.normalized_similarity(key, abbreviation_key) for key in keys
            )
            if similarity > best_similarity or (
                similarity == best_similarity
                and best_entry is not None
                and _rank_key(entry) < _rank_key(best_entry)
            ):
                best_entry, best_similarity = entry, similarity

        if best_entry is None or best_similarity < self.similarity_floor:
            return BuilderMatch(similarity=round(best_similarity, 4) if best_entry else None)

        return BuilderMatch(
            builder_id=best_entry.builder_id,
            score=int(round(FUZZY_MAX_SCORE * best_similarity)),
            abbreviation=best_entry.abbreviation,
            method=MatchMethod.FUZZY,
            similarity=round(best_similarity, 4),
        )


def match_builder(
    guess: str | None,
    abbreviations: Iterable[BuilderAbbreviation],
    similarity_floor: float = 0.6,
) -> BuilderMatch:
    """Convenience function: match one guess against a dictionary."""
    return BuilderMatcher(abbreviations, similarity_floor).match(guess)
