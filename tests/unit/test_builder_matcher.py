"""Tests for builder matching against the abbreviation dictionary."""

from __future__ import annotations

from uuid import UUID

import pytest

from inspectflow.matching.builder_matcher import (
    BuilderMatcher,
    match_builder,
    normalize_builder_text,
)
from inspectflow.models import BuilderAbbreviation, MatchMethod

MI = UUID("00000000-0000-0000-0000-000000000001")
LENNAR = UUID("00000000-0000-0000-0000-000000000002")
PULTE = UUID("00000000-0000-0000-0000-000000000003")


@pytest.fixture
def dictionary() -> list[BuilderAbbreviation]:
    return [
        BuilderAbbreviation(builder_id=MI, abbreviation="MI", is_primary=True, builder_job_count=40),
        BuilderAbbreviation(builder_id=MI, abbreviation="M/I", builder_job_count=40),
        BuilderAbbreviation(builder_id=MI, abbreviation="MI Homes", builder_job_count=40),
        BuilderAbbreviation(builder_id=LENNAR, abbreviation="Lennar", is_primary=True, builder_job_count=10),
        BuilderAbbreviation(builder_id=PULTE, abbreviation="Pulte", is_primary=True, builder_job_count=3),
        BuilderAbbreviation(builder_id=PULTE, abbreviation="Pulte Homes", builder_job_count=3),
    ]


class TestNormalize:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("M/I Homes", "mi homes"),
            ("M.I", "mi"),
            ("  Greg's   Builders ", "gregs builders"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, text, expected):
        assert normalize_builder_text(text) == expected


class TestExact:
    def test_primary_abbreviation_scores_100(self, dictionary):
        match = match_builder("MI", dictionary)

        assert match.builder_id == MI
        assert match.score == 100
        assert match.method is MatchMethod.EXACT_PRIMARY

    def test_punctuation_is_ignored(self, dictionary):
        assert match_builder("m.i.", dictionary).builder_id == MI

    def test_primary_prefix_beats_secondary_full_phrase(self, dictionary):
        match = match_builder("MI Homes", dictionary)

        assert match.builder_id == MI
        assert match.score == 100
        assert match.abbreviation == "MI"

    def test_secondary_abbreviation_scores_90(self):
        entries = [
            BuilderAbbreviation(builder_id=PULTE, abbreviation="Pulte", is_primary=True),
            BuilderAbbreviation(builder_id=PULTE, abbreviation="Centex"),
        ]
        match = match_builder("Centex", entries)

        assert match.builder_id == PULTE
        assert match.score == 90
        assert match.method is MatchMethod.EXACT_SECONDARY

    def test_shared_abbreviation_prefers_builder_with_more_jobs(self):
        entries = [
            BuilderAbbreviation(builder_id=PULTE, abbreviation="PH", builder_job_count=2),
            BuilderAbbreviation(builder_id=LENNAR, abbreviation="PH", builder_job_count=25),
        ]
        assert match_builder("PH", entries).builder_id == LENNAR


class TestSubstring:
    def test_whole_word_containment(self, dictionary):
        match = match_builder("New Lennar Build", dictionary)

        assert match.builder_id == LENNAR
        assert match.score == 70
        assert match.method is MatchMethod.SUBSTRING

    def test_prefix_of_abbreviation(self, dictionary):
        match = match_builder("Lenn", dictionary)

        assert match.builder_id == LENNAR
        assert match.score == 70


class TestFuzzy:
    def test_typo_scores_on_similarity_scale(self, dictionary):
        match = match_builder("Lenar", dictionary)

        assert match.builder_id == LENNAR
        assert match.method is MatchMethod.FUZZY
        assert 0 < match.score <= 60

    def test_below_floor_is_no_match(self, dictionary):
        match = match_builder("zzzz qqqq", dictionary)

        assert match.builder_id is None
        assert match.score == 0
        assert not match.matched

    def test_higher_floor_rejects_weak_match(self, dictionary):
        assert BuilderMatcher(dictionary, similarity_floor=0.95).match("Lenar").builder_id is None


class TestEdgeCases:
    def test_empty_guess(self, dictionary):
        assert match_builder(None, dictionary).score == 0
        assert match_builder("   ", dictionary).score == 0

    def test_empty_dictionary(self):
        assert match_builder("MI", []).builder_id is None

    def test_deterministic(self, dictionary):
        reversed_dictionary = list(reversed(dictionary))
        for guess in ("MI", "Pulte Homes", "Lenar", "Lenn"):
            assert match_builder(guess, dictionary) == match_builder(guess, reversed_dictionary)
