"""
Unit Tests for Field Scorers

Tests the four independent field scores:
- Party (identifier or name)
- Description
- Amount (tolerance band and decay)
- Date (tolerance window and decay)

Run with: pytest backend/tests/test_field_scorers.py -v
"""

import math
from datetime import date, datetime, timezone

import pytest

from reconciliation.matching_config import MatchingConfig
from reconciliation.matching_rules.field_scorers import (
    days_between,
    score_amount,
    score_date,
    score_description,
    score_party
)


class TestPartyScore:
    """Party identity scoring."""

    def test_same_identifier(self):
        result = score_party("p-1", "p-1", None, None)
        assert result.score == 1.0
        assert result.party_match is True

    def test_different_identifiers_ignore_names(self):
        result = score_party("p-1", "p-2", "Joao Silva", "Joao Silva")
        assert result.score == 0.0
        assert result.party_match is False

    def test_names_used_without_identifiers(self):
        result = score_party(None, None, "Joao Silva", "JOAO SILVA")
        assert result.score == 1.0
        assert result.party_match is True

    def test_name_similarity_above_threshold_is_not_always_a_match(self):
        # maria -> mario: one edit over five characters
        result = score_party(None, None, "Maria", "Mario")
        assert result.score == pytest.approx(0.8)
        assert result.party_match is False

    def test_name_similarity_below_threshold_scores_zero(self):
        result = score_party(None, None, "Acme Corp", "Globex")
        assert result.score == 0.0
        assert result.party_match is False

    def test_one_sided_identifier_falls_back_to_names(self):
        result = score_party("p-1", None, "Acme Ltd", "Acme Ltd")
        assert result.score == 1.0

    def test_nothing_to_compare(self):
        assert score_party(None, None, None, None).score == 0.0

    def test_threshold_is_configurable(self):
        strict = MatchingConfig(similarity_threshold=0.9)
        assert score_party(None, None, "Maria", "Mario", strict).score == 0.0


class TestDescriptionScore:

    def test_raw_similarity(self):
        result = score_description("Rent January", "rent january")
        assert result.score == 1.0
        assert result.similarity == 1.0

    def test_missing_description(self):
        assert score_description("", "Rent").score == 0.0


class TestAmountScore:
    """Amount proximity scoring."""

    def test_exact_amount(self):
        result = score_amount(1500, 1500)
        assert result.score == 1.0
        assert result.difference == 0
        assert result.within_tolerance is True

    def test_sign_is_ignored(self):
        result = score_amount(-250.0, 250.0)
        assert result.score == 1.0
        assert result.difference == 0

    def test_just_inside_tolerance_keeps_floor(self):
        result = score_amount(100, 104.99)
        assert result.within_tolerance is True
        assert result.score >= 0.7

    def test_just_outside_tolerance_drops_below_floor(self):
        result = score_amount(100, 106)
        assert result.within_tolerance is False
        assert result.score < 0.7
        assert result.score == pytest.approx(0.5 / (6 / 5.15))

    def test_degradation_is_capped(self):
        result = score_amount(50, 50000)
        assert result.score == pytest.approx(0.1)
        assert result.within_tolerance is False

    def test_missing_or_zero_amount(self):
        for a, b in [(None, 100), (100, None), (0, 100), ("abc", 100)]:
            result = score_amount(a, b)
            assert result.score == 0.0
            assert math.isinf(result.difference)
            assert result.within_tolerance is False

    def test_zero_tolerance_only_accepts_exact(self):
        config = MatchingConfig(amount_tolerance_percent=0.0)
        assert score_amount(100, 100, config).score == 1.0
        inexact = score_amount(100, 101, config)
        assert inexact.within_tolerance is False
        assert inexact.score == pytest.approx(0.1)

    def test_string_amounts(self):
        assert score_amount("1500.00", 1500).score == 1.0


class TestDateScore:
    """Date proximity scoring."""

    @pytest.mark.parametrize("other,expected", [
        (date(2025, 1, 15), 1.0),
        (date(2025, 1, 16), 0.7),
        (date(2025, 1, 17), 0.7),
    ])
    def test_within_tolerance(self, other, expected):
        result = score_date(date(2025, 1, 15), other)
        assert result.within_tolerance is True
        assert result.score == pytest.approx(expected)

    def test_decay_after_tolerance(self):
        result = score_date(date(2025, 1, 15), date(2025, 1, 18))
        assert result.within_tolerance is False
        assert result.days_difference == 3
        assert result.score == pytest.approx(0.3 * (1 - 3 / 30))

    def test_thirty_days_scores_zero(self):
        assert score_date("2025-01-01", "2025-01-31").score == pytest.approx(0.0)

    def test_beyond_thirty_days(self):
        result = score_date("2025-01-01", "2025-02-01")
        assert result.score == 0.0
        assert result.days_difference == 31

    def test_order_does_not_matter(self):
        a = score_date("2025-03-10", "2025-03-01")
        b = score_date("2025-03-01", "2025-03-10")
        assert a == b

    def test_missing_date(self):
        result = score_date(None, "2025-01-01")
        assert result.score == 0.0
        assert math.isinf(result.days_difference)

    def test_zero_tolerance_window(self):
        config = MatchingConfig(date_tolerance_days=0)
        assert score_date("2025-01-01", "2025-01-01", config).score == 1.0
        assert score_date("2025-01-01", "2025-01-02", config).within_tolerance is False


class TestDaysBetween:

    def test_partial_days_round_up(self):
        assert days_between("2025-01-15T10:00:00", date(2025, 1, 15)) == 1

    def test_mixed_date_and_datetime(self):
        assert days_between(datetime(2025, 1, 10), date(2025, 1, 12)) == 2

    def test_incomparable_datetimes(self):
        aware = datetime(2025, 1, 10, tzinfo=timezone.utc)
        naive = datetime(2025, 1, 10)
        assert days_between(aware, naive) is None

    def test_unparsable(self):
        assert days_between("not-a-date", "2025-01-01") is None
