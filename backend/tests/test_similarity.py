"""
Unit Tests for String Similarity

Run with: pytest backend/tests/test_similarity.py -v
"""

import pytest

from reconciliation.matching_rules.similarity import (
    SUBSTRING_SIMILARITY,
    normalize_text,
    string_similarity
)


class TestNormalizeText:
    """Normalisation before comparison."""

    def test_lowercases_and_strips(self):
        assert normalize_text("  PIX Joao  ") == "pix joao"

    def test_removes_punctuation(self):
        assert normalize_text("Invoice #123, paid!") == "invoice 123 paid"

    def test_empty_values(self):
        assert normalize_text(None) == ""
        assert normalize_text("") == ""


class TestStringSimilarity:
    """Similarity rules, in precedence order."""

    def test_exact_match_after_normalisation(self):
        assert string_similarity("Joao Silva", "JOAO SILVA.") == 1.0

    def test_short_equal_strings_still_match(self):
        # Equality is checked before the minimum length
        assert string_similarity("AB", "ab") == 1.0

    def test_below_minimum_length_scores_zero(self):
        assert string_similarity("ab", "abc") == 0.0
        assert string_similarity("abcd", "abce", min_length=5) == 0.0

    def test_substring_scores_fixed_value(self):
        assert string_similarity("PIX JOAO SILVA", "joao silva") == SUBSTRING_SIMILARITY
        assert string_similarity("rent", "Rent January") == SUBSTRING_SIMILARITY

    def test_levenshtein_ratio(self):
        # kitten -> sitting: 3 edits over 7 characters
        assert string_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_completely_different(self):
        assert string_similarity("abc", "xyz") == 0.0

    def test_missing_values_score_zero(self):
        assert string_similarity(None, "anything") == 0.0
        assert string_similarity("anything", "") == 0.0

    def test_symmetric(self):
        a, b = "Office supplies", "Offce suplies ltd"
        assert string_similarity(a, b) == string_similarity(b, a)

    def test_bounded(self):
        for a, b in [("a b c", "c b a"), ("hello", "world"), ("x" * 50, "y")]:
            assert 0.0 <= string_similarity(a, b) <= 1.0
