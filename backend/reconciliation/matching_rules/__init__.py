"""
Matching Rules Module
"""

from .similarity import string_similarity, normalize_text
from .field_scorers import score_party, score_description, score_amount, score_date
from .statement_rules import (
    BankStatementMatchingRules,
    MatchCandidate,
    MatchScore,
    FieldScores,
    MatchDetails,
    build_explanation
)

__all__ = [
    "string_similarity",
    "normalize_text",
    "score_party",
    "score_description",
    "score_amount",
    "score_date",
    "BankStatementMatchingRules",
    "MatchCandidate",
    "MatchScore",
    "FieldScores",
    "MatchDetails",
    "build_explanation"
]
