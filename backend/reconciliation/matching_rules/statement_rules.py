"""
Bank Statement Matching Rules

Scores a bank statement line against a ledger transaction.

Field weights (defaults):
- party: 0.35
- description: 0.25
- amount: 0.25
- date: 0.15

Confidence Tiers:
- High (>=0.85): Auto-match
- Medium (>=0.65): Suggested match
- Low (>=0.45): Candidate for review
- Below 0.45: Discarded
"""

import math
from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List, Optional, Union

from reconciliation.matching_config import (
    ConfidenceLevel,
    MatchingConfig,
    DEFAULT_MATCHING_CONFIG
)
from reconciliation.matching_rules.field_scorers import (
    score_party,
    score_description,
    score_amount,
    score_date
)
from reconciliation.records import StatementLine, LedgerTransaction, TransactionType

# Description similarity above this is mentioned in the explanation
EXPLAIN_DESCRIPTION_SIMILARITY = 0.7

LOW_CONFIDENCE_EXPLANATION = "Low confidence match"


def round_score(value: float, places: int = 2) -> float:
    """Round half-up to the given number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class FieldScores:
    """Component scores, each in [0, 1]."""
    party: float
    description: float
    amount: float
    date: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "party": self.party,
            "description": self.description,
            "amount": self.amount,
            "date": self.date
        }


@dataclass(frozen=True)
class MatchDetails:
    """Explanatory detail behind the component scores."""
    party_match: bool
    description_similarity: float
    amount_difference: float
    date_difference_days: Union[int, float]
    amount_within_tolerance: bool = False
    date_within_tolerance: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "party_match": self.party_match,
            "description_similarity": self.description_similarity,
            "amount_difference": _finite_or_none(self.amount_difference),
            "date_difference_days": _finite_or_none(self.date_difference_days),
            "amount_within_tolerance": self.amount_within_tolerance,
            "date_within_tolerance": self.date_within_tolerance
        }


@dataclass(frozen=True)
class MatchScore:
    """
    Scoring outcome for one statement/transaction pair.

    confidence_level is None when the confidence falls below the low tier.
    """
    confidence: float
    confidence_level: Optional[ConfidenceLevel]
    scores: FieldScores
    details: MatchDetails
    explanation: str


@dataclass(frozen=True)
class MatchCandidate:
    """
    A potential pairing of a statement line with a ledger transaction.
    """
    statement_id: str
    transaction_id: str
    transaction_type: TransactionType
    confidence: float
    confidence_level: ConfidenceLevel
    scores: FieldScores
    details: MatchDetails
    explanation: str
    auto_matched: bool = False

    def mark_auto_matched(self) -> "MatchCandidate":
        return replace(self, auto_matched=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement_id": self.statement_id,
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type.value,
            "confidence": self.confidence,
            "confidence_level": self.confidence_level.value,
            "scores": self.scores.to_dict(),
            "details": self.details.to_dict(),
            "explanation": self.explanation,
            "auto_matched": self.auto_matched
        }


def build_explanation(scores: FieldScores, details: MatchDetails) -> str:
    """
    Human-readable justification of a match, for audit and review screens.
    """
    explanations: List[str] = []

    if details.party_match:
        explanations.append("Same party/person")

    if details.description_similarity > EXPLAIN_DESCRIPTION_SIMILARITY:
        explanations.append(
            f"Description {round_score(details.description_similarity * 100, 0):.0f}% similar"
        )

    if details.amount_difference == 0:
        explanations.append("Exact amount match")
    elif details.amount_within_tolerance:
        explanations.append(f"Amount within tolerance (diff: {details.amount_difference:.2f})")

    if details.date_difference_days == 0:
        explanations.append("Same date")
    elif details.date_within_tolerance:
        explanations.append(f"Date within {details.date_difference_days} days")

    if not explanations:
        explanations.append(LOW_CONFIDENCE_EXPLANATION)

    return ", ".join(explanations)


class BankStatementMatchingRules:
    """
    Matching rules for bank statement lines against revenues/expenses.

    Holds an immutable MatchingConfig; safe to share between threads.
    """

    def __init__(self, config: MatchingConfig = DEFAULT_MATCHING_CONFIG):
        self.config = config

    def score(self, statement: StatementLine, transaction: LedgerTransaction) -> MatchScore:
        """
        Score a statement/transaction pair.

        All four field scores are always computed so the detail and the
        explanation stay complete.
        """
        cfg = self.config
        weights = cfg.weights

        party = score_party(
            statement.party_id, transaction.party_id,
            statement.party_name, transaction.party_name,
            cfg
        )
        description = score_description(statement.description, transaction.description, cfg)
        amount = score_amount(statement.amount, transaction.value, cfg)
        date_score = score_date(statement.date, transaction.date, cfg)

        scores = FieldScores(
            party=party.score,
            description=description.score,
            amount=amount.score,
            date=date_score.score
        )
        details = MatchDetails(
            party_match=party.party_match,
            description_similarity=description.similarity,
            amount_difference=amount.difference,
            date_difference_days=date_score.days_difference,
            amount_within_tolerance=amount.within_tolerance,
            date_within_tolerance=date_score.within_tolerance
        )

        confidence = round_score(
            scores.party * weights.party +
            scores.description * weights.description +
            scores.amount * weights.amount +
            scores.date * weights.date
        )

        return MatchScore(
            confidence=confidence,
            confidence_level=cfg.classify(confidence),
            scores=scores,
            details=details,
            explanation=build_explanation(scores, details)
        )

    def build_candidate(
        self,
        statement: StatementLine,
        transaction: LedgerTransaction
    ) -> Optional[MatchCandidate]:
        """
        Score a pair and materialise it as a candidate.

        Returns None when the confidence is below the low tier.
        """
        result = self.score(statement, transaction)
        if result.confidence_level is None:
            return None

        return MatchCandidate(
            statement_id=statement.id,
            transaction_id=transaction.id,
            transaction_type=transaction.type or TransactionType.REVENUE,
            confidence=result.confidence,
            confidence_level=result.confidence_level,
            scores=result.scores,
            details=result.details,
            explanation=result.explanation
        )
