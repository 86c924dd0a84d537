"""
Run Statistics

Aggregate figures for a matching run, for audit and review screens.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Sequence

from reconciliation.matching_config import ConfidenceLevel
from reconciliation.matching_rules.statement_rules import MatchCandidate, round_score


def _empty_distribution() -> Dict[str, int]:
    return {level.value: 0 for level in ConfidenceLevel}


@dataclass(frozen=True)
class RunStatistics:
    """Summary of one matching run."""
    total_statements: int = 0
    total_transactions: int = 0
    total_matches: int = 0
    auto_matches: int = 0
    confidence_distribution: Dict[str, int] = field(default_factory=_empty_distribution)
    average_confidence: float = 0.0
    match_rate: float = 0.0
    auto_match_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_statements": self.total_statements,
            "total_transactions": self.total_transactions,
            "total_matches": self.total_matches,
            "auto_matches": self.auto_matches,
            "confidence_distribution": dict(self.confidence_distribution),
            "average_confidence": self.average_confidence,
            "match_rate": self.match_rate,
            "auto_match_rate": self.auto_match_rate
        }


def calculate_run_statistics(
    candidates: Sequence[MatchCandidate],
    total_statements: int,
    total_transactions: int
) -> RunStatistics:
    """
    Aggregate the final candidate list of a run.

    Rates are relative to the number of statements considered; with no
    statements (or no candidates) every rate is 0.
    """
    distribution = _empty_distribution()
    for candidate in candidates:
        distribution[candidate.confidence_level.value] += 1

    auto_matches = sum(1 for c in candidates if c.auto_matched)

    average_confidence = 0.0
    if candidates:
        average_confidence = round_score(sum(c.confidence for c in candidates) / len(candidates))

    match_rate = 0.0
    auto_match_rate = 0.0
    if total_statements > 0:
        matched_statements = {c.statement_id for c in candidates}
        match_rate = round_score(len(matched_statements) / total_statements)
        auto_match_rate = round_score(auto_matches / total_statements)

    return RunStatistics(
        total_statements=total_statements,
        total_transactions=total_transactions,
        total_matches=len(candidates),
        auto_matches=auto_matches,
        confidence_distribution=distribution,
        average_confidence=average_confidence,
        match_rate=match_rate,
        auto_match_rate=auto_match_rate
    )
