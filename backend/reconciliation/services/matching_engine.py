"""
Matching Engine

Pairs bank statement lines with ledger transactions:
1. Apply the optional run filters to both sides
2. Score every statement against every transaction (optionally in a
   bounded thread pool); candidates below the low tier are dropped
3. Walk the statements in input order; rank each one's candidates that
   are still available, keep the top N and auto-match the best one when
   it reaches the high tier, consuming both records for later statements
4. Group the candidates per statement and compute run statistics

Step 3 is greedy and order dependent by contract: a transaction claimed
by an earlier statement is never offered to a later one.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Any, FrozenSet, List, Optional, Sequence, Tuple

from reconciliation.exceptions import MatchingCancelledError
from reconciliation.matching_config import (
    ConfidenceLevel,
    MatchStatus,
    MatchingConfig,
    DEFAULT_MATCHING_CONFIG
)
from reconciliation.matching_rules.statement_rules import (
    BankStatementMatchingRules,
    MatchCandidate
)
from reconciliation.records import StatementLine, LedgerTransaction, TransactionType, parse_amount
from reconciliation.services.filters import RecordFilters, apply_filters
from reconciliation.services.statistics import RunStatistics, calculate_run_statistics

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation for a running match.

    The engine checks the token before scoring each statement.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class MatchOptions:
    """
    Per-run options.

    max_workers: None or 1 scores sequentially; above 1 scores statements
    in a thread pool of that size. Consumption is always sequential.
    """
    statement_filters: Optional[RecordFilters] = None
    transaction_filters: Optional[RecordFilters] = None
    max_matches: Optional[int] = None
    max_workers: Optional[int] = None
    require_direction_match: bool = False
    cancel_token: Optional[CancellationToken] = None


@dataclass(frozen=True)
class StatementMatchGroup:
    """
    Ranked candidates for one statement line.
    """
    statement_id: str
    matches: Tuple[MatchCandidate, ...]
    best_match: MatchCandidate
    auto_matched: bool

    @property
    def status(self) -> MatchStatus:
        if self.auto_matched:
            return MatchStatus.MATCHED
        if self.best_match.confidence_level in (ConfidenceLevel.HIGH, ConfidenceLevel.MEDIUM):
            return MatchStatus.SUGGESTED
        return MatchStatus.REVIEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement_id": self.statement_id,
            "matches": [m.to_dict() for m in self.matches],
            "best_match": self.best_match.to_dict(),
            "auto_matched": self.auto_matched,
            "status": self.status.value
        }


@dataclass(frozen=True)
class MatchingRunResult:
    """Output of find_matches()."""
    matches: List[StatementMatchGroup]
    statistics: RunStatistics

    @property
    def auto_matched(self) -> List[MatchCandidate]:
        return [g.best_match for g in self.matches if g.auto_matched]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": [g.to_dict() for g in self.matches],
            "statistics": self.statistics.to_dict()
        }


@dataclass(frozen=True)
class ScoredStatement:
    """All above-floor candidates of one statement, in transaction input order."""
    statement: StatementLine
    candidates: Tuple[MatchCandidate, ...]


@dataclass(frozen=True)
class ConsumptionState:
    """Ids already claimed by auto-matches in the current run."""
    statements: FrozenSet[str] = frozenset()
    transactions: FrozenSet[str] = frozenset()


def consume(state: ConsumptionState, candidate: MatchCandidate) -> ConsumptionState:
    """Claim the statement and transaction of an auto-matched candidate."""
    return ConsumptionState(
        statements=state.statements | {candidate.statement_id},
        transactions=state.transactions | {candidate.transaction_id}
    )


def direction_compatible(statement: StatementLine, transaction: LedgerTransaction) -> bool:
    """
    Credits pair with revenues, debits with expenses.

    A statement with neither a Credit/Debit flag nor an amount is
    compatible with both.
    """
    if not statement.type and not parse_amount(statement.amount):
        return True
    is_credit = statement.is_credit
    is_revenue = transaction.type == TransactionType.REVENUE
    return is_credit == is_revenue


def _safe_build_candidate(
    rules: BankStatementMatchingRules,
    statement: StatementLine,
    transaction: LedgerTransaction
) -> Optional[MatchCandidate]:
    """Score one pair; a failure scores zero instead of aborting the run."""
    try:
        return rules.build_candidate(statement, transaction)
    except Exception as e:
        logger.warning(
            f"Scoring failed for statement {getattr(statement, 'id', None)} / "
            f"transaction {getattr(transaction, 'id', None)}: {e}",
            exc_info=True
        )
        return None


def score_statement(
    rules: BankStatementMatchingRules,
    statement: StatementLine,
    transactions: Sequence[LedgerTransaction],
    require_direction_match: bool = False
) -> ScoredStatement:
    """
    Score one statement against every transaction.
    """
    candidates = []
    for transaction in transactions:
        if require_direction_match and not direction_compatible(statement, transaction):
            continue
        candidate = _safe_build_candidate(rules, statement, transaction)
        if candidate is not None:
            candidates.append(candidate)
    return ScoredStatement(statement=statement, candidates=tuple(candidates))


def score_all(
    rules: BankStatementMatchingRules,
    statements: Sequence[StatementLine],
    transactions: Sequence[LedgerTransaction],
    options: MatchOptions
) -> List[ScoredStatement]:
    """
    Score every statement, preserving statement input order.

    Raises:
        MatchingCancelledError: the cancel token was triggered
    """
    token = options.cancel_token
    progress = {"done": 0}
    lock = threading.Lock()

    def _score(statement: StatementLine) -> ScoredStatement:
        if token is not None and token.cancelled:
            with lock:
                done = progress["done"]
            raise MatchingCancelledError(done)
        scored = score_statement(rules, statement, transactions, options.require_direction_match)
        with lock:
            progress["done"] += 1
        return scored

    workers = options.max_workers or 1
    if workers <= 1 or len(statements) <= 1:
        return [_score(s) for s in statements]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(_score, statements))


def select_candidates(
    scored: ScoredStatement,
    state: ConsumptionState,
    max_matches: int,
    auto_match_threshold: float
) -> Tuple[List[MatchCandidate], ConsumptionState]:
    """
    Rank the still-available candidates of one statement and apply the
    auto-accept rule.

    Ties keep transaction input order (stable sort).
    """
    if scored.statement.id in state.statements:
        return [], state

    available = [c for c in scored.candidates if c.transaction_id not in state.transactions]
    ranked = sorted(available, key=lambda c: c.confidence, reverse=True)[:max_matches]

    if ranked and ranked[0].confidence >= auto_match_threshold:
        ranked[0] = ranked[0].mark_auto_matched()
        state = consume(state, ranked[0])
        logger.debug(
            f"Auto-matched statement {ranked[0].statement_id} -> "
            f"transaction {ranked[0].transaction_id} ({ranked[0].confidence:.2f})"
        )

    return ranked, state


def group_by_statement(candidates: Sequence[MatchCandidate]) -> List[StatementMatchGroup]:
    """
    Group candidates per statement, in order of first appearance.

    The best match is the highest confidence candidate (first one on ties).
    """
    grouped: Dict[str, List[MatchCandidate]] = {}
    for candidate in candidates:
        grouped.setdefault(candidate.statement_id, []).append(candidate)

    groups = []
    for statement_id, matches in grouped.items():
        best = matches[0]
        for candidate in matches[1:]:
            if candidate.confidence > best.confidence:
                best = candidate
        groups.append(StatementMatchGroup(
            statement_id=statement_id,
            matches=tuple(matches),
            best_match=best,
            auto_matched=any(m.auto_matched for m in matches)
        ))
    return groups


def find_matches(
    statements: Sequence[StatementLine],
    transactions: Sequence[LedgerTransaction],
    options: Optional[MatchOptions] = None,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> MatchingRunResult:
    """
    Find and rank statement/transaction pairings.

    Args:
        statements: Bank statement lines, in processing order
        transactions: Candidate revenues/expenses
        options: Filters, max_matches override, parallelism, cancellation
        config: Matching configuration for this run

    Returns:
        MatchingRunResult with one group per statement that has candidates

    Raises:
        InvalidConfigurationError: max_matches override is invalid
        MatchingCancelledError: the run was cancelled
    """
    options = options or MatchOptions()
    if options.max_matches is not None:
        config = config.with_overrides(max_matches=options.max_matches)

    rules = BankStatementMatchingRules(config)

    filtered_statements = apply_filters(list(statements or []), options.statement_filters)
    filtered_transactions = apply_filters(list(transactions or []), options.transaction_filters)

    logger.info(
        f"Starting reconciliation matching: {len(filtered_statements)} statements x "
        f"{len(filtered_transactions)} transactions"
    )

    try:
        scored_statements = score_all(rules, filtered_statements, filtered_transactions, options)
    except MatchingCancelledError as e:
        logger.warning(f"Reconciliation matching cancelled: {e}")
        raise

    token = options.cancel_token
    state = ConsumptionState()
    candidates: List[MatchCandidate] = []
    for index, scored in enumerate(scored_statements):
        if token is not None and token.cancelled:
            logger.warning(f"Reconciliation matching cancelled after {index} statement(s)")
            raise MatchingCancelledError(index)
        selected, state = select_candidates(
            scored,
            state,
            config.max_matches,
            config.confidence_threshold.high
        )
        candidates.extend(selected)

    groups = group_by_statement(candidates)
    statistics = calculate_run_statistics(
        candidates,
        total_statements=len(filtered_statements),
        total_transactions=len(filtered_transactions)
    )

    logger.info(
        f"Reconciliation matching completed: {statistics.total_matches} candidates, "
        f"{statistics.auto_matches} auto-matched, match rate {statistics.match_rate:.2f}"
    )

    return MatchingRunResult(matches=groups, statistics=statistics)
