"""
Reconciliation Service

Workflow around the matching engine:
- Loading statement and ledger snapshots for a bank account
- Running the matching engine with an explicit configuration
- Listing candidates for a single statement (manual review)
- Audit logging

The service never writes matches. Confirming or overriding a suggested
match is left to the caller's persistence layer.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Protocol, Sequence

from logging_config import set_run_context, clear_run_context
from reconciliation.matching_config import MatchStatus, MatchingConfig, DEFAULT_MATCHING_CONFIG
from reconciliation.matching_rules.statement_rules import BankStatementMatchingRules
from reconciliation.records import (
    DateLike,
    LedgerTransaction,
    StatementLine,
    normalize_ledger,
    normalize_statements
)
from reconciliation.services.matching_engine import (
    MatchOptions,
    MatchingRunResult,
    StatementMatchGroup,
    find_matches,
    group_by_statement,
    score_statement
)

logger = logging.getLogger(__name__)


class ReconciliationRepository(Protocol):
    """
    Source of already-filtered snapshots for one bank account.

    Rows may be StatementLine/LedgerTransaction records or raw dicts.
    """

    async def get_statements(
        self,
        account_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None
    ) -> Sequence[Any]:
        ...

    async def get_transactions(
        self,
        account_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None
    ) -> Sequence[Any]:
        ...


@dataclass
class ReconciliationRunResult:
    """Result of a reconciliation run."""
    run_id: str
    account_id: str
    total_statements: int
    auto_matched: int
    suggested: int
    review: int
    unmatched: int
    result: MatchingRunResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "account_id": self.account_id,
            "total_statements": self.total_statements,
            "auto_matched": self.auto_matched,
            "suggested": self.suggested,
            "review": self.review,
            "unmatched": self.unmatched,
            **self.result.to_dict()
        }


class ReconciliationAuditEvent:
    """Audit event types for reconciliation operations."""
    RUN_STARTED = "reconciliation.run_started"
    RUN_COMPLETED = "reconciliation.run_completed"
    AUTO_MATCHED = "reconciliation.auto_matched"
    CANDIDATES_FOUND = "reconciliation.candidates_found"


def log_reconciliation_event(
    event_type: str,
    account_id: str,
    details: Dict[str, Any],
    run_id: Optional[str] = None,
    actor: str = "system"
):
    """Log reconciliation event for audit trail."""
    log_entry = {
        "event": event_type,
        "account_id": account_id,
        "run_id": run_id,
        "details": details,
        "actor": actor,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    logger.info(f"Reconciliation event: {event_type}", extra=log_entry)


class ReconciliationService:
    """
    Service for reconciling bank statements against revenues/expenses.
    """

    def __init__(
        self,
        repository: ReconciliationRepository,
        config: Optional[MatchingConfig] = None,
        default_options: Optional[MatchOptions] = None
    ):
        self.repository = repository
        self.config = config or DEFAULT_MATCHING_CONFIG
        self.default_options = default_options or MatchOptions()

    @classmethod
    def from_settings(cls, repository: ReconciliationRepository, settings=None) -> "ReconciliationService":
        """Build a service configured from environment settings."""
        from config import get_matching_config, get_settings

        settings = settings or get_settings()
        return cls(
            repository,
            config=get_matching_config(settings),
            default_options=MatchOptions(max_workers=settings.RECON_MAX_WORKERS)
        )

    async def _load(
        self,
        account_id: str,
        start_date: Optional[DateLike],
        end_date: Optional[DateLike]
    ):
        statement_rows = await self.repository.get_statements(account_id, start_date, end_date)
        transaction_rows = await self.repository.get_transactions(account_id, start_date, end_date)

        statements = normalize_statements(statement_rows)
        transactions: List[LedgerTransaction] = normalize_ledger(transaction_rows)
        return statements, transactions

    async def run_reconciliation(
        self,
        account_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        options: Optional[MatchOptions] = None
    ) -> ReconciliationRunResult:
        """
        Run automatic matching for a bank account.

        Args:
            account_id: Bank account whose statements are reconciled
            start_date: Optional period start passed to the repository
            end_date: Optional period end passed to the repository
            options: Engine run options

        Returns:
            ReconciliationRunResult with per-status counts and the matches
        """
        if not account_id:
            raise ValueError("account_id is required")

        run_id = str(uuid.uuid4())
        set_run_context(run_id=run_id, account_id=account_id)
        try:
            return await self._run(run_id, account_id, start_date, end_date, options)
        finally:
            clear_run_context()

    async def _run(
        self,
        run_id: str,
        account_id: str,
        start_date: Optional[DateLike],
        end_date: Optional[DateLike],
        options: Optional[MatchOptions]
    ) -> ReconciliationRunResult:
        log_reconciliation_event(
            ReconciliationAuditEvent.RUN_STARTED,
            account_id,
            {
                "start_date": str(start_date) if start_date else None,
                "end_date": str(end_date) if end_date else None,
                "config": self.config.to_dict()
            },
            run_id=run_id
        )

        statements, transactions = await self._load(account_id, start_date, end_date)
        result = find_matches(statements, transactions, options or self.default_options, self.config)

        counts = {status: 0 for status in MatchStatus}
        for group in result.matches:
            counts[group.status] += 1
            if group.auto_matched:
                log_reconciliation_event(
                    ReconciliationAuditEvent.AUTO_MATCHED,
                    account_id,
                    {
                        "statement_id": group.statement_id,
                        "transaction_id": group.best_match.transaction_id,
                        "confidence": group.best_match.confidence,
                        "explanation": group.best_match.explanation
                    },
                    run_id=run_id
                )

        total_statements = result.statistics.total_statements
        unmatched = total_statements - len(result.matches)

        log_reconciliation_event(
            ReconciliationAuditEvent.RUN_COMPLETED,
            account_id,
            {
                "total": total_statements,
                "auto_matched": counts[MatchStatus.MATCHED],
                "suggested": counts[MatchStatus.SUGGESTED],
                "review": counts[MatchStatus.REVIEW],
                "no_match": unmatched,
                "statistics": result.statistics.to_dict()
            },
            run_id=run_id
        )

        return ReconciliationRunResult(
            run_id=run_id,
            account_id=account_id,
            total_statements=total_statements,
            auto_matched=counts[MatchStatus.MATCHED],
            suggested=counts[MatchStatus.SUGGESTED],
            review=counts[MatchStatus.REVIEW],
            unmatched=unmatched,
            result=result
        )

    async def find_candidates(
        self,
        account_id: str,
        statement_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None
    ) -> Optional[StatementMatchGroup]:
        """
        Ranked candidates for a single statement line, without auto-matching.

        Returns None when no transaction reaches the low confidence tier.
        """
        if not account_id:
            raise ValueError("account_id is required")

        statements, transactions = await self._load(account_id, start_date, end_date)

        statement: Optional[StatementLine] = next(
            (s for s in statements if s.id == str(statement_id)), None
        )
        if statement is None:
            raise ValueError(f"Statement {statement_id} not found for account {account_id}")

        rules = BankStatementMatchingRules(self.config)
        scored = score_statement(rules, statement, transactions)
        ranked = sorted(scored.candidates, key=lambda c: c.confidence, reverse=True)
        ranked = ranked[:self.config.max_matches]

        log_reconciliation_event(
            ReconciliationAuditEvent.CANDIDATES_FOUND,
            account_id,
            {
                "statement_id": statement.id,
                "candidates_count": len(ranked)
            }
        )

        groups = group_by_statement(ranked)
        return groups[0] if groups else None
