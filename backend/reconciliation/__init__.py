"""
Reconciliation Engine Module

Pairs bank statement lines with recorded revenues and expenses:
- Weighted multi-factor scoring (party, description, amount, date)
- Configurable confidence tiers
- Auto-matching for high confidence, greedy and order dependent
- Suggested matches and review candidates
- Audit trail for all operations
"""

from reconciliation.exceptions import (
    ReconciliationError,
    InvalidConfigurationError,
    MatchingCancelledError
)
from reconciliation.matching_config import (
    ConfidenceLevel,
    MatchStatus,
    MatchWeights,
    ConfidenceThresholds,
    MatchingConfig,
    DEFAULT_MATCHING_CONFIG
)
from reconciliation.records import (
    StatementLine,
    LedgerTransaction,
    TransactionType,
    normalize_statements,
    normalize_ledger
)
from reconciliation.matching_rules.statement_rules import (
    BankStatementMatchingRules,
    MatchCandidate,
    MatchScore,
    FieldScores,
    MatchDetails
)
from reconciliation.services.filters import RecordFilters, apply_filters
from reconciliation.services.statistics import RunStatistics, calculate_run_statistics
from reconciliation.services.matching_engine import (
    CancellationToken,
    ConsumptionState,
    MatchOptions,
    MatchingRunResult,
    StatementMatchGroup,
    consume,
    find_matches,
    group_by_statement
)
from reconciliation.services.reconciliation_service import (
    ReconciliationRepository,
    ReconciliationRunResult,
    ReconciliationService
)

__all__ = [
    # Errors
    'ReconciliationError',
    'InvalidConfigurationError',
    'MatchingCancelledError',
    # Configuration
    'ConfidenceLevel',
    'MatchStatus',
    'MatchWeights',
    'ConfidenceThresholds',
    'MatchingConfig',
    'DEFAULT_MATCHING_CONFIG',
    # Records
    'StatementLine',
    'LedgerTransaction',
    'TransactionType',
    'normalize_statements',
    'normalize_ledger',
    # Matching Rules
    'BankStatementMatchingRules',
    'MatchCandidate',
    'MatchScore',
    'FieldScores',
    'MatchDetails',
    # Engine
    'RecordFilters',
    'apply_filters',
    'RunStatistics',
    'calculate_run_statistics',
    'CancellationToken',
    'ConsumptionState',
    'MatchOptions',
    'MatchingRunResult',
    'StatementMatchGroup',
    'consume',
    'find_matches',
    'group_by_statement',
    # Service
    'ReconciliationRepository',
    'ReconciliationRunResult',
    'ReconciliationService'
]
