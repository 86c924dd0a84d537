"""
Reconciliation Engine - Error Types

Errors raised by the matching engine and the reconciliation workflow.
Scoring problems on a single statement/transaction pair are NOT errors:
they are logged and the pair scores zero.
"""

from typing import List, Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors"""
    pass


class InvalidConfigurationError(ReconciliationError, ValueError):
    """Raised when a matching configuration violates its invariants"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid matching configuration: {'; '.join(self.errors)}")


class MatchingCancelledError(ReconciliationError):
    """Raised when a caller cancels a running match"""

    def __init__(self, processed_statements: int = 0, message: Optional[str] = None):
        self.processed_statements = processed_statements
        super().__init__(
            message or f"Matching cancelled after {processed_statements} statement(s)"
        )
