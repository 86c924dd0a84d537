"""
Reconciliation Records

Read-only snapshots of the two record sets the engine pairs up:
- StatementLine: one row of an imported bank statement
- LedgerTransaction: one recorded revenue or expense

Repositories hand over raw rows; from_dict() normalises them. Missing
or unparsable values become None and simply score zero downstream.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, Any, Iterable, List, Optional, Union

DateLike = Union[date, datetime, str]


class TransactionType(str, Enum):
    """Ledger transaction kinds."""
    REVENUE = "revenue"
    EXPENSE = "expense"


def parse_date(value: Any) -> Optional[Union[date, datetime]]:
    """
    Parse a date value from a repository row.

    Accepts date, datetime or ISO-8601 strings (a trailing 'Z' is allowed).
    Returns None for anything else.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a monetary amount. Returns None when missing or not numeric.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        amount = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount


def _first(row: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def _party_name(row: Dict[str, Any]) -> Optional[str]:
    name = row.get("party_name")
    if name:
        return name
    # Nested party relation as returned by joined queries
    for key in ("parties", "party"):
        nested = row.get(key)
        if isinstance(nested, dict):
            name = nested.get("nome") or nested.get("name")
            if name:
                return name
    return None


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


@dataclass(frozen=True)
class StatementLine:
    """
    A bank statement line (external, read-only).
    """
    id: str
    amount: Optional[float]
    date: Optional[DateLike]
    description: str = ""
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    status: Optional[str] = None
    reconciled: bool = False
    type: Optional[str] = None

    @property
    def is_credit(self) -> bool:
        """Money in: flagged Credit by the bank or a positive amount."""
        if self.type and str(self.type).lower() == "credit":
            return True
        amount = parse_amount(self.amount)
        return amount is not None and amount > 0

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "StatementLine":
        """Normalise a statement row from a repository."""
        return cls(
            id=str(row.get("id", "")),
            amount=parse_amount(row.get("amount")),
            date=parse_date(_first(row, "date", "transaction_date")),
            description=row.get("description") or "",
            party_id=_optional_str(row.get("party_id")),
            party_name=_party_name(row),
            status=row.get("status"),
            reconciled=bool(row.get("reconciled", False)),
            type=_optional_str(row.get("type"))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "date": self.date.isoformat() if isinstance(self.date, (date, datetime)) else self.date,
            "description": self.description,
            "party_id": self.party_id,
            "party_name": self.party_name,
            "status": self.status,
            "reconciled": self.reconciled,
            "type": self.type
        }


@dataclass(frozen=True)
class LedgerTransaction:
    """
    A recorded revenue or expense (external, read-only).

    status is opaque to the engine; it is only used by run filters.
    """
    id: str
    value: Optional[float]
    date: Optional[DateLike]
    description: str = ""
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    type: TransactionType = TransactionType.REVENUE
    status: Optional[str] = None
    reconciled: bool = False

    @property
    def amount(self) -> Optional[float]:
        return self.value

    @classmethod
    def from_dict(
        cls,
        row: Dict[str, Any],
        transaction_type: Optional[TransactionType] = None
    ) -> "LedgerTransaction":
        """
        Normalise a revenue/expense row from a repository.

        The settlement date (actual, then expected) wins over the booking date.

        Raises:
            ValueError: row carries an unknown transaction type
        """
        tx_type = transaction_type or TransactionType(row.get("type") or TransactionType.REVENUE.value)

        if tx_type == TransactionType.REVENUE:
            tx_date = _first(row, "actual_receipt_date", "expected_receipt_date", "date")
        else:
            tx_date = _first(row, "actual_payment_date", "expected_payment_date", "date")

        return cls(
            id=str(row.get("id", "")),
            value=parse_amount(_first(row, "value", "amount")),
            date=parse_date(tx_date),
            description=row.get("description") or "",
            party_id=_optional_str(row.get("party_id")),
            party_name=_party_name(row),
            type=tx_type,
            status=row.get("status"),
            reconciled=bool(row.get("reconciled", False))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "value": self.value,
            "date": self.date.isoformat() if isinstance(self.date, (date, datetime)) else self.date,
            "description": self.description,
            "party_id": self.party_id,
            "party_name": self.party_name,
            "type": self.type.value,
            "status": self.status,
            "reconciled": self.reconciled
        }


def normalize_statements(rows: Iterable[Any]) -> List[StatementLine]:
    """Convert repository rows to StatementLines (records pass through)."""
    return [
        row if isinstance(row, StatementLine) else StatementLine.from_dict(row)
        for row in rows or []
    ]


def normalize_ledger(rows: Iterable[Any]) -> List[LedgerTransaction]:
    """Convert mixed revenue/expense rows, typed by their own 'type' field."""
    return [
        row if isinstance(row, LedgerTransaction) else LedgerTransaction.from_dict(row)
        for row in rows or []
    ]
