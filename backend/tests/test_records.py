"""
Unit Tests for Reconciliation Records

Tests normalisation of repository rows into statement lines and
ledger transactions.

Run with: pytest backend/tests/test_records.py -v
"""

from datetime import date, datetime, timezone

import pytest

from reconciliation.records import (
    LedgerTransaction,
    StatementLine,
    TransactionType,
    normalize_ledger,
    normalize_statements,
    parse_amount,
    parse_date
)


class TestParsing:

    def test_parse_date_formats(self):
        assert parse_date("2025-01-15") == date(2025, 1, 15)
        assert parse_date("2025-01-15T10:30:00") == datetime(2025, 1, 15, 10, 30)
        assert parse_date("2025-01-15T10:30:00Z") == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert parse_date(date(2025, 1, 15)) == date(2025, 1, 15)

    def test_parse_date_invalid(self):
        assert parse_date("15/01/2025") is None
        assert parse_date("") is None
        assert parse_date(None) is None
        assert parse_date(20250115) is None

    def test_parse_amount(self):
        assert parse_amount("1500.50") == 1500.5
        assert parse_amount(-20) == -20.0
        assert parse_amount(" 12 ") == 12.0

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan"), float("inf")])
    def test_parse_amount_invalid(self, value):
        assert parse_amount(value) is None


class TestStatementLine:

    def test_from_dict(self):
        line = StatementLine.from_dict({
            "id": 42,
            "amount": "1500.00",
            "date": "2025-01-15",
            "description": "PIX JOAO",
            "party_id": 7,
            "reconciled": True
        })
        assert line.id == "42"
        assert line.amount == 1500.0
        assert line.date == date(2025, 1, 15)
        assert line.party_id == "7"
        assert line.reconciled is True

    def test_transaction_date_fallback(self):
        line = StatementLine.from_dict({"id": "s1", "amount": 10, "transaction_date": "2025-02-01"})
        assert line.date == date(2025, 2, 1)

    def test_nested_party_name(self):
        line = StatementLine.from_dict({"id": "s1", "parties": {"nome": "Joao Silva"}})
        assert line.party_name == "Joao Silva"

    def test_missing_values(self):
        line = StatementLine.from_dict({"id": "s1"})
        assert line.amount is None
        assert line.date is None
        assert line.description == ""
        assert line.party_id is None

    def test_credit_flag(self):
        assert StatementLine.from_dict({"id": "s1", "amount": 10, "type": "Credit"}).type == "Credit"
        assert StatementLine(id="s1", amount=None, date=None, type="Credit").is_credit
        assert StatementLine(id="s1", amount="25.00", date=None).is_credit
        assert not StatementLine(id="s1", amount=-25.0, date=None, type="Debit").is_credit
        assert not StatementLine(id="s1", amount="abc", date=None).is_credit

    def test_to_dict(self):
        line = StatementLine(id="s1", amount=5.0, date=date(2025, 1, 1))
        assert line.to_dict()["date"] == "2025-01-01"


class TestLedgerTransaction:

    def test_revenue_date_fallbacks(self):
        tx = LedgerTransaction.from_dict({
            "id": "r1", "value": 100, "expected_receipt_date": "2025-01-20"
        })
        assert tx.type == TransactionType.REVENUE
        assert tx.date == date(2025, 1, 20)

        tx = LedgerTransaction.from_dict({
            "id": "r1", "value": 100,
            "actual_receipt_date": "2025-01-18",
            "expected_receipt_date": "2025-01-20"
        })
        assert tx.date == date(2025, 1, 18)

    def test_settlement_date_wins_over_booking_date(self):
        tx = LedgerTransaction.from_dict({
            "id": "r1", "type": "revenue", "value": 150,
            "date": "2025-01-01", "actual_receipt_date": "2025-01-20"
        })
        assert tx.date == date(2025, 1, 20)

        tx = LedgerTransaction.from_dict({
            "id": "e1", "type": "expense", "value": 80,
            "date": "2025-01-01", "expected_payment_date": "2025-01-05"
        })
        assert tx.date == date(2025, 1, 5)

    def test_booking_date_used_without_settlement_dates(self):
        tx = LedgerTransaction.from_dict({"id": "r1", "value": 150, "date": "2025-01-01"})
        assert tx.date == date(2025, 1, 1)

    def test_expense_date_fallbacks(self):
        tx = LedgerTransaction.from_dict({
            "id": "e1", "type": "expense", "value": 80,
            "actual_payment_date": "2025-03-02"
        })
        assert tx.type == TransactionType.EXPENSE
        assert tx.date == date(2025, 3, 2)

    def test_amount_alias(self):
        tx = LedgerTransaction.from_dict({"id": "r1", "amount": "99.90"})
        assert tx.value == 99.9
        assert tx.amount == 99.9

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            LedgerTransaction.from_dict({"id": "x", "type": "transfer"})

    def test_to_dict(self):
        tx = LedgerTransaction(id="e1", value=1.0, date=None, type=TransactionType.EXPENSE)
        assert tx.to_dict()["type"] == "expense"


class TestNormalize:

    def test_records_pass_through(self):
        line = StatementLine(id="s1", amount=1.0, date=None)
        assert normalize_statements([line, {"id": "s2"}])[0] is line
        assert normalize_statements(None) == []

    def test_normalize_ledger_types_by_row(self):
        out = normalize_ledger([
            {"id": "r1", "type": "revenue", "value": 10},
            {"id": "e1", "type": "expense", "value": 20}
        ])
        assert [t.type for t in out] == [TransactionType.REVENUE, TransactionType.EXPENSE]
