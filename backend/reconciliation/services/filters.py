"""
Run Filters

Optional predicates applied to statements and transactions before a
matching run. Unset filters are no-ops.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar, Union

from reconciliation.records import DateLike, parse_amount, parse_date

T = TypeVar("T")


def _as_date(value: Any) -> Optional[date]:
    parsed = parse_date(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    return parsed


@dataclass(frozen=True)
class RecordFilters:
    """
    Filters for one side of a matching run.

    Date bounds are inclusive and compared by calendar day. Amount bounds
    apply to the absolute amount.
    """
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    party_id: Optional[str] = None
    status: Optional[str] = None
    unreconciled: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RecordFilters":
        data = data or {}
        return cls(
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            min_amount=data.get("min_amount"),
            max_amount=data.get("max_amount"),
            party_id=data.get("party_id"),
            status=data.get("status"),
            unreconciled=bool(data.get("unreconciled", False))
        )

    @property
    def is_empty(self) -> bool:
        return not self.predicates()

    def predicates(self) -> List[Callable[[Any], bool]]:
        """Build the active predicates."""
        preds: List[Callable[[Any], bool]] = []

        start = _as_date(self.start_date)
        end = _as_date(self.end_date)
        if start is not None:
            preds.append(lambda item: _item_date(item) is not None and _item_date(item) >= start)
        if end is not None:
            preds.append(lambda item: _item_date(item) is not None and _item_date(item) <= end)

        if self.min_amount is not None:
            preds.append(lambda item: _item_amount(item) >= self.min_amount)
        if self.max_amount is not None:
            preds.append(lambda item: _item_amount(item) <= self.max_amount)

        if self.party_id is not None:
            preds.append(lambda item: item.party_id == self.party_id)
        if self.status is not None:
            preds.append(lambda item: item.status == self.status)
        if self.unreconciled:
            preds.append(lambda item: not item.reconciled)

        return preds

    def matches(self, item: Any) -> bool:
        return all(pred(item) for pred in self.predicates())


def _item_date(item: Any) -> Optional[date]:
    return _as_date(item.date)


def _item_amount(item: Any) -> float:
    amount = parse_amount(item.amount)
    return abs(amount) if amount is not None else 0.0


def apply_filters(items: Sequence[T], filters: Union[RecordFilters, Dict[str, Any], None]) -> List[T]:
    """
    Return the items accepted by every active filter, in input order.
    """
    if filters is None:
        return list(items)
    if isinstance(filters, dict):
        filters = RecordFilters.from_dict(filters)

    preds = filters.predicates()
    if not preds:
        return list(items)
    return [item for item in items if all(pred(item) for pred in preds)]
