"""Pure sorting of transaction views by a selected column.

Comparison per column:

- ``amount``: numeric.
- ``transaction_date`` / ``post_date``: parsed as calendar dates. Unparseable or
  empty values sort as ``date.min`` (first when ascending); sorting never
  raises because of a bad date.
- everything else: case-sensitive string comparison, ``None`` treated as ``""``.

The sort is stable, so rows with equal keys keep their input order in both
directions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, TypeVar, get_args

type SortColumn = Literal["transaction_date", "post_date", "description", "category", "amount"]

SORTABLE_COLUMNS: tuple[str, ...] = get_args(SortColumn.__value__)

T = TypeVar("T")

_DATE_COLUMNS = frozenset({"transaction_date", "post_date"})
_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d", "%Y/%m/%d")


def parse_date(value: str | None) -> date:
    """Parse an exported date string; return ``date.min`` when it can't be read."""

    s = (value or "").strip()
    if not s:
        return date.min
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return date.min


def _amount_key(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return Decimal(0)


def _key_for(column: SortColumn) -> Callable[[Any], Any]:
    if column not in SORTABLE_COLUMNS:
        raise ValueError(f"unknown sort column: {column!r}")
    if column == "amount":
        return lambda tx: _amount_key(getattr(tx, "amount", 0))
    if column in _DATE_COLUMNS:
        return lambda tx: parse_date(getattr(tx, column, None))
    return lambda tx: getattr(tx, column, None) or ""


def sort_transactions(
    transactions: Iterable[T],
    column: SortColumn,
    descending: bool = False,
) -> list[T]:
    """Return a new list ordered by ``column``; the input is left untouched."""

    key = _key_for(column)
    return sorted(transactions, key=key, reverse=descending)


@dataclass(frozen=True, slots=True)
class SortState:
    """Current sort column and direction for a transaction view."""

    column: SortColumn = "transaction_date"
    descending: bool = True

    def select(self, column: SortColumn) -> SortState:
        """Return the state after a user picks ``column``.

        Picking the active column flips the direction. Picking a different one
        starts descending for ``transaction_date`` and ascending otherwise.
        """

        if column not in SORTABLE_COLUMNS:
            raise ValueError(f"unknown sort column: {column!r}")
        if column == self.column:
            return replace(self, descending=not self.descending)
        return SortState(column=column, descending=column == "transaction_date")

    def apply(self, transactions: Iterable[T]) -> list[T]:
        return sort_transactions(transactions, self.column, self.descending)


__all__ = [
    "SORTABLE_COLUMNS",
    "SortColumn",
    "SortState",
    "parse_date",
    "sort_transactions",
]
