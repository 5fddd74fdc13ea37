"""CSV rows → canonical transaction candidates.

Parsing follows RFC 4180 rules via the stdlib :mod:`csv` module (UTF-8,
quoted fields with embedded commas and newlines, doubled quotes).

Column resolution (header names are matched exactly):

- ``transaction_date``: ``Transaction Date``, else ``Date``
- ``description``: ``Description``
- ``amount``: ``Amount`` (thousands separators stripped, parsed as a cent-exact
  Decimal)
- ``post_date`` / ``category`` / ``type`` / ``memo``: ``Post Date`` /
  ``Category`` / ``Type`` / ``Memo``, each optional and defaulting to ``""``

Rows missing a date, a description, or a parseable amount are dropped without
failing the batch. Dropped rows are only reported at DEBUG level.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator
from decimal import Decimal, InvalidOperation
from io import StringIO
from os import PathLike
from pathlib import Path

from .errors import ParseError
from .logging_setup import get_logger
from .models import RawRow, TransactionCandidate

logger = get_logger(__name__)

_DATE_COLUMNS = ("Transaction Date", "Date")
_CENT = Decimal("0.01")
_MAX_AMOUNT = Decimal(10) ** 16

# ---------------------------------------------------------------------------
# Helpers (amount parsing, cell access, CSV loading)
# ---------------------------------------------------------------------------


def parse_amount(raw: str | None) -> Decimal:
    """Parse an exported amount cell into a signed ``Decimal``.

    Accepts thousands separators (``1,234.56``), an optional leading sign, a
    ``$`` symbol, and accounting parentheses (``(12.50)`` is negative).

    The result is quantized to cents. Amounts with sub-cent digits or 17 or
    more integer digits raise :class:`ParseError` instead of being rounded.
    """

    if raw is None:
        raise ParseError("amount is required")
    s = raw.strip()
    if not s:
        raise ParseError("amount is empty")
    negative = False

    # Strip leading sign, currency symbol, and surrounding parentheses until
    # stable so any ordering of these markers is accepted.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()

    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ParseError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ParseError(f"invalid amount: {raw!r}")
    if abs(d) >= _MAX_AMOUNT:
        raise ParseError(f"amount out of range: {raw!r}")
    cents = d.quantize(_CENT)
    if cents != d:
        raise ParseError(f"amount has more than two decimal places: {raw!r}")
    return -abs(cents) if negative else cents


def _cell(row: RawRow, key: str) -> str:
    value = row.get(key)
    return value.strip() if isinstance(value, str) else ""


def _first_non_empty(row: RawRow, keys: Iterable[str]) -> str:
    for key in keys:
        value = _cell(row, key)
        if value:
            return value
    return ""


def read_csv_rows(csv_text: str) -> list[dict[str, str]]:
    """Split CSV text with a header row into row mappings.

    A leading UTF-8 BOM is ignored. Cells beyond the header are discarded and
    missing trailing cells become empty strings.
    """

    with StringIO(csv_text.lstrip("\ufeff")) as f:
        reader = csv.DictReader(f)
        rows: list[dict[str, str]] = []
        for row in reader:
            # DictReader collects extra cells under a ``None`` key and fills
            # short rows with ``None`` values; normalize both away.
            rows.append({k: (v if v is not None else "") for k, v in row.items() if k is not None})
        return rows


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_row(row: RawRow) -> TransactionCandidate:
    """Convert one raw row into a candidate or raise :class:`ParseError`."""

    transaction_date = _first_non_empty(row, _DATE_COLUMNS)
    if not transaction_date:
        raise ParseError("transaction date is missing")
    description = _cell(row, "Description")
    if not description:
        raise ParseError("description is missing")
    amount = parse_amount(row.get("Amount"))

    return TransactionCandidate(
        transaction_date=transaction_date,
        description=description,
        amount=amount,
        post_date=_cell(row, "Post Date"),
        category=_cell(row, "Category"),
        type=_cell(row, "Type"),
        memo=_cell(row, "Memo"),
    )


def normalize_rows(rows: Iterable[RawRow]) -> Iterator[TransactionCandidate]:
    """Lazily normalize rows in input order, skipping rows that fail to parse."""

    for pos, row in enumerate(rows):
        try:
            yield normalize_row(row)
        except ParseError as exc:
            logger.debug("dropping row %d: %s", pos, exc)


def load_candidates_from_csv(csv_path: str | PathLike[str]) -> list[TransactionCandidate]:
    """Read a CSV export from disk and return its normalized candidates."""

    text = Path(csv_path).read_text(encoding="utf-8-sig")
    return list(normalize_rows(read_csv_rows(text)))


__all__ = [
    "load_candidates_from_csv",
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "read_csv_rows",
]
