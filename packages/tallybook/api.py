"""Public orchestration functions for ``tallybook``.

Each function opens one transactional scope with :func:`store_session`,
creates the ledger tables when absent, and delegates to the store, rule and
sorting modules. Entry points (the CLI, tests) call these rather than wiring
sessions themselves.

``database_url`` falls back to the ``DATABASE_URL`` environment variable;
when neither is set the call raises :class:`~tallybook.errors.StoreError`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from tallybook_db.client import init_schema

from .categories import normalize_name, validate_name
from .logging_setup import get_logger
from .models import RawRow, RuleDraft, StoredTransaction
from .normalizers import normalize_rows, read_csv_rows
from .persistence import (
    get_transaction,
    ingest_candidates,
    list_transactions,
    store_session,
    update_category,
)
from .rules import apply_all_rules, apply_rule_by_id, propose_rule, suggest_rule
from .sorting import SortColumn, sort_transactions

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """Counts reported after an import.

    ``rows`` is the number of data rows read; ``dropped`` is how many of them
    could not be normalized. ``duplicates_in_batch`` and ``already_stored``
    explain why the remaining candidates were not all inserted.
    """

    rows: int
    dropped: int
    duplicates_in_batch: int
    already_stored: int
    inserted: int


def import_rows(
    rows: Iterable[RawRow],
    *,
    database_url: str | None = None,
) -> ImportSummary:
    """Normalize raw rows and persist the ones whose natural key is new.

    All inserts happen in one transaction. A storage failure rolls the whole
    batch back and surfaces as :class:`~tallybook.errors.StoreError`.
    """

    raw = list(rows)
    candidates = list(normalize_rows(raw))
    with store_session(database_url=database_url) as session:
        init_schema(database_url=database_url)
        result = ingest_candidates(session, candidates)

    summary = ImportSummary(
        rows=len(raw),
        dropped=len(raw) - len(candidates),
        duplicates_in_batch=result.candidates - result.unique,
        already_stored=result.existing,
        inserted=result.inserted,
    )
    if summary.dropped:
        logger.debug("%d row(s) dropped during normalization", summary.dropped)
    return summary


def import_csv(
    csv_path: str | PathLike[str],
    *,
    database_url: str | None = None,
) -> ImportSummary:
    """Read a CSV export from disk and import it (see :func:`import_rows`)."""

    text = Path(csv_path).read_text(encoding="utf-8-sig")
    logger.info("importing %s", csv_path)
    return import_rows(read_csv_rows(text), database_url=database_url)


def load_transactions(
    *,
    database_url: str | None = None,
    column: SortColumn = "transaction_date",
    descending: bool = True,
    apply_rules: bool = True,
) -> list[StoredTransaction]:
    """Return all transactions sorted for display.

    With ``apply_rules`` (the startup behavior), every persisted rule is applied
    once before reading so the view reflects current rules.
    """

    with store_session(database_url=database_url) as session:
        init_schema(database_url=database_url)
        if apply_rules:
            apply_all_rules(session)
        txs = list_transactions(session)
    return sort_transactions(txs, column, descending)


def reclassify_transaction(
    tx_id: int,
    category: str,
    *,
    database_url: str | None = None,
) -> RuleDraft:
    """Set one transaction's category and return a rule suggestion for it.

    The suggestion is not stored; pass it to :func:`accept_rule_suggestion` if
    the user wants it. ``category`` is trimmed and validated like any other
    category name; an invalid name raises ``ValueError`` before anything is
    written.
    """

    v = validate_name(category)
    if not v.ok:
        raise ValueError(f"Invalid category name: {v.reason}")
    category = normalize_name(category)
    with store_session(database_url=database_url) as session:
        init_schema(database_url=database_url)
        update_category(session, tx_id, category)
        tx = get_transaction(session, tx_id)
    return suggest_rule(tx, category)


def accept_rule_suggestion(
    draft: RuleDraft,
    *,
    apply: bool = False,
    database_url: str | None = None,
) -> tuple[int, int]:
    """Persist ``draft`` and optionally apply it right away.

    Returns ``(rule_id, matched)`` where ``matched`` is ``0`` when ``apply`` is
    false.
    """

    with store_session(database_url=database_url) as session:
        init_schema(database_url=database_url)
        rule_id = propose_rule(session, draft)
        matched = apply_rule_by_id(session, rule_id) if apply else 0
    return rule_id, matched


__all__ = [
    "ImportSummary",
    "accept_rule_suggestion",
    "import_csv",
    "import_rows",
    "load_transactions",
    "reclassify_transaction",
]
