"""Transaction store backed by the shared ledger database.

Functions here read and write ``tb_transactions`` through SQLAlchemy ORM models
defined in ``tallybook_db.models.ledger``. Every function takes an explicit
session; callers own the transaction scope, normally via
:func:`store_session`.

Scope:
- Existence check and insert keyed by the natural key
  ``(transaction_date, description, amount)``.
- Idempotent batch ingestion (dedupe, then insert only unseen keys).
- Point updates of ``category`` and ``memo`` by id.
- Destructive bulk clear.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from tallybook_db.client import DatabaseNotConfiguredError, session_scope
from tallybook_db.models.ledger import TbTransaction

from .duplicates import dedupe
from .errors import NotFoundError, StoreError
from .logging_setup import get_logger
from .models import IngestResult, NaturalKey, StoredTransaction, TransactionCandidate

logger = get_logger(__name__)


@contextmanager
def store_session(*, database_url: str | None = None) -> Iterator[Session]:
    """Transactional scope that surfaces storage failures as :class:`StoreError`.

    Commits on success and rolls back on any exception. Failures are not
    retried. A missing database URL is reported the same way.
    """

    try:
        with session_scope(database_url=database_url) as session:
            yield session
    except DatabaseNotConfiguredError as exc:
        raise StoreError(str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.error("store operation failed: %s", exc)
        raise StoreError(f"store operation failed: {exc}") from exc


def _to_stored(row: TbTransaction) -> StoredTransaction:
    return StoredTransaction(
        id=row.id,
        transaction_date=row.transaction_date,
        post_date=row.post_date or "",
        description=row.description,
        category=row.category or "",
        type=row.type or "",
        amount=row.amount,
        memo=row.memo or "",
    )


def _get_row(session: Session, tx_id: int) -> TbTransaction:
    row = session.get(TbTransaction, tx_id)
    if row is None:
        raise NotFoundError("transaction", tx_id)
    return row


# ---------------------------------------------------------------------------
# Store operations
# ---------------------------------------------------------------------------


def transaction_exists(session: Session, key: NaturalKey) -> bool:
    """Return ``True`` when a transaction with ``key`` is already stored."""

    stmt = (
        select(TbTransaction.id)
        .where(
            (TbTransaction.transaction_date == key.transaction_date)
            & (TbTransaction.description == key.description)
            & (TbTransaction.amount == key.amount)
        )
        .limit(1)
    )
    return session.execute(stmt).first() is not None


def insert_transaction(session: Session, candidate: TransactionCandidate) -> int:
    """Insert ``candidate`` and return its new id.

    No existence check happens here; the table's unique constraint on the
    natural key rejects duplicates at flush time.
    """

    row = TbTransaction(
        transaction_date=candidate.transaction_date,
        post_date=candidate.post_date,
        description=candidate.description,
        category=candidate.category,
        type=candidate.type,
        amount=candidate.amount,
        memo=candidate.memo,
    )
    session.add(row)
    session.flush()
    return row.id


def get_transaction(session: Session, tx_id: int) -> StoredTransaction:
    return _to_stored(_get_row(session, tx_id))


def list_transactions(session: Session) -> list[StoredTransaction]:
    """Return every stored transaction. No ordering is guaranteed."""

    rows = session.execute(select(TbTransaction)).scalars().all()
    return [_to_stored(r) for r in rows]


def update_category(session: Session, tx_id: int, category: str) -> None:
    _get_row(session, tx_id).category = category


def update_memo(session: Session, tx_id: int, memo: str) -> None:
    _get_row(session, tx_id).memo = memo


def set_categories(session: Session, changes: dict[int, str]) -> None:
    """Write ``category`` for many ids at once (ids are assumed to exist)."""

    by_category: dict[str, list[int]] = {}
    for tx_id, category in changes.items():
        by_category.setdefault(category, []).append(tx_id)
    for category, ids in by_category.items():
        session.execute(
            update(TbTransaction)
            .where(TbTransaction.id.in_(ids))
            .values(category=category)
            .execution_options(synchronize_session="fetch")
        )


def delete_all_transactions(session: Session) -> int:
    """Remove every transaction and return how many rows were deleted.

    Irreversible; confirmation is the caller's responsibility.
    """

    result = session.execute(delete(TbTransaction))
    count = result.rowcount or 0
    logger.info("deleted %d transaction(s)", count)
    return count


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


def ingest_candidates(
    session: Session,
    candidates: Iterable[TransactionCandidate],
) -> IngestResult:
    """Persist candidates whose natural key is not stored yet.

    Idempotency rules:
    - Intra-batch duplicates are collapsed first (first occurrence wins).
    - Each remaining candidate is checked against the store and inserted only
      when absent, one at a time and in input order. Re-importing the same
      rows therefore inserts nothing.
    """

    materialized = list(candidates)
    unique = dedupe(materialized)

    inserted_ids: list[int] = []
    existing = 0
    for candidate in unique:
        if transaction_exists(session, candidate.natural_key):
            existing += 1
            continue
        inserted_ids.append(insert_transaction(session, candidate))

    result = IngestResult(
        candidates=len(materialized),
        unique=len(unique),
        inserted=len(inserted_ids),
        existing=existing,
        inserted_ids=tuple(inserted_ids),
    )
    logger.info(
        "ingested batch: %d candidate(s), %d unique, %d inserted, %d already stored",
        result.candidates,
        result.unique,
        result.inserted,
        result.existing,
    )
    return result


__all__ = [
    "delete_all_transactions",
    "get_transaction",
    "ingest_candidates",
    "insert_transaction",
    "list_transactions",
    "set_categories",
    "store_session",
    "transaction_exists",
    "update_category",
    "update_memo",
]
