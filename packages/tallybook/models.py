"""Data models and type aliases for ``tallybook``.

Records flowing through ingestion are plain frozen dataclasses; the ORM rows in
``tallybook_db.models.ledger`` never leave a session. Partial rule updates are
validated with Pydantic.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------

type RawRow = Mapping[str, str]
"""A single CSV row keyed by header name, values as read from the file."""


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class NaturalKey(NamedTuple):
    """Identity of a transaction independent of any store-assigned id.

    Dates and descriptions compare as exact strings; the amount compares
    numerically (``Decimal("10.0") == Decimal("10.00")``).
    """

    transaction_date: str
    description: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class TransactionCandidate:
    """A canonical record produced by the normalizer, not yet persisted."""

    transaction_date: str
    description: str
    amount: Decimal
    post_date: str = ""
    category: str = ""
    type: str = ""
    memo: str = ""

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey(self.transaction_date, self.description, self.amount)


@dataclass(frozen=True, slots=True)
class StoredTransaction:
    """A persisted transaction as returned by the store (detached snapshot)."""

    id: int
    transaction_date: str
    post_date: str
    description: str
    category: str
    type: str
    amount: Decimal
    memo: str

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey(self.transaction_date, self.description, self.amount)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StoredRule:
    id: int
    keyword: str
    category: str


@dataclass(frozen=True, slots=True)
class RuleDraft:
    """An unsaved rule suggested after a manual reclassification.

    Nothing is persisted until the draft is passed to
    :func:`tallybook.rules.propose_rule`.
    """

    keyword: str
    category: str


class RulePatch(BaseModel):
    """Partial update for a rule; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    keyword: str | None = None
    category: str | None = None

    @field_validator("keyword", "category")
    @classmethod
    def _non_empty(cls, v: str | None) -> str | None:
        if v is not None and not v:
            raise ValueError("must be non-empty")
        return v

    def changes(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Ingestion results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IngestResult:
    """Outcome of persisting one batch of candidates.

    ``candidates`` counts normalized rows; ``unique`` counts rows left after
    intra-batch deduplication; ``inserted`` counts new rows written;
    ``existing`` counts rows skipped because their natural key was already
    stored.
    """

    candidates: int
    unique: int
    inserted: int
    existing: int
    inserted_ids: tuple[int, ...] = ()


__all__ = [
    "IngestResult",
    "NaturalKey",
    "RawRow",
    "RuleDraft",
    "RulePatch",
    "StoredRule",
    "StoredTransaction",
    "TransactionCandidate",
]
