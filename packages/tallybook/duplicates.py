"""Natural-key helpers shared by ingestion and the store.

Public surface:
- ``natural_key``: the ``(transaction_date, description, amount)`` identity of
  a record, independent of any store-assigned id.
- ``dedupe``: collapse intra-batch duplicates (e.g., a file exported twice into
  one upload) before any store interaction. First occurrence wins and input
  order is preserved.

Matching is exact: dates and descriptions compare as strings, amounts compare
numerically. There is no fuzzy matching.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from .models import NaturalKey, TransactionCandidate


class _HasNaturalKeyFields(Protocol):
    transaction_date: str
    description: str
    amount: object


def natural_key(tx: _HasNaturalKeyFields) -> NaturalKey:
    """Return the natural key for any record exposing the three key fields."""

    return NaturalKey(tx.transaction_date, tx.description, tx.amount)  # type: ignore[arg-type]


def dedupe(candidates: Iterable[TransactionCandidate]) -> list[TransactionCandidate]:
    """Keep the first candidate for each natural key, in input order."""

    seen: set[NaturalKey] = set()
    unique: list[TransactionCandidate] = []
    for candidate in candidates:
        key = natural_key(candidate)
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


__all__ = ["dedupe", "natural_key"]
