"""Category set helpers.

The category set is never stored as its own table. It is derived from the
categories on stored transactions, the categories referenced by rules, and the
labels a user added explicitly (cached through :class:`SettingsStore`).

Exports
-------
- ``CategorySet``: ordered label set, deduplicated case-insensitively on insert
  (the first spelling seen is kept).
- ``normalize_name(...)`` and ``validate_name(...)``: trimming and validation
  for user-entered labels.
- ``load_category_set(...)`` and ``add_category(...)``: session-backed
  operations.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from sqlalchemy import distinct, select
from sqlalchemy.orm import Session
from tallybook_db.models.ledger import TbRule, TbTransaction

from .settings import SettingsStore

# ---------------------------
# Name normalization/validation
# ---------------------------


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Does not change case.
    """

    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    return NameValidation(True, None)


# ---------------------------
# In-memory set
# ---------------------------


class CategorySet:
    """Insertion-ordered set of labels with case-insensitive membership."""

    def __init__(self, labels: Iterable[str] = ()) -> None:
        self._by_key: dict[str, str] = {}
        for label in labels:
            self.add(label)

    def add(self, label: str) -> bool:
        """Add ``label``; return ``False`` when blank or already present."""

        n = normalize_name(label or "")
        if not n:
            return False
        key = n.casefold()
        if key in self._by_key:
            return False
        self._by_key[key] = n
        return True

    def update(self, labels: Iterable[str]) -> None:
        for label in labels:
            self.add(label)

    def __contains__(self, label: object) -> bool:
        if not isinstance(label, str):
            return False
        return normalize_name(label).casefold() in self._by_key

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def as_list(self) -> list[str]:
        return list(self._by_key.values())


# ---------------------------
# Session-backed operations
# ---------------------------


def load_category_set(session: Session) -> CategorySet:
    """Union of transaction categories, rule categories, and explicit labels."""

    cats = CategorySet()
    tx_cats = session.execute(
        select(distinct(TbTransaction.category)).order_by(TbTransaction.category)
    ).scalars()
    cats.update(c for c in tx_cats if c)
    rule_cats = session.execute(select(TbRule.category).order_by(TbRule.id)).scalars()
    cats.update(rule_cats)
    cats.update(SettingsStore(session).cached_categories())
    return cats


def add_category(session: Session, label: str) -> bool:
    """Remember an explicitly added label.

    Returns ``False`` when an equal label (ignoring case) already exists in the
    derived set. Raises ``ValueError`` for invalid names.
    """

    v = validate_name(label)
    if not v.ok:
        raise ValueError(f"Invalid category name: {v.reason}")
    name = normalize_name(label)
    if name in load_category_set(session):
        return False
    settings = SettingsStore(session)
    cached = CategorySet(settings.cached_categories())
    cached.add(name)
    settings.set_cached_categories(cached.as_list())
    return True


__all__ = [
    "CategorySet",
    "NameValidation",
    "add_category",
    "load_category_set",
    "normalize_name",
    "validate_name",
]
