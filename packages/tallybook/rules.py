"""Keyword rules: CRUD plus bulk reclassification of stored transactions.

A rule maps a ``keyword`` to a ``category``. A transaction matches when its
description contains the keyword, compared case-insensitively.

Conflict policy
---------------
Rules are applied in storage order (ascending id). Applying them is a left
fold over that sequence, so when several rules match one transaction the last
matching rule wins. :func:`resolve_category` is the fold; both
:func:`apply_rule` and :func:`apply_all_rules` are built on it. Reordering rules
changes results.

Rule suggestions
----------------
After a manual reclassification the caller may offer to turn the change into a
rule. That is a two-step protocol: :func:`suggest_rule` builds an unsaved
:class:`~tallybook.models.RuleDraft`; :func:`propose_rule` persists it and
returns the new id, which can then be passed to :func:`apply_rule_by_id`.
Nothing is stored until ``propose_rule`` is called.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session
from tallybook_db.models.ledger import TbRule, TbTransaction

from .errors import NotFoundError
from .logging_setup import get_logger
from .models import RuleDraft, RulePatch, StoredRule, StoredTransaction
from .persistence import set_categories

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Matching (pure)
# ---------------------------------------------------------------------------


def rule_matches(keyword: str, description: str | None) -> bool:
    """Case-insensitive substring test. An empty keyword matches nothing."""

    if not keyword or not description:
        return False
    return keyword.casefold() in description.casefold()


def resolve_category(
    description: str | None,
    rules: Iterable[StoredRule | RuleDraft],
    current: str,
) -> str:
    """Fold ``rules`` in order over one description; the last match wins."""

    category = current
    for rule in rules:
        if rule_matches(rule.keyword, description):
            category = rule.category
    return category


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def _to_stored(row: TbRule) -> StoredRule:
    return StoredRule(id=row.id, keyword=row.keyword, category=row.category)


def _get_row(session: Session, rule_id: int) -> TbRule:
    row = session.get(TbRule, rule_id)
    if row is None:
        raise NotFoundError("rule", rule_id)
    return row


def _require_text(value: str, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"Rule {field} must be non-empty")
    return cleaned


def add_rule(session: Session, keyword: str, category: str) -> int:
    """Persist a new rule at the end of the storage order; return its id."""

    row = TbRule(
        keyword=_require_text(keyword, "keyword"),
        category=_require_text(category, "category"),
    )
    session.add(row)
    session.flush()
    logger.info("added rule %d: %r -> %r", row.id, row.keyword, row.category)
    return row.id


def get_rule(session: Session, rule_id: int) -> StoredRule:
    return _to_stored(_get_row(session, rule_id))


def list_rules(session: Session) -> list[StoredRule]:
    """Return all rules in storage (application) order."""

    rows = session.execute(select(TbRule).order_by(TbRule.id)).scalars().all()
    return [_to_stored(r) for r in rows]


def update_rule(
    session: Session,
    rule_id: int,
    patch: RulePatch | Mapping[str, Any],
) -> StoredRule:
    """Apply a partial update. The rule keeps its position in storage order.

    ``patch`` may be a :class:`RulePatch` or a plain mapping with ``keyword``
    and/or ``category``; empty values raise ``ValueError``.
    """

    if not isinstance(patch, RulePatch):
        patch = RulePatch.model_validate(dict(patch))
    row = _get_row(session, rule_id)
    for field, value in patch.changes().items():
        setattr(row, field, value)
    session.flush()
    return _to_stored(row)


def delete_rule(session: Session, rule_id: int) -> None:
    session.delete(_get_row(session, rule_id))
    session.flush()


def delete_all_rules(session: Session) -> int:
    result = session.execute(delete(TbRule))
    count = result.rowcount or 0
    logger.info("deleted %d rule(s)", count)
    return count


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def _scan_transactions(session: Session) -> list[tuple[int, str, str]]:
    stmt = select(TbTransaction.id, TbTransaction.description, TbTransaction.category)
    return [(r[0], r[1], r[2] or "") for r in session.execute(stmt).all()]


def apply_rule(session: Session, rule: StoredRule | RuleDraft) -> int:
    """Set ``rule.category`` on every transaction whose description matches.

    Full-table scan; returns the number of matching transactions. Only the
    ``category`` column is touched.
    """

    changes: dict[int, str] = {}
    matched = 0
    for tx_id, description, current in _scan_transactions(session):
        if not rule_matches(rule.keyword, description):
            continue
        matched += 1
        if current != rule.category:
            changes[tx_id] = rule.category
    set_categories(session, changes)
    logger.info("rule %r matched %d transaction(s)", rule.keyword, matched)
    return matched


def apply_rule_by_id(session: Session, rule_id: int) -> int:
    return apply_rule(session, get_rule(session, rule_id))


def apply_all_rules(
    session: Session,
    rules: Sequence[StoredRule | RuleDraft] | None = None,
) -> int:
    """Apply ``rules`` (default: every persisted rule) in order.

    Equivalent to calling :func:`apply_rule` once per rule in sequence: when a
    transaction matches several rules, the last one in storage order wins.
    Returns the number of transactions matched by at least one rule.
    """

    ordered = list_rules(session) if rules is None else list(rules)
    if not ordered:
        return 0

    changes: dict[int, str] = {}
    matched = 0
    for tx_id, description, current in _scan_transactions(session):
        final = resolve_category(description, ordered, current)
        if any(rule_matches(r.keyword, description) for r in ordered):
            matched += 1
        if final != current:
            changes[tx_id] = final
    set_categories(session, changes)
    logger.info(
        "applied %d rule(s): %d transaction(s) matched, %d recategorized",
        len(ordered),
        matched,
        len(changes),
    )
    return matched


# ---------------------------------------------------------------------------
# Suggestions after manual reclassification
# ---------------------------------------------------------------------------


def suggest_rule(transaction: StoredTransaction, new_category: str) -> RuleDraft:
    """Build (but do not store) a rule that would reproduce a manual change."""

    return RuleDraft(keyword=transaction.description, category=new_category)


def propose_rule(session: Session, draft: RuleDraft) -> int:
    """Persist an accepted suggestion and return the new rule id."""

    return add_rule(session, draft.keyword, draft.category)


__all__ = [
    "add_rule",
    "apply_all_rules",
    "apply_rule",
    "apply_rule_by_id",
    "delete_all_rules",
    "delete_rule",
    "get_rule",
    "list_rules",
    "propose_rule",
    "resolve_category",
    "rule_matches",
    "suggest_rule",
    "update_rule",
]
