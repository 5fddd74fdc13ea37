"""Public interface for the ``tallybook`` package.

This module exposes the orchestration functions, error types and public
models as the stable import surface. There is no runtime logic here, only
symbol re-exports.
"""

from .api import (
    ImportSummary,
    accept_rule_suggestion,
    import_csv,
    import_rows,
    load_transactions,
    reclassify_transaction,
)
from .errors import NotFoundError, ParseError, StoreError, TallybookError
from .models import (
    IngestResult,
    NaturalKey,
    RawRow,
    RuleDraft,
    RulePatch,
    StoredRule,
    StoredTransaction,
    TransactionCandidate,
)
from .sorting import SortState, sort_transactions

__all__ = [
    # API
    "accept_rule_suggestion",
    "import_csv",
    "import_rows",
    "load_transactions",
    "reclassify_transaction",
    "sort_transactions",
    "ImportSummary",
    "SortState",
    # Errors
    "TallybookError",
    "ParseError",
    "StoreError",
    "NotFoundError",
    # Models / types
    "RawRow",
    "NaturalKey",
    "TransactionCandidate",
    "StoredTransaction",
    "StoredRule",
    "RuleDraft",
    "RulePatch",
    "IngestResult",
]
