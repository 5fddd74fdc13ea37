"""tallybook_db: shared database library (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- ORM models in ``tallybook_db.models.ledger`` (re-exported for convenience)
- Engine/session helpers live in ``tallybook_db.client``
"""

from __future__ import annotations

from .models.ledger import Base, TbRule, TbSetting, TbTransaction

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "TbRule",
    "TbSetting",
    "TbTransaction",
]
