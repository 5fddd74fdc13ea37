"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``tallybook``.
"""

from .ledger import Base, TbRule, TbSetting, TbTransaction

__all__ = [
    "Base",
    "TbRule",
    "TbSetting",
    "TbTransaction",
]
