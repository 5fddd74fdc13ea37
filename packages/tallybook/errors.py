"""Exception types raised by ``tallybook``.

- ``ParseError``: a raw row cannot be normalized. The normalizer recovers
  locally (the row is skipped); callers normally never see it.
- ``StoreError``: the persistent store failed (I/O, constraint). Raised at the
  session boundary with the underlying SQLAlchemy error chained; never retried.
- ``NotFoundError``: a point mutation targets an id that does not exist.
"""

from __future__ import annotations


class TallybookError(Exception):
    """Base class for all package errors."""


class ParseError(TallybookError, ValueError):
    """A raw input row could not be turned into a canonical record."""


class StoreError(TallybookError):
    """The persistent store rejected or failed an operation."""


class NotFoundError(TallybookError, LookupError):
    """A record addressed by id does not exist."""

    def __init__(self, entity: str, ident: int) -> None:
        super().__init__(f"{entity} not found: id={ident}")
        self.entity = entity
        self.ident = ident


__all__ = [
    "NotFoundError",
    "ParseError",
    "StoreError",
    "TallybookError",
]
