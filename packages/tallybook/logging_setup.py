"""Logging setup for ``tallybook``.

All modules log through children of the ``"tallybook"`` logger obtained with
:func:`get_logger`. Only entrypoints call :func:`configure_logging`, which
installs one stream handler on that logger; library code never adds handlers.

Level resolution: explicit argument, then ``TALLYBOOK_LOG_LEVEL``, then INFO.
What gets logged:

- INFO: batch ingestion counts, rule application counts, bulk deletes.
- DEBUG: rows dropped by the normalizer.
- ERROR: storage failures at the session boundary.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "tallybook"
LEVEL_ENV_VAR = "TALLYBOOK_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or the env var when ``None``) into a logging level.

    Unknown names fall back to INFO rather than raising.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelNamesMapping().get(name)
    return value if value is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> None:
    """Attach a single ``StreamHandler`` to the package logger.

    Subsequent calls are no-ops unless ``force`` is set, in which case the
    previous handler is replaced. ``stream`` defaults to ``sys.stderr`` at call
    time.
    """

    global _handler
    pkg = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        if not force:
            return
        pkg.removeHandler(_handler)
        _handler = None

    for h in list(pkg.handlers):
        if isinstance(h, logging.NullHandler):
            pkg.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(resolved)
    # Records stop here; the root logger never sees them twice.
    pkg.propagate = False
    _handler = handler


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``; silence the package until configured."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["DEFAULT_FORMAT", "LEVEL_ENV_VAR", "configure_logging", "get_logger", "resolve_level"]
