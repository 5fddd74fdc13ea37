"""Key/value settings persisted in ``tb_settings``.

The store is an explicit collaborator: construct it around a session and pass
it to whatever needs it. Nothing here is module-level state.
"""

from __future__ import annotations

import json

from sqlalchemy.orm import Session
from tallybook_db.models.ledger import TbSetting

DISPLAY_NAME_KEY = "display_name"
GROUP_LABEL_KEY = "group_label"
CATEGORIES_KEY = "categories"


def default_group_label(display_name: str) -> str:
    """Group label suggested for a user who has not picked one."""

    return f"{display_name}'s Family Expenses"


class SettingsStore:
    """Opaque string key → string value persistence."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, key: str, default: str | None = None) -> str | None:
        row = self._session.get(TbSetting, key)
        return row.value if row is not None else default

    def set(self, key: str, value: str) -> None:
        row = self._session.get(TbSetting, key)
        if row is None:
            self._session.add(TbSetting(key=key, value=value))
        else:
            row.value = value
        self._session.flush()

    # ---- Typed helpers ------------------------------------------------------

    @property
    def display_name(self) -> str:
        return self.get(DISPLAY_NAME_KEY) or ""

    @display_name.setter
    def display_name(self, value: str) -> None:
        self.set(DISPLAY_NAME_KEY, value.strip())

    @property
    def group_label(self) -> str:
        """Explicit group label, else one derived from the display name."""

        explicit = self.get(GROUP_LABEL_KEY)
        if explicit:
            return explicit
        name = self.display_name
        return default_group_label(name) if name else ""

    @group_label.setter
    def group_label(self, value: str) -> None:
        self.set(GROUP_LABEL_KEY, value.strip())

    def cached_categories(self) -> list[str]:
        raw = self.get(CATEGORIES_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return []
        if not isinstance(data, list):
            return []
        return [c for c in data if isinstance(c, str) and c.strip()]

    def set_cached_categories(self, categories: list[str]) -> None:
        self.set(CATEGORIES_KEY, json.dumps(list(categories), ensure_ascii=False))


__all__ = [
    "CATEGORIES_KEY",
    "DISPLAY_NAME_KEY",
    "GROUP_LABEL_KEY",
    "SettingsStore",
    "default_group_label",
]
