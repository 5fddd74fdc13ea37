"""Tiny terminal UI helpers (prompt_toolkit-based).

Interactive prompts used by the CLI, kept apart from the store and rule logic
so they can be driven from a pipe in tests. Every helper accepts an optional
``session`` whose input/output are reused, and otherwise talks to the real
terminal.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .categories import normalize_name
from .categories import validate_name as _validate_name
from .models import RuleDraft


def _session_like(session: PromptSession | None, kb: KeyBindings) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _escape_cancels() -> KeyBindings:
    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result=None)

    return kb


# ----------------------------------------------------------------------------
# Category picker
# ----------------------------------------------------------------------------


def select_category(
    categories: Iterable[str],
    *,
    default: str = "",
    message: str = "Category (Tab to complete, Esc to cancel): ",
    session: PromptSession | None = None,
) -> str | None:
    """Prompt for a category, completing from ``categories``.

    Typing a label that matches an existing one ignoring case returns the
    existing spelling; any other valid name is returned normalized (a new
    category). Esc returns ``None``.
    """

    words = list(categories)
    canonical = {w.casefold(): w for w in reversed(words)}
    completer = WordCompleter(words, ignore_case=True, match_middle=True, sentence=True)

    class _NameValidator(Validator):
        def validate(self, document) -> None:
            v = _validate_name(document.text)
            if not v.ok:
                raise ValidationError(message=v.reason or "Invalid name")

    sess = _session_like(session, _escape_cancels())
    value = sess.prompt(
        message,
        default=default,
        completer=completer,
        validator=_NameValidator(),
        validate_while_typing=False,
    )
    if value is None:
        return None
    name = normalize_name(value)
    return canonical.get(name.casefold(), name)


# ----------------------------------------------------------------------------
# Yes/no style confirmations
# ----------------------------------------------------------------------------


class RuleChoice(enum.Enum):
    """Answer to "turn this reclassification into a rule?"."""

    SKIP = "skip"
    SAVE = "save"
    SAVE_AND_APPLY = "apply"


_RULE_ANSWERS = {
    "": RuleChoice.SKIP,
    "n": RuleChoice.SKIP,
    "no": RuleChoice.SKIP,
    "y": RuleChoice.SAVE,
    "yes": RuleChoice.SAVE,
    "a": RuleChoice.SAVE_AND_APPLY,
    "apply": RuleChoice.SAVE_AND_APPLY,
}


class _ChoiceValidator(Validator):
    def __init__(self, allowed: Iterable[str], hint: str) -> None:
        self._allowed = set(allowed)
        self._hint = hint

    def validate(self, document) -> None:
        if document.text.strip().lower() not in self._allowed:
            raise ValidationError(message=self._hint)


def confirm_rule_proposal(
    draft: RuleDraft,
    *,
    session: PromptSession | None = None,
) -> RuleChoice:
    """Ask whether to save ``draft`` as a rule, and whether to apply it now.

    Enter or Esc means "no".
    """

    message = (
        f"Create rule {draft.keyword!r} -> {draft.category!r}? "
        "[y]es / [a]pply to all now / [N]o: "
    )
    sess = _session_like(session, _escape_cancels())
    value = sess.prompt(
        message,
        validator=_ChoiceValidator(_RULE_ANSWERS, "Answer y, a or n."),
        validate_while_typing=False,
    )
    if value is None:
        return RuleChoice.SKIP
    return _RULE_ANSWERS[value.strip().lower()]


def confirm(message: str, *, session: PromptSession | None = None) -> bool:
    """Plain yes/no question defaulting to no."""

    answers = {"": False, "n": False, "no": False, "y": True, "yes": True}
    sess = _session_like(session, _escape_cancels())
    value = sess.prompt(
        f"{message} [y/N]: ",
        validator=_ChoiceValidator(answers, "Answer y or n."),
        validate_while_typing=False,
    )
    if value is None:
        return False
    return answers[value.strip().lower()]


__all__ = [
    "RuleChoice",
    "confirm",
    "confirm_rule_proposal",
    "select_category",
]
