# ruff: noqa: I001
"""CLI for the ``tallybook`` package.

A Typer console interface over :mod:`tallybook.api` and the store/rule
modules. Environment variables (notably ``DATABASE_URL`` and
``TALLYBOOK_LOG_LEVEL``) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs. Errors are printed to stderr and
turn into exit code 1.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from dotenv import load_dotenv
from sqlalchemy.orm import Session
from typer.models import OptionInfo

from tallybook_db.client import init_schema

from . import api
from .categories import add_category, load_category_set
from .errors import TallybookError
from .logging_setup import configure_logging
from .models import StoredTransaction
from .persistence import delete_all_transactions, get_transaction, store_session, update_memo
from .rules import (
    add_rule,
    apply_all_rules,
    apply_rule_by_id,
    delete_all_rules,
    delete_rule,
    list_rules,
    update_rule,
)
from .settings import SettingsStore
from .sorting import SORTABLE_COLUMNS, SortState
from .term_ui import RuleChoice, confirm, confirm_rule_proposal, select_category

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///tallybook.db"


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_database_url(override: str | None) -> str:
    return override or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    raise typer.Exit(1)


@contextmanager
def _store(database_url: str | None) -> Iterator[Session]:
    """Open a store session on the resolved URL, creating tables if needed."""

    url = _resolve_database_url(database_url)
    try:
        with store_session(database_url=url) as session:
            init_schema(database_url=url)
            yield session
    except (TallybookError, ValueError) as e:
        _fail(str(e))


def _confirm_or_abort(yes: bool, message: str) -> None:
    if yes:
        return
    if not confirm(message):
        typer.echo("Aborted.")
        raise typer.Exit(1)


def _format_row(tx: StoredTransaction) -> str:
    desc = tx.description if len(tx.description) <= 40 else tx.description[:39] + "…"
    return (
        f"{tx.id:>5}  {tx.transaction_date:<10}  {desc:<40}  "
        f"{(tx.category or '-'):<24}  {tx.amount:>12}"
    )


# ---- Typer application ------------------------------------------------------

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank CSV exports into a local ledger and categorize them with "
        "keyword rules. Loads DATABASE_URL from a local .env before running."
    ),
)
rules_app = typer.Typer(no_args_is_help=True, help="Manage keyword → category rules.")
categories_app = typer.Typer(no_args_is_help=True, help="List or add categories.")
profile_app = typer.Typer(no_args_is_help=True, help="Display name and group label.")
app.add_typer(rules_app, name="rules")
app.add_typer(categories_app, name="categories")
app.add_typer(profile_app, name="profile")

DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url",
    help="Override DATABASE_URL (falls back to env var, then ./tallybook.db).",
)
YES_OPTION: OptionInfo = typer.Option("--yes", "-y", help="Skip the confirmation prompt.")


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, typer.Argument(help="Path to a CSV export with a header row.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Import a CSV file; rows already stored are skipped."""

    url = _resolve_database_url(database_url)
    try:
        summary = api.import_csv(csv_path, database_url=url)
    except FileNotFoundError:
        _fail(f"File not found: {csv_path}")
    except PermissionError:
        _fail(f"Permission denied: {csv_path}")
    except UnicodeDecodeError as e:
        _fail(f"Failed to read CSV as UTF-8: {e}")
    except TallybookError as e:
        _fail(f"import failed: {e}")

    typer.echo(
        f"Read {summary.rows} row(s): {summary.inserted} inserted, "
        f"{summary.already_stored} already stored, "
        f"{summary.duplicates_in_batch} duplicate(s) in file, "
        f"{summary.dropped} dropped."
    )


@app.command("list")
def list_cmd(
    sort: Annotated[
        str,
        typer.Option("--sort", "-s", help=f"Column to sort by: {', '.join(SORTABLE_COLUMNS)}."),
    ] = "transaction_date",
    reverse: Annotated[
        bool, typer.Option("--reverse", "-r", help="Flip the default direction.")
    ] = False,
    apply_rules: Annotated[
        bool,
        typer.Option("--apply-rules/--no-apply-rules", help="Apply all rules before listing."),
    ] = True,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Show stored transactions (applies every rule first, like startup)."""

    if sort not in SORTABLE_COLUMNS:
        _fail(f"unknown sort column {sort!r}; choose from {', '.join(SORTABLE_COLUMNS)}")
    state = SortState()
    if sort != state.column:
        state = state.select(sort)
    if reverse:
        state = state.select(state.column)

    url = _resolve_database_url(database_url)
    try:
        txs = api.load_transactions(
            database_url=url,
            column=state.column,
            descending=state.descending,
            apply_rules=apply_rules,
        )
    except TallybookError as e:
        _fail(str(e))

    if not txs:
        typer.echo("No transactions.")
        return
    for tx in txs:
        typer.echo(_format_row(tx))


@app.command("categorize")
def categorize_cmd(
    tx_id: Annotated[int, typer.Argument(help="Transaction id (see `list`).")],
    category: Annotated[
        str | None, typer.Argument(help="New category; prompts when omitted.")
    ] = None,
    rule: Annotated[
        bool | None,
        typer.Option(
            "--rule/--no-rule",
            help="Save a rule from this change (asks interactively when omitted).",
        ),
    ] = None,
    apply: Annotated[
        bool, typer.Option("--apply", help="Apply the new rule to all transactions.")
    ] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Reclassify one transaction and optionally turn it into a rule."""

    url = _resolve_database_url(database_url)

    if category is None:
        with _store(url) as session:
            current = get_transaction(session, tx_id)
            known = load_category_set(session).as_list()
        category = select_category(known, default=current.category)
        if category is None:
            typer.echo("Canceled.")
            return

    try:
        draft = api.reclassify_transaction(tx_id, category, database_url=url)
    except (TallybookError, ValueError) as e:
        _fail(str(e))
    typer.echo(f"Transaction {tx_id} -> {draft.category}")

    if rule is None:
        choice = confirm_rule_proposal(draft) if sys.stdin.isatty() else RuleChoice.SKIP
    elif rule:
        choice = RuleChoice.SAVE_AND_APPLY if apply else RuleChoice.SAVE
    else:
        choice = RuleChoice.SKIP
    if choice is RuleChoice.SKIP:
        return

    try:
        rule_id, matched = api.accept_rule_suggestion(
            draft,
            apply=choice is RuleChoice.SAVE_AND_APPLY,
            database_url=url,
        )
    except (TallybookError, ValueError) as e:
        _fail(str(e))
    typer.echo(f"Saved rule {rule_id}: {draft.keyword!r} -> {draft.category!r}")
    if choice is RuleChoice.SAVE_AND_APPLY:
        typer.echo(f"Rule matched {matched} transaction(s).")


@app.command("memo")
def memo_cmd(
    tx_id: Annotated[int, typer.Argument(help="Transaction id.")],
    text: Annotated[str, typer.Argument(help="Memo text (use '' to clear).")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Set the memo of one transaction."""

    with _store(database_url) as session:
        update_memo(session, tx_id, text)
    typer.echo(f"Memo updated for transaction {tx_id}.")


@app.command("clear")
def clear_cmd(
    yes: Annotated[bool, YES_OPTION] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete every stored transaction (rules are kept)."""

    _confirm_or_abort(yes, "Delete ALL transactions? This cannot be undone.")
    with _store(database_url) as session:
        count = delete_all_transactions(session)
    typer.echo(f"Deleted {count} transaction(s).")


# ---- rules ------------------------------------------------------------------


@rules_app.command("list")
def rules_list_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Show rules in application order (later rules win)."""

    with _store(database_url) as session:
        rules = list_rules(session)
    if not rules:
        typer.echo("No rules.")
        return
    for r in rules:
        typer.echo(f"{r.id:>5}  {r.keyword!r} -> {r.category}")


@rules_app.command("add")
def rules_add_cmd(
    keyword: Annotated[str, typer.Argument(help="Substring to look for in descriptions.")],
    category: Annotated[str, typer.Argument(help="Category to assign.")],
    apply: Annotated[bool, typer.Option("--apply", help="Apply the rule right away.")] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Append a rule to the end of the rule list."""

    with _store(database_url) as session:
        rule_id = add_rule(session, keyword, category)
        matched = apply_rule_by_id(session, rule_id) if apply else None
    typer.echo(f"Added rule {rule_id}.")
    if matched is not None:
        typer.echo(f"Rule matched {matched} transaction(s).")


@rules_app.command("update")
def rules_update_cmd(
    rule_id: Annotated[int, typer.Argument(help="Rule id.")],
    keyword: Annotated[str | None, typer.Option("--keyword", help="New keyword.")] = None,
    category: Annotated[str | None, typer.Option("--category", help="New category.")] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Edit a rule in place; it keeps its position."""

    patch = {k: v for k, v in (("keyword", keyword), ("category", category)) if v is not None}
    if not patch:
        _fail("nothing to update; pass --keyword and/or --category")
    with _store(database_url) as session:
        updated = update_rule(session, rule_id, patch)
    typer.echo(f"Rule {updated.id}: {updated.keyword!r} -> {updated.category}")


@rules_app.command("delete")
def rules_delete_cmd(
    rule_id: Annotated[int, typer.Argument(help="Rule id.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Remove one rule. Already categorized transactions are left as they are."""

    with _store(database_url) as session:
        delete_rule(session, rule_id)
    typer.echo(f"Deleted rule {rule_id}.")


@rules_app.command("apply")
def rules_apply_cmd(
    rule_id: Annotated[int, typer.Argument(help="Rule id.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Apply one rule to every stored transaction."""

    with _store(database_url) as session:
        matched = apply_rule_by_id(session, rule_id)
    typer.echo(f"Rule {rule_id} matched {matched} transaction(s).")


@rules_app.command("apply-all")
def rules_apply_all_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Apply every rule in order (later rules win)."""

    with _store(database_url) as session:
        matched = apply_all_rules(session)
    typer.echo(f"Rules matched {matched} transaction(s).")


@rules_app.command("clear")
def rules_clear_cmd(
    yes: Annotated[bool, YES_OPTION] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete every rule (transaction categories are kept)."""

    _confirm_or_abort(yes, "Delete ALL rules? This cannot be undone.")
    with _store(database_url) as session:
        count = delete_all_rules(session)
    typer.echo(f"Deleted {count} rule(s).")


# ---- categories -------------------------------------------------------------


@categories_app.command("list")
def categories_list_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Show every known category."""

    with _store(database_url) as session:
        cats = load_category_set(session).as_list()
    for c in cats:
        typer.echo(c)


@categories_app.command("add")
def categories_add_cmd(
    label: Annotated[str, typer.Argument(help="Category name.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Add a category so it is offered before any transaction uses it."""

    with _store(database_url) as session:
        added = add_category(session, label)
    typer.echo("Added." if added else "Already present.")


# ---- profile ----------------------------------------------------------------


@profile_app.command("show")
def profile_show_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    with _store(database_url) as session:
        settings = SettingsStore(session)
        name, group = settings.display_name, settings.group_label
    typer.echo(f"Name:  {name or '(not set)'}")
    typer.echo(f"Group: {group or '(not set)'}")


@profile_app.command("set-name")
def profile_set_name_cmd(
    name: Annotated[str, typer.Argument(help="Display name.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    with _store(database_url) as session:
        SettingsStore(session).display_name = name
    typer.echo("Saved.")


@profile_app.command("set-group")
def profile_set_group_cmd(
    label: Annotated[str, typer.Argument(help="Group label.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    with _store(database_url) as session:
        SettingsStore(session).group_label = label
    typer.echo("Saved.")


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    # Running as a module: `python -m tallybook.cli`
    app()
