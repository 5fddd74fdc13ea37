from decimal import Decimal

import pytest

from tallybook.api import (
    accept_rule_suggestion,
    import_csv,
    import_rows,
    load_transactions,
    reclassify_transaction,
)
from tallybook.errors import NotFoundError, StoreError
from tallybook.models import RuleDraft
from tallybook.persistence import store_session
from tallybook.rules import add_rule, list_rules

from tests.helpers.db import categories_by_description, count_transactions


def _row(date: str, desc: str, amount: str, category: str = "") -> dict[str, str]:
    return {"Transaction Date": date, "Description": desc, "Amount": amount, "Category": category}


def test_import_rows_reports_every_outcome(db_url):
    rows = [
        _row("01/01/2025", "COFFEE", "10.00"),
        _row("01/01/2025", "COFFEE", "10.00"),
        _row("01/02/2025", "TEA", ""),
        _row("01/03/2025", "LUNCH", "12.00"),
    ]
    first = import_rows(rows, database_url=db_url)
    assert (first.rows, first.dropped, first.duplicates_in_batch, first.inserted) == (4, 1, 1, 2)
    assert first.already_stored == 0

    second = import_rows(rows, database_url=db_url)
    assert second.inserted == 0
    assert second.already_stored == 2
    assert count_transactions(db_url) == 2


def test_import_csv_creates_schema_on_first_use(tmp_path, data_dir):
    url = f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}"
    summary = import_csv(data_dir / "mixed_sample.csv", database_url=url)
    assert summary.inserted == 4
    assert summary.dropped == 2


def test_import_csv_missing_file_raises(db_url, tmp_path):
    with pytest.raises(FileNotFoundError):
        import_csv(tmp_path / "nope.csv", database_url=db_url)


def test_load_transactions_applies_rules_then_sorts(db_url, data_dir):
    import_csv(data_dir / "mixed_sample.csv", database_url=db_url)
    with store_session(database_url=db_url) as s:
        add_rule(s, "uber", "Rides")
        add_rule(s, "eats", "Dining")

    txs = load_transactions(database_url=db_url)
    assert [t.transaction_date for t in txs] == ["01/10/2025", "01/02/2025", "01/02/2025", "12/28/2024"]
    cats = {t.description: t.category for t in txs}
    assert cats["UBER EATS"] == "Dining"
    assert cats["UBER TRIP HELP.UBER.COM"] == "Rides"

    by_amount = load_transactions(database_url=db_url, column="amount", descending=False, apply_rules=False)
    assert [t.amount for t in by_amount] == [
        Decimal("-1234.56"),
        Decimal("-31.05"),
        Decimal("-18.20"),
        Decimal("2500.00"),
    ]


def test_load_transactions_without_rules_leaves_categories(db_url, data_dir):
    import_csv(data_dir / "mixed_sample.csv", database_url=db_url)
    with store_session(database_url=db_url) as s:
        add_rule(s, "amazon", "Gifts")
    load_transactions(database_url=db_url, apply_rules=False)
    assert categories_by_description(db_url)["AMAZON MKTPLACE PMTS"] == "Shopping"


def test_reclassify_then_accept_suggestion_applies_to_similar_rows(db_url):
    import_rows(
        [
            _row("01/01/2025", "NETFLIX.COM", "15.49"),
            _row("02/01/2025", "NETFLIX.COM", "15.49"),
            _row("02/02/2025", "HULU", "7.99"),
        ],
        database_url=db_url,
    )
    first_id = next(t.id for t in load_transactions(database_url=db_url) if t.transaction_date == "01/01/2025")

    draft = reclassify_transaction(first_id, "Streaming", database_url=db_url)
    assert draft == RuleDraft(keyword="NETFLIX.COM", category="Streaming")
    cats = [t.category for t in load_transactions(database_url=db_url) if t.description == "NETFLIX.COM"]
    assert sorted(cats) == ["", "Streaming"]

    rule_id, matched = accept_rule_suggestion(draft, apply=True, database_url=db_url)
    assert matched == 2
    with store_session(database_url=db_url) as s:
        assert [r.id for r in list_rules(s)] == [rule_id]
    assert categories_by_description(db_url)["HULU"] == ""


def test_accept_without_apply_only_stores_the_rule(db_url):
    import_rows([_row("01/01/2025", "GYM", "40.00")], database_url=db_url)
    rule_id, matched = accept_rule_suggestion(RuleDraft("GYM", "Fitness"), database_url=db_url)
    assert matched == 0
    assert categories_by_description(db_url) == {"GYM": ""}
    with store_session(database_url=db_url) as s:
        assert list_rules(s)[0].id == rule_id


def test_reclassify_missing_transaction_raises(db_url):
    with pytest.raises(NotFoundError):
        reclassify_transaction(404, "X", database_url=db_url)


def test_import_rows_drops_sub_cent_amounts(db_url):
    summary = import_rows(
        [_row("01/01/2025", "COFFEE", "1.00"), _row("01/01/2025", "COFFEE", "1.004")],
        database_url=db_url,
    )
    assert (summary.dropped, summary.inserted) == (1, 1)
    assert count_transactions(db_url) == 1


def test_reclassify_rejects_blank_and_normalizes_category(db_url):
    import_rows([_row("01/01/2025", "CAFE", "4.50")], database_url=db_url)
    (tx,) = load_transactions(database_url=db_url)

    with pytest.raises(ValueError):
        reclassify_transaction(tx.id, "   ", database_url=db_url)
    assert categories_by_description(db_url) == {"CAFE": ""}

    draft = reclassify_transaction(tx.id, "  Coffee   Shops ", database_url=db_url)
    assert draft.category == "Coffee Shops"
    assert categories_by_description(db_url) == {"CAFE": "Coffee Shops"}


def test_missing_database_url_surfaces_store_error():
    with pytest.raises(StoreError, match="DATABASE_URL"):
        load_transactions()
    with pytest.raises(StoreError):
        import_rows([_row("01/01/2025", "COFFEE", "1.00")])
