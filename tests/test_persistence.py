from decimal import Decimal

import pytest
from tallybook_db.client import session_scope

from tallybook.errors import NotFoundError, StoreError
from tallybook.models import NaturalKey, TransactionCandidate
from tallybook.persistence import (
    delete_all_transactions,
    get_transaction,
    ingest_candidates,
    insert_transaction,
    list_transactions,
    store_session,
    transaction_exists,
    update_category,
    update_memo,
)

from tests.helpers.db import count_transactions


def _c(date: str, desc: str, amount: str, **extra) -> TransactionCandidate:
    return TransactionCandidate(transaction_date=date, description=desc, amount=Decimal(amount), **extra)


BATCH = [
    _c("01/01/2025", "COFFEE", "10.00", category="Food"),
    _c("01/01/2025", "COFFEE", "10.00"),
    _c("01/02/2025", "COFFEE", "10.00"),
]


def test_ingest_dedupes_and_inserts_unique_rows(db_url):
    with store_session(database_url=db_url) as s:
        result = ingest_candidates(s, BATCH)

    assert (result.candidates, result.unique, result.inserted, result.existing) == (3, 2, 2, 0)
    assert len(result.inserted_ids) == 2
    assert count_transactions(db_url) == 2


def test_ingest_is_idempotent(db_url):
    with store_session(database_url=db_url) as s:
        ingest_candidates(s, BATCH)
    with store_session(database_url=db_url) as s:
        again = ingest_candidates(s, BATCH)

    assert again.inserted == 0
    assert again.existing == 2
    assert count_transactions(db_url) == 2


def test_ingest_does_not_touch_existing_rows(db_url):
    with store_session(database_url=db_url) as s:
        (tx_id,) = ingest_candidates(s, [_c("01/01/2025", "COFFEE", "10.00")]).inserted_ids
        update_category(s, tx_id, "Manual")
    with store_session(database_url=db_url) as s:
        ingest_candidates(s, [_c("01/01/2025", "COFFEE", "10.00", category="Food", memo="m")])
        tx = get_transaction(s, tx_id)
    assert tx.category == "Manual"
    assert tx.memo == ""


def test_transaction_exists_compares_amount_numerically(db_url):
    with store_session(database_url=db_url) as s:
        insert_transaction(s, _c("01/01/2025", "COFFEE", "10.00"))
    with store_session(database_url=db_url) as s:
        assert transaction_exists(s, NaturalKey("01/01/2025", "COFFEE", Decimal("10.0")))
        assert not transaction_exists(s, NaturalKey("01/01/2025", "COFFEE", Decimal("10.01")))
        assert not transaction_exists(s, NaturalKey("01/01/2025", "Coffee", Decimal("10.00")))


def test_stored_fields_round_trip(db_url):
    cand = _c(
        "12/28/2024",
        "AMAZON MKTPLACE",
        "-1234.56",
        post_date="12/29/2024",
        category="Shopping",
        type="Sale",
        memo="gift",
    )
    with store_session(database_url=db_url) as s:
        tx_id = insert_transaction(s, cand)
    with store_session(database_url=db_url) as s:
        tx = get_transaction(s, tx_id)
    assert tx.id == tx_id
    assert tx.natural_key == cand.natural_key
    assert (tx.post_date, tx.category, tx.type, tx.memo) == ("12/29/2024", "Shopping", "Sale", "gift")
    assert tx.amount == Decimal("-1234.56")


def test_update_category_and_memo_touch_only_their_field(db_url):
    with store_session(database_url=db_url) as s:
        tx_id = insert_transaction(s, _c("01/01/2025", "COFFEE", "3.00", category="Food"))
    with store_session(database_url=db_url) as s:
        update_memo(s, tx_id, "with Sam")
    with store_session(database_url=db_url) as s:
        update_category(s, tx_id, "Coffee")
    with store_session(database_url=db_url) as s:
        tx = get_transaction(s, tx_id)
    assert (tx.category, tx.memo) == ("Coffee", "with Sam")


def test_point_updates_on_missing_id_raise_not_found(db_url):
    with pytest.raises(NotFoundError) as exc:
        with store_session(database_url=db_url) as s:
            update_category(s, 999, "X")
    assert exc.value.ident == 999
    with pytest.raises(NotFoundError):
        with store_session(database_url=db_url) as s:
            update_memo(s, 999, "X")


def test_duplicate_insert_surfaces_store_error_and_rolls_back(db_url):
    with pytest.raises(StoreError):
        with store_session(database_url=db_url) as s:
            insert_transaction(s, _c("01/01/2025", "A", "1.00"))
            insert_transaction(s, _c("01/01/2025", "A", "1.00"))
    assert count_transactions(db_url) == 0


def test_delete_all_transactions_reports_count(db_url):
    with store_session(database_url=db_url) as s:
        ingest_candidates(s, BATCH)
    with store_session(database_url=db_url) as s:
        assert delete_all_transactions(s) == 2
    with session_scope(database_url=db_url) as s:
        assert list_transactions(s) == []


def test_sub_cent_amount_is_rejected_not_rounded(db_url):
    with store_session(database_url=db_url) as s:
        insert_transaction(s, _c("01/01/2025", "COFFEE", "1.00"))
    with pytest.raises(StoreError):
        with store_session(database_url=db_url) as s:
            insert_transaction(s, _c("01/01/2025", "COFFEE", "1.004"))
    assert count_transactions(db_url) == 1


def test_large_amounts_keep_every_digit(db_url):
    big = "1234567890123456.78"
    with store_session(database_url=db_url) as s:
        tx_id = insert_transaction(s, _c("01/01/2025", "WIRE", big))
    with store_session(database_url=db_url) as s:
        assert get_transaction(s, tx_id).amount == Decimal(big)
        assert not transaction_exists(
            s, NaturalKey("01/01/2025", "WIRE", Decimal("1234567890123456.79"))
        )
        insert_transaction(s, _c("01/01/2025", "WIRE", "1234567890123456.79"))
    assert count_transactions(db_url) == 2
