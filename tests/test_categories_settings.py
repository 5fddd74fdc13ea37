import pytest

from tallybook.categories import (
    CategorySet,
    add_category,
    load_category_set,
    normalize_name,
    validate_name,
)
from tallybook.persistence import store_session
from tallybook.rules import add_rule
from tallybook.settings import SettingsStore

from tests.helpers.db import seed_transactions


def test_category_set_is_ordered_and_case_insensitive():
    cats = CategorySet(["Groceries", "groceries", "  ", "Dining", "GROCERIES"])
    assert cats.as_list() == ["Groceries", "Dining"]
    assert "DINING" in cats
    assert "Travel" not in cats
    assert len(cats) == 2
    assert cats.add("Travel") is True
    assert cats.add("travel") is False
    assert list(cats) == ["Groceries", "Dining", "Travel"]


def test_normalize_and_validate_name():
    assert normalize_name("  Coffee   Shops ") == "Coffee Shops"
    assert validate_name("   ").ok is False
    assert validate_name("x" * 65).ok is False
    assert validate_name("Rent").ok is True


def test_category_set_is_derived_from_transactions_rules_and_explicit_labels(db_url):
    seed_transactions(
        database_url=db_url,
        rows=[
            ("01/01/2025", "A", "1.00", "Groceries"),
            ("01/02/2025", "B", "1.00", ""),
            ("01/03/2025", "C", "1.00", "groceries"),
        ],
    )
    with store_session(database_url=db_url) as s:
        add_rule(s, "uber", "Rides")
        assert add_category(s, "Gifts") is True

    with store_session(database_url=db_url) as s:
        cats = load_category_set(s)
    assert "Rides" in cats and "Gifts" in cats and "GROCERIES" in cats
    assert len(cats) == 3
    assert "" not in cats


def test_add_category_rejects_duplicates_and_invalid_names(db_url):
    seed_transactions(database_url=db_url, rows=[("01/01/2025", "A", "1.00", "Rent")])
    with store_session(database_url=db_url) as s:
        assert add_category(s, "rent") is False
        assert add_category(s, "Pets") is True
        assert add_category(s, " PETS ") is False
        with pytest.raises(ValueError):
            add_category(s, "   ")
        assert SettingsStore(s).cached_categories() == ["Pets"]


def test_settings_store_get_set_and_profile_defaults(db_url):
    with store_session(database_url=db_url) as s:
        settings = SettingsStore(s)
        assert settings.get("missing") is None
        assert settings.get("missing", "fallback") == "fallback"
        assert settings.display_name == ""
        assert settings.group_label == ""

        settings.set("theme", "dark")
        settings.set("theme", "light")
        settings.display_name = " Ana "

    with store_session(database_url=db_url) as s:
        settings = SettingsStore(s)
        assert settings.get("theme") == "light"
        assert settings.display_name == "Ana"
        assert settings.group_label == "Ana's Family Expenses"
        settings.group_label = "Household"

    with store_session(database_url=db_url) as s:
        assert SettingsStore(s).group_label == "Household"


def test_cached_categories_ignore_corrupt_values(db_url):
    with store_session(database_url=db_url) as s:
        settings = SettingsStore(s)
        settings.set("categories", "not json")
        assert settings.cached_categories() == []
        settings.set("categories", '{"a": 1}')
        assert settings.cached_categories() == []
        settings.set_cached_categories(["Café", "Rent"])
        assert settings.cached_categories() == ["Café", "Rent"]
