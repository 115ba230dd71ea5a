from __future__ import annotations

from decimal import Decimal

import pytest

from billease.billing.errors import CategoryRequired, NewCategoryNameRequired
from billease.billing.selector import (
    ADD_NEW_CATEGORY,
    ComboboxOption,
    Selector,
    category_options,
    filter_options,
    group_options,
    product_options,
    resolve_category,
)
from billease.domain.models import Product


def test_query_matches_label_case_insensitively() -> None:
    selector = Selector([ComboboxOption(value="c1", label="Clothing", group="Clothing")], allow_custom_value=True)
    selector.type("cloth")
    assert [o.value for o in selector.visible()] == ["c1"]
    assert selector.custom_entry() is None


def test_unmatched_query_offers_custom_entry() -> None:
    selector = Selector([ComboboxOption(value="c1", label="Clothing", group="Clothing")], allow_custom_value=True)
    selector.type("xyz")
    assert selector.visible() == []
    assert selector.custom_entry_label() == "Add “xyz”"
    assert selector.select_custom() == "xyz"
    assert selector.value == "xyz"
    assert selector.display_label == "xyz"


def test_custom_entry_is_trimmed_and_needs_permission() -> None:
    opts = [ComboboxOption(value="c1", label="Clothing")]
    strict = Selector(opts)
    strict.type("  Toys ")
    assert strict.custom_entry() is None
    with pytest.raises(ValueError):
        strict.select_custom()

    loose = Selector(opts, allow_custom_value=True)
    loose.type("  Toys ")
    assert loose.select_custom() == "Toys"


def test_filter_uses_label_not_value() -> None:
    opts = [ComboboxOption(value="p-123", label="Blue Shirt")]
    assert filter_options(opts, "p-123") == []
    assert filter_options(opts, "SHIRT") == opts


def test_exact_value_match_suppresses_custom_entry() -> None:
    selector = Selector([ComboboxOption(value="abc", label="Something")], allow_custom_value=True)
    selector.type("ABC")
    assert selector.custom_entry() is None


def test_groups_keep_insertion_order_unless_sorted() -> None:
    opts = [
        ComboboxOption("1", "Mug", "Kitchen"),
        ComboboxOption("2", "Shirt", "Clothing"),
        ComboboxOption("3", "Plate", "Kitchen"),
        ComboboxOption("4", "Misc"),
    ]
    assert [g for g, _ in group_options(opts)] == ["Kitchen", "Clothing", None]
    grouped = group_options(opts, sort_groups=True)
    assert [g for g, _ in grouped] == [None, "Clothing", "Kitchen"]
    assert [o.value for o in dict(grouped)["Kitchen"]] == ["1", "3"]


def test_select_sets_value_and_display_label() -> None:
    selector = Selector([ComboboxOption("c1", "Clothing")], placeholder="Pick one")
    assert selector.display_label == "Pick one"
    selector.open()
    assert selector.is_open
    selector.select("c1")
    assert selector.value == "c1"
    assert selector.display_label == "Clothing"
    assert not selector.is_open
    with pytest.raises(KeyError):
        selector.select("missing")


def test_product_options_group_by_category_with_price_label() -> None:
    products = [
        Product(id="a", name="Shirt", category="Clothing", price=Decimal("19.99")),
        Product(id="b", name="Kettle", category="Appliances", price=Decimal("45.00")),
    ]
    selector = Selector(product_options(products, "₹"), sort_groups=True)
    groups = selector.visible_groups()
    assert [g for g, _ in groups] == ["Appliances", "Clothing"]
    assert groups[1][1][0].label == "Shirt (₹19.99)"


def test_category_options_end_with_sentinel() -> None:
    opts = category_options(["Clothing", "", "Kitchen"])
    assert [o.value for o in opts] == ["Clothing", "Kitchen", ADD_NEW_CATEGORY]


def test_resolve_category_rules() -> None:
    assert resolve_category("Clothing") == "Clothing"
    assert resolve_category(ADD_NEW_CATEGORY, "  Toys ") == "Toys"
    with pytest.raises(NewCategoryNameRequired):
        resolve_category(ADD_NEW_CATEGORY, "   ")
    with pytest.raises(CategoryRequired):
        resolve_category("")
