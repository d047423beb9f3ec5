"""Tests for the static menu catalogue."""

import pytest
from classorder.menu.catalog import MENU_ITEMS, Category, MenuItem, get_menu_item, menu_items
from protean.exceptions import ObjectNotFoundError, ValidationError


class TestCatalogue:
    def test_item_ids_are_unique(self):
        ids = [item.item_id for item in MENU_ITEMS]
        assert len(ids) == len(set(ids))

    def test_every_price_is_positive(self):
        assert all(item.price > 0 for item in MENU_ITEMS)

    def test_every_category_has_items(self):
        for category in Category:
            assert menu_items(category)

    def test_lookup_by_id(self):
        item = get_menu_item("s1")
        assert item.name == "A經典配餐 (中薯+38飲)"
        assert item.price == 65
        assert item.category == Category.SET

    def test_unknown_id_raises(self):
        with pytest.raises(ObjectNotFoundError):
            get_menu_item("m999")

    def test_filter_by_category_name(self):
        drinks = menu_items("DRINK")
        assert all(item.category == Category.DRINK for item in drinks)
        assert [item.item_id for item in drinks][:2] == ["d1", "d2"]

    def test_category_labels(self):
        assert get_menu_item("m1").category_label == "主餐"
        assert get_menu_item("d1").category_label == "飲料"

    def test_unknown_category_raises(self):
        with pytest.raises(ValidationError):
            menu_items("DESSERT")


class TestMenuItem:
    def test_items_are_immutable(self):
        item = get_menu_item("m1")
        with pytest.raises(AttributeError):
            item.price = 1

    def test_non_positive_price_is_rejected(self):
        with pytest.raises(ValueError):
            MenuItem(item_id="x", name="Free", price=0, category=Category.SNACK)
