"""Unit tests for the item normalization heuristics."""

import pytest

from pantrybot.domain.inventory.normalizer import (
    infer_category,
    infer_expiration_days,
    infer_location,
    normalize_item,
    normalize_items,
)


class TestInferLocation:
    """Test storage location inference."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Frozen Peas", "freezer"),
            ("Vanilla Ice Cream", "freezer"),
            ("Popsicles", "freezer"),
            ("Canned Tomatoes", "pantry"),
            ("Basmati Rice", "pantry"),
            ("Peanut Butter", "pantry"),
            ("Sourdough Bread", "pantry"),
            ("Whole Milk", "fridge"),
            ("Chicken Breast", "fridge"),
        ],
    )
    def test_keywords(self, name, expected):
        assert infer_location(name) == expected

    def test_freezer_beats_pantry(self):
        """Test freezer keywords are checked first."""
        assert infer_location("Frozen Pasta") == "freezer"


class TestInferExpirationDays:
    """Test shelf life inference."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Baby Spinach", 3),
            ("Strawberries", 3),
            ("Greek Yogurt", 7),
            ("Deli Turkey", 7),
            ("Cheddar Cheese", 14),
            ("Orange Juice", 14),
        ],
    )
    def test_keyword_tiers(self, name, expected):
        assert infer_expiration_days(name) == expected

    def test_tiers_beat_location(self):
        """Test a keyword match wins over the location default."""
        assert infer_expiration_days("Milk", "pantry") == 7

    def test_earlier_tier_wins(self):
        """Test "cream cheese" hits the 7-day tier before the 14-day one."""
        assert infer_expiration_days("Cream Cheese") == 7

    @pytest.mark.parametrize(
        ("location", "expected"),
        [("freezer", 90), ("pantry", 180), ("fridge", 7), (None, 7)],
    )
    def test_location_defaults(self, location, expected):
        assert infer_expiration_days("Mystery Box", location) == expected


class TestInferCategory:
    """Test category inference."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Whole Milk", "Dairy"),
            ("Eggs", "Dairy"),
            ("Bananas", "Produce"),
            ("Ground Beef", "Meat"),
            ("Rolled Oats", "Grains"),
            ("Coffee Beans", "Beverages"),
            ("Ranch Dressing", "Condiments"),
            ("Popcorn", "Snacks"),
            ("Pepperoni Pizza", "Produce"),
            ("Frozen Pizza", "Frozen"),
            ("Paper Towels", "Other"),
        ],
    )
    def test_table(self, name, expected):
        """Test first matching category wins ("pepperoni" contains "pepper")."""
        assert infer_category(name) == expected


class TestNormalizeItem:
    """Test filling defaults on a parsed item."""

    def test_bare_name(self):
        item = normalize_item({"name": "Milk"})

        assert item.name == "Milk"
        assert item.quantity == 1
        assert item.unit == "item"
        assert item.location == "fridge"
        assert item.expiration_days == 7
        assert item.category == "Dairy"
        assert item.reason is None

    def test_inferred_location_does_not_feed_shelf_life(self):
        """Test shelf life falls back on the supplied location only."""
        item = normalize_item({"name": "Frozen Peas"})

        assert item.location == "freezer"
        assert item.expiration_days == 7

    def test_invalid_location_does_not_feed_shelf_life(self):
        item = normalize_item({"name": "Canned Beans", "location": "garage"})

        assert item.location == "pantry"
        assert item.expiration_days == 7

    def test_explicit_location_feeds_shelf_life(self):
        item = normalize_item({"name": "Mystery Box", "location": "pantry"})

        assert item.expiration_days == 180

    def test_invalid_location_is_inferred(self):
        item = normalize_item({"name": "Basmati Rice", "location": "garage"})

        assert item.location == "pantry"

    @pytest.mark.parametrize("quantity", [0, None, -2, "two", True])
    def test_unusable_quantity_defaults_to_one(self, quantity):
        assert normalize_item({"name": "Eggs", "quantity": quantity}).quantity == 1

    def test_fractional_quantity(self):
        assert normalize_item({"name": "Milk", "quantity": 0.5, "unit": "gal"}).quantity == 0.5

    def test_zero_expiration_days_is_kept(self):
        """Test an explicit 0 (expires today) is not replaced by inference."""
        assert normalize_item({"name": "Milk", "expirationDays": 0}).expiration_days == 0

    def test_reason_only_when_requested(self):
        raw = {"name": "Lettuce", "reason": "expired"}

        assert normalize_item(raw).reason is None
        assert normalize_item(raw, keep_reason=True).reason == "expired"

    @pytest.mark.parametrize("raw", [{}, {"name": ""}, {"name": "   "}, {"name": 42}])
    def test_item_without_name_is_skipped(self, raw):
        assert normalize_item(raw) is None


class TestNormalizeItems:
    """Test normalizing an items array."""

    def test_skips_unusable_entries(self):
        items = normalize_items([{"name": "Milk"}, "Eggs", {"quantity": 2}, {"name": "Bread"}])

        assert [item.name for item in items] == ["Milk", "Bread"]

    @pytest.mark.parametrize("raw", [None, "Milk", {"name": "Milk"}])
    def test_non_list_is_empty(self, raw):
        assert normalize_items(raw) == ()
