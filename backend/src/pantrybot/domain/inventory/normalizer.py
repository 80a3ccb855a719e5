"""Keyword heuristics that fill the gaps in model-parsed items.

Pure functions without I/O. A value supplied by the model always wins;
inference only runs for fields that are missing or unusable. All matching is
case-insensitive substring matching, first match wins.
"""

from collections.abc import Mapping
from typing import Any

from pantrybot.domain.inventory.types import LOCATIONS, Location, ParsedItem
from pantrybot.shared.logging import get_logger

logger = get_logger(__name__)

FREEZER_KEYWORDS = ("frozen", "ice cream", "popsicle", "freezer")
PANTRY_KEYWORDS = (
    "canned",
    "can of",
    "rice",
    "pasta",
    "cereal",
    "chips",
    "crackers",
    "cookies",
    "bread",
    "flour",
    "sugar",
    "oil",
    "vinegar",
    "spice",
    "seasoning",
    "sauce",
    "ketchup",
    "mustard",
    "peanut butter",
)

# Checked in order, before any location default
EXPIRATION_TIERS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (3, ("lettuce", "spinach", "berries", "strawberries", "raspberries")),
    (7, ("milk", "cream", "yogurt", "deli", "leftover")),
    (14, ("cheese", "eggs", "butter", "juice", "hummus")),
)
LOCATION_EXPIRATION_DAYS: dict[str, int] = {
    "freezer": 90,
    "pantry": 180,
    "fridge": 7,
}
DEFAULT_EXPIRATION_DAYS = 7

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Dairy": ("milk", "cheese", "yogurt", "butter", "cream", "egg"),
    "Produce": (
        "lettuce",
        "tomato",
        "onion",
        "pepper",
        "carrot",
        "broccoli",
        "spinach",
        "apple",
        "banana",
        "orange",
        "berry",
        "fruit",
        "vegetable",
    ),
    "Meat": (
        "chicken",
        "beef",
        "pork",
        "turkey",
        "fish",
        "salmon",
        "steak",
        "ground",
        "bacon",
        "sausage",
    ),
    "Grains": ("bread", "rice", "pasta", "cereal", "oat", "flour", "tortilla"),
    "Beverages": ("juice", "soda", "water", "coffee", "tea", "wine", "beer"),
    "Condiments": ("ketchup", "mustard", "mayo", "sauce", "dressing", "oil", "vinegar"),
    "Snacks": ("chips", "crackers", "cookies", "candy", "nuts", "popcorn"),
    "Frozen": ("ice cream", "frozen", "pizza"),
}
DEFAULT_CATEGORY = "Other"

DEFAULT_QUANTITY = 1
DEFAULT_UNIT = "item"


def _matches(name: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in name for keyword in keywords)


def infer_location(item_name: str) -> Location:
    """Freezer keywords beat pantry keywords; anything else goes in the fridge."""
    name = item_name.lower()
    if _matches(name, FREEZER_KEYWORDS):
        return "freezer"
    if _matches(name, PANTRY_KEYWORDS):
        return "pantry"
    return "fridge"


def infer_expiration_days(item_name: str, location: str | None = None) -> int:
    """Shelf life in days from the name, falling back to a per-location default."""
    name = item_name.lower()
    for days, keywords in EXPIRATION_TIERS:
        if _matches(name, keywords):
            return days
    return LOCATION_EXPIRATION_DAYS.get(location or "", DEFAULT_EXPIRATION_DAYS)


def infer_category(item_name: str) -> str:
    name = item_name.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if _matches(name, keywords):
            return category
    return DEFAULT_CATEGORY


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if value > 0 else None


def _non_empty_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_item(raw: Mapping[str, Any], *, keep_reason: bool = False) -> ParsedItem | None:
    """Fill defaults on one tool-call item.

    Returns None when the item has no usable name. ``reason`` is only kept
    when ``keep_reason`` is set (the waste path).
    """
    name = _non_empty_text(raw.get("name"))
    if name is None:
        return None

    # Shelf life falls back on the location the model gave, never on an inferred one
    supplied_location = raw.get("location") if raw.get("location") in LOCATIONS else None
    location = supplied_location or infer_location(name)

    expiration_days = raw.get("expirationDays")
    if isinstance(expiration_days, bool) or not isinstance(expiration_days, (int, float)):
        expiration_days = None
    elif expiration_days < 0:
        expiration_days = None

    return ParsedItem(
        name=name,
        quantity=_positive_number(raw.get("quantity")) or DEFAULT_QUANTITY,
        unit=_non_empty_text(raw.get("unit")) or DEFAULT_UNIT,
        location=location,
        expiration_days=(
            int(expiration_days)
            if expiration_days is not None
            else infer_expiration_days(name, supplied_location)
        ),
        category=_non_empty_text(raw.get("category")) or infer_category(name),
        reason=_non_empty_text(raw.get("reason")) if keep_reason else None,
    )


def normalize_items(raw_items: Any, *, keep_reason: bool = False) -> tuple[ParsedItem, ...]:
    """Normalize a tool-call ``items`` array, dropping entries that are not usable items."""
    if not isinstance(raw_items, list):
        return ()

    items = []
    for raw in raw_items:
        item = normalize_item(raw, keep_reason=keep_reason) if isinstance(raw, Mapping) else None
        if item is None:
            logger.debug("parsed_item_skipped", item=str(raw)[:100])
            continue
        items.append(item)
    return tuple(items)
