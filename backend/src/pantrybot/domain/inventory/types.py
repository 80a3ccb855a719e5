"""Inventory intent data model.

An ``InventoryIntent`` is the typed interpretation of one free-text message.
The variants share ``response``/``confidence``/``items`` and differ in the
action-specific payload. Field names are snake_case here; ``to_dict`` renders
the camelCase shape the route handlers and the Telegram bot consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal

Location = Literal["fridge", "freezer", "pantry"]
LOCATIONS: tuple[Location, ...] = ("fridge", "freezer", "pantry")

Action = Literal["add", "consume", "waste", "query", "recipe", "unknown"]

QueryType = Literal[
    "expiring_soon",
    "all_items",
    "specific_item",
    "by_location",
    "by_category",
]
QUERY_TYPES: tuple[QueryType, ...] = (
    "expiring_soon",
    "all_items",
    "specific_item",
    "by_location",
    "by_category",
)

MealType = Literal["breakfast", "lunch", "dinner", "snack", "dessert", "any"]
MEAL_TYPES: tuple[MealType, ...] = ("breakfast", "lunch", "dinner", "snack", "dessert", "any")


@dataclass(frozen=True)
class ParsedItem:
    """A grocery item after normalization; every field except ``reason`` is filled."""

    name: str
    quantity: float = 1
    unit: str = "item"
    location: Location = "fridge"
    expiration_days: int = 7
    category: str = "Other"
    reason: str | None = None  # waste only

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "location": self.location,
            "expirationDays": self.expiration_days,
            "category": self.category,
        }
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class RecipeRequest:
    """What the user asked for when requesting recipe ideas."""

    meal_type: MealType = "any"
    prioritize_expiring: bool = True
    specific_ingredients: tuple[str, ...] = ()
    dietary_restrictions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "mealType": self.meal_type,
            "prioritizeExpiring": self.prioritize_expiring,
            "specificIngredients": list(self.specific_ingredients),
            "dietaryRestrictions": list(self.dietary_restrictions),
        }


@dataclass(frozen=True)
class HouseholdContext:
    """Caller-supplied context used to build the system prompt."""

    household_id: str | None = None
    inventory_summary: str | None = None  # see build_inventory_summary()
    recent_items: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class _IntentBase:
    action: ClassVar[Action]

    items: tuple[ParsedItem, ...] = ()
    response: str | None = None
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "items": [item.to_dict() for item in self.items],
            "response": self.response,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, kw_only=True)
class AddIntent(_IntentBase):
    action: ClassVar[Action] = "add"

    confidence: float = 0.9


@dataclass(frozen=True, kw_only=True)
class ConsumeIntent(_IntentBase):
    action: ClassVar[Action] = "consume"

    confidence: float = 0.9


@dataclass(frozen=True, kw_only=True)
class WasteIntent(_IntentBase):
    action: ClassVar[Action] = "waste"

    confidence: float = 0.9


@dataclass(frozen=True, kw_only=True)
class QueryIntent(_IntentBase):
    """A question about the current inventory; ``response`` holds the answer."""

    action: ClassVar[Action] = "query"

    query_type: QueryType | None = None
    filter: str | None = None
    confidence: float = 0.85

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["queryType"] = self.query_type
        data["filter"] = self.filter
        return data


@dataclass(frozen=True, kw_only=True)
class RecipeIntent(_IntentBase):
    action: ClassVar[Action] = "recipe"

    recipe_request: RecipeRequest = field(default_factory=RecipeRequest)
    confidence: float = 0.9

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["recipeRequest"] = self.recipe_request.to_dict()
        return data


@dataclass(frozen=True, kw_only=True)
class UnknownIntent(_IntentBase):
    """Conversational reply, or the fallback when extraction failed (confidence 0)."""

    action: ClassVar[Action] = "unknown"

    confidence: float = 0.5


InventoryIntent = AddIntent | ConsumeIntent | WasteIntent | QueryIntent | RecipeIntent | UnknownIntent
