"""Inventory domain - natural language inventory management.

This module provides:
- InventoryIntentProcessor: free text to typed inventory intents
- Heuristic normalizer: location, shelf life and category inference
- build_inventory_summary: compact inventory context for prompts
"""

from pantrybot.domain.inventory.intent_processor import (
    INVENTORY_TOOLS,
    InventoryIntentProcessor,
    build_system_prompt,
    parse_response,
)
from pantrybot.domain.inventory.normalizer import (
    infer_category,
    infer_expiration_days,
    infer_location,
    normalize_item,
    normalize_items,
)
from pantrybot.domain.inventory.summary import build_inventory_summary
from pantrybot.domain.inventory.types import (
    AddIntent,
    ConsumeIntent,
    HouseholdContext,
    InventoryIntent,
    ParsedItem,
    QueryIntent,
    RecipeIntent,
    RecipeRequest,
    UnknownIntent,
    WasteIntent,
)

__all__ = [
    # Processor
    "InventoryIntentProcessor",
    "INVENTORY_TOOLS",
    "build_system_prompt",
    "parse_response",
    # Normalizer
    "infer_category",
    "infer_expiration_days",
    "infer_location",
    "normalize_item",
    "normalize_items",
    # Summary
    "build_inventory_summary",
    # Types
    "AddIntent",
    "ConsumeIntent",
    "HouseholdContext",
    "InventoryIntent",
    "ParsedItem",
    "QueryIntent",
    "RecipeIntent",
    "RecipeRequest",
    "UnknownIntent",
    "WasteIntent",
]
