"""Inventory intent extraction.

Turns a free-text message ("I bought milk and eggs", "the lettuce went bad",
"what can I make for dinner?") into a typed ``InventoryIntent`` by offering
the model a fixed catalog of tools and reading back the first tool call.

Flow:
1. Build the system prompt from the household context
2. One chat round trip with the tool catalog (temperature 0.2, tool choice auto)
3. Map the first tool call to an intent and normalize its items

Backend failures never escape ``process``: they are logged and returned as
an ``unknown`` intent with confidence 0.
"""

from collections.abc import Mapping
from typing import Any

from pantrybot.domain.inventory.normalizer import normalize_items
from pantrybot.domain.inventory.types import (
    LOCATIONS,
    MEAL_TYPES,
    QUERY_TYPES,
    AddIntent,
    ConsumeIntent,
    HouseholdContext,
    InventoryIntent,
    QueryIntent,
    RecipeIntent,
    RecipeRequest,
    UnknownIntent,
    WasteIntent,
)
from pantrybot.infrastructure.llm.factory import ProviderCache, get_provider_cache
from pantrybot.infrastructure.llm.types import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    LLMProvider,
    ToolDefinition,
)
from pantrybot.observability.metrics import record_intent
from pantrybot.shared.exceptions import ExtractionFailure
from pantrybot.shared.logging import get_logger

logger = get_logger(__name__)

EXTRACTION_TEMPERATURE = 0.2

NO_DATA_SUMMARY = "No inventory data available."
CLARIFY_RESPONSE = "I'm not sure what you mean. Could you tell me more?"
FAILURE_RESPONSE = "I'm having trouble understanding that. Could you try rephrasing?"

INVENTORY_TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="add_items",
        description=(
            "Add new items to the household inventory. Use when user mentions "
            "buying, getting, or adding food items."
        ),
        parameters={
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "description": "List of items to add",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {
                                "type": "string",
                                "description": 'Item name (e.g., "Whole Milk", "Organic Eggs")',
                            },
                            "quantity": {
                                "type": "number",
                                "description": "Quantity (default 1)",
                            },
                            "unit": {
                                "type": "string",
                                "description": (
                                    'Unit of measurement (e.g., "gal", "dozen", "lb", "oz", "item")'
                                ),
                            },
                            "location": {
                                "type": "string",
                                "enum": list(LOCATIONS),
                                "description": "Where to store the item",
                            },
                            "expirationDays": {
                                "type": "number",
                                "description": (
                                    "Days until expiration (infer from item type if not specified)"
                                ),
                            },
                            "category": {
                                "type": "string",
                                "description": "Category (Dairy, Produce, Meat, Grains, etc.)",
                            },
                        },
                        "required": ["name"],
                    },
                },
                "response": {
                    "type": "string",
                    "description": "Friendly confirmation message to show the user",
                },
            },
            "required": ["items", "response"],
        },
    ),
    ToolDefinition(
        name="consume_items",
        description=(
            "Mark items as consumed/used. Use when user mentions eating, using, "
            "cooking with, or finishing items."
        ),
        parameters={
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "description": "List of items that were consumed",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {
                                "type": "string",
                                "description": "Item name to match in inventory",
                            },
                            "quantity": {
                                "type": "number",
                                "description": 'Quantity consumed (omit for "all")',
                            },
                            "unit": {
                                "type": "string",
                                "description": "Unit of measurement",
                            },
                        },
                        "required": ["name"],
                    },
                },
                "response": {
                    "type": "string",
                    "description": "Friendly confirmation message",
                },
            },
            "required": ["items", "response"],
        },
    ),
    ToolDefinition(
        name="waste_items",
        description=(
            "Mark items as wasted/expired/thrown out. Use when user mentions "
            "throwing away, expired, spoiled, or gone bad."
        ),
        parameters={
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "description": "List of items that were wasted",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {
                                "type": "string",
                                "description": "Item name to match in inventory",
                            },
                            "quantity": {
                                "type": "number",
                                "description": 'Quantity wasted (omit for "all")',
                            },
                            "reason": {
                                "type": "string",
                                "description": "Why it was wasted (expired, spoiled, etc.)",
                            },
                        },
                        "required": ["name"],
                    },
                },
                "response": {
                    "type": "string",
                    "description": "Friendly message (sympathetic but encouraging)",
                },
            },
            "required": ["items", "response"],
        },
    ),
    ToolDefinition(
        name="query_inventory",
        description=(
            "Answer questions about current inventory. Use for questions like "
            "\"what do I have\", \"what's expiring\", \"do I have milk\"."
        ),
        parameters={
            "type": "object",
            "properties": {
                "queryType": {
                    "type": "string",
                    "enum": list(QUERY_TYPES),
                    "description": "Type of query",
                },
                "filter": {
                    "type": "string",
                    "description": "Optional filter (item name, location, or category)",
                },
                "response": {
                    "type": "string",
                    "description": "Natural language answer to the query",
                },
            },
            "required": ["queryType", "response"],
        },
    ),
    ToolDefinition(
        name="suggest_recipes",
        description=(
            "Suggest recipes based on available ingredients. Use when user asks "
            '"what can I make", "recipe ideas", "what should I cook", "dinner ideas", '
            "or similar cooking-related questions."
        ),
        parameters={
            "type": "object",
            "properties": {
                "mealType": {
                    "type": "string",
                    "enum": list(MEAL_TYPES),
                    "description": "Type of meal the user is looking for",
                },
                "prioritizeExpiring": {
                    "type": "boolean",
                    "description": "Whether to prioritize items expiring soon (default true)",
                },
                "specificIngredients": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Specific ingredients user wants to use (if mentioned)",
                },
                "dietaryRestrictions": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "Any dietary restrictions mentioned (vegetarian, vegan, gluten-free, etc.)"
                    ),
                },
                "response": {
                    "type": "string",
                    "description": "Friendly acknowledgment that you will find recipes for them",
                },
            },
            "required": ["mealType", "response"],
        },
    ),
)

INVENTORY_SUMMARY_PLACEHOLDER = "{{inventorySummary}}"

SYSTEM_PROMPT_TEMPLATE = """You are Pantrybot, a friendly kitchen inventory assistant.

Your job is to understand what the user is saying about their groceries and food, then use the appropriate tool to help them manage their inventory.

CURRENT INVENTORY CONTEXT:
{{inventorySummary}}

GUIDELINES:
1. For ADD actions: Infer reasonable storage locations and expiration times based on item type
   - Dairy, meat, produce → fridge (7-14 days)
   - Frozen items → freezer (30-90 days)
   - Canned goods, dry goods, snacks → pantry (60-365 days)

2. For CONSUME actions: Match item names flexibly (e.g., "milk" matches "Whole Milk")

3. For WASTE actions: Be sympathetic but encouraging about reducing waste

4. For QUERIES: Provide helpful, concise answers based on the inventory context

5. For RECIPES: When users ask "what can I make", "recipe ideas", "what should I cook", or similar:
   - Use the suggest_recipes tool
   - Extract meal type if mentioned (breakfast, lunch, dinner, etc.)
   - Note any specific ingredients they want to use
   - Note any dietary restrictions
   - Prioritize expiring items unless they specify otherwise

6. Always respond in a friendly, helpful tone

7. If the message isn't about food/groceries, respond conversationally without using tools"""  # noqa: E501


def build_system_prompt(context: HouseholdContext | None = None) -> str:
    """Fill the prompt template with the inventory summary and recent items."""
    context = context or HouseholdContext()
    inventory_summary = context.inventory_summary or NO_DATA_SUMMARY
    if context.recent_items:
        inventory_summary += f"\n\nRecently active items: {', '.join(context.recent_items)}"
    return SYSTEM_PROMPT_TEMPLATE.replace(INVENTORY_SUMMARY_PLACEHOLDER, inventory_summary)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _choice(value: Any, allowed: tuple[str, ...]) -> Any:
    """``value`` if it is one of ``allowed``, else None."""
    return value if value in allowed else None


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(entry for entry in value if isinstance(entry, str))


def _add_intent(args: Mapping[str, Any]) -> AddIntent:
    return AddIntent(items=normalize_items(args.get("items")), response=_text(args.get("response")))


def _consume_intent(args: Mapping[str, Any]) -> ConsumeIntent:
    return ConsumeIntent(
        items=normalize_items(args.get("items")),
        response=_text(args.get("response")),
    )


def _waste_intent(args: Mapping[str, Any]) -> WasteIntent:
    return WasteIntent(
        items=normalize_items(args.get("items"), keep_reason=True),
        response=_text(args.get("response")),
    )


def _query_intent(args: Mapping[str, Any]) -> QueryIntent:
    return QueryIntent(
        query_type=_choice(args.get("queryType"), QUERY_TYPES),
        filter=_text(args.get("filter")),
        response=_text(args.get("response")),
    )


def _recipe_intent(args: Mapping[str, Any]) -> RecipeIntent:
    return RecipeIntent(
        recipe_request=RecipeRequest(
            meal_type=_choice(args.get("mealType"), MEAL_TYPES) or "any",
            # Only an explicit false turns prioritization off
            prioritize_expiring=args.get("prioritizeExpiring") is not False,
            specific_ingredients=_strings(args.get("specificIngredients")),
            dietary_restrictions=_strings(args.get("dietaryRestrictions")),
        ),
        response=_text(args.get("response")),
    )


_INTENT_BUILDERS = {
    "add_items": _add_intent,
    "consume_items": _consume_intent,
    "waste_items": _waste_intent,
    "query_inventory": _query_intent,
    "suggest_recipes": _recipe_intent,
}


def parse_response(response: ChatResponse) -> InventoryIntent:
    """Map a chat response to an intent.

    Only the first tool call counts. A tool name outside the catalog is
    logged and treated like a plain conversational reply.
    """
    if response.tool_calls:
        tool_call = response.tool_calls[0]
        builder = _INTENT_BUILDERS.get(tool_call.name)
        if builder is not None:
            return builder(tool_call.arguments)
        logger.warning("unknown_tool_called", tool=tool_call.name)

    return UnknownIntent(response=response.content or CLARIFY_RESPONSE)


class InventoryIntentProcessor:
    """Extracts inventory intents from user messages."""

    def __init__(
        self,
        provider: LLMProvider | None = None,
        provider_cache: ProviderCache | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            provider: Fixed provider to use (mainly for tests)
            provider_cache: Cache to resolve the provider from; defaults to the
                process-wide cache. Resolved on every call so a cache reset
                takes effect immediately.
        """
        self._provider = provider
        self._provider_cache = provider_cache

    def _get_provider(self) -> LLMProvider:
        if self._provider is not None:
            return self._provider
        if self._provider_cache is not None:
            return self._provider_cache.get()
        return get_provider_cache().get()

    async def _extract(
        self,
        provider: LLMProvider,
        system_prompt: str,
        user_message: str,
    ) -> InventoryIntent:
        """One chat round trip; any failure is raised as ExtractionFailure."""
        try:
            response = await provider.chat(
                [
                    ChatMessage(role="system", content=system_prompt),
                    ChatMessage(role="user", content=user_message),
                ],
                ChatOptions(
                    temperature=EXTRACTION_TEMPERATURE,
                    tools=INVENTORY_TOOLS,
                    tool_choice="auto",
                ),
            )
            return parse_response(response)
        except Exception as exc:
            raise ExtractionFailure(
                "Failed to process inventory message",
                details={"error": str(exc), "error_type": type(exc).__name__},
            ) from exc

    async def process(
        self,
        user_message: str,
        context: HouseholdContext | None = None,
    ) -> InventoryIntent:
        """Interpret one user message.

        Raises:
            LLMConfigurationError: If no backend is configured (before any request)
        """
        provider = self._get_provider()
        context = context or HouseholdContext()
        system_prompt = build_system_prompt(context)

        logger.debug(
            "inventory_message_received",
            household_id=context.household_id,
            message_length=len(user_message),
        )

        try:
            intent = await self._extract(provider, system_prompt, user_message)
        except ExtractionFailure as failure:
            logger.error(
                "inventory_intent_failed",
                provider=provider.name,
                household_id=context.household_id,
                exc_info=failure,
                **failure.details,
            )
            intent = UnknownIntent(response=FAILURE_RESPONSE, confidence=0.0)
        else:
            logger.info(
                "inventory_intent_processed",
                action=intent.action,
                item_count=len(intent.items),
                confidence=intent.confidence,
                household_id=context.household_id,
            )

        record_intent(intent.action)
        return intent
