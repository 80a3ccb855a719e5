"""Unit tests for chat contract and intent value objects."""

import json

import pytest

from pantrybot.domain.inventory.types import (
    AddIntent,
    ParsedItem,
    QueryIntent,
    UnknownIntent,
)
from pantrybot.infrastructure.llm.providers import AnthropicProvider, OllamaProvider, OpenAIProvider
from pantrybot.infrastructure.llm.transport import as_dict, decode_tool_arguments
from pantrybot.infrastructure.llm.types import LLMProvider, TokenUsage


class TestTokenUsage:
    """Test token accounting."""

    def test_total_is_derived(self):
        assert TokenUsage(input_tokens=3, output_tokens=4).total_tokens == 7

    @pytest.mark.parametrize(
        ("raw_in", "raw_out", "expected"),
        [
            (None, None, TokenUsage(0, 0)),
            (5, None, TokenUsage(5, 0)),
            ("5", 2, TokenUsage(0, 2)),
            (-1, 2.0, TokenUsage(0, 2)),
            (True, 1, TokenUsage(0, 1)),
        ],
    )
    def test_from_counts_tolerates_bad_values(self, raw_in, raw_out, expected):
        assert TokenUsage.from_counts(raw_in, raw_out) == expected


class TestProviderContract:
    """Test every adapter satisfies the provider protocol."""

    @pytest.mark.parametrize(
        "provider",
        [
            OpenAIProvider(api_key="sk"),
            AnthropicProvider(api_key="sk"),
            OllamaProvider(),
        ],
        ids=["openai", "anthropic", "ollama"],
    )
    def test_is_llm_provider(self, provider):
        assert isinstance(provider, LLMProvider)


class TestDecodeToolArguments:
    """Test tool argument decoding."""

    def test_json_string_round_trip(self):
        arguments = {"items": [{"name": "Milk", "quantity": 2}], "response": "Added!"}

        assert decode_tool_arguments(json.dumps(arguments), provider="ollama") == arguments

    def test_object_passes_through(self):
        arguments = {"queryType": "all_items"}

        assert decode_tool_arguments(arguments, provider="ollama") is arguments

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "42", 17, None, ""])
    def test_undecodable_is_empty(self, raw):
        assert decode_tool_arguments(raw, provider="ollama") == {}


class TestAsDict:
    """Test the lenient object reader used by the stream decoders."""

    @pytest.mark.parametrize("value", [None, "text", [1, 2], 3])
    def test_non_objects_read_as_empty(self, value):
        assert as_dict(value) == {}

    def test_object_passes_through(self):
        value = {"content": "Hi"}

        assert as_dict(value) is value


class TestIntents:
    """Test intent value objects."""

    def test_confidence_is_bounded(self):
        with pytest.raises(ValueError):
            UnknownIntent(confidence=1.5)
        with pytest.raises(ValueError):
            AddIntent(confidence=-0.1)

    def test_action_is_fixed_per_variant(self):
        assert AddIntent().action == "add"
        assert QueryIntent().action == "query"
        assert UnknownIntent().action == "unknown"

    def test_to_dict_uses_camel_case(self):
        intent = AddIntent(
            items=(ParsedItem(name="Milk", expiration_days=7, category="Dairy"),),
            response="Added!",
        )

        assert intent.to_dict() == {
            "action": "add",
            "items": [
                {
                    "name": "Milk",
                    "quantity": 1,
                    "unit": "item",
                    "location": "fridge",
                    "expirationDays": 7,
                    "category": "Dairy",
                }
            ],
            "response": "Added!",
            "confidence": 0.9,
        }

    def test_query_to_dict(self):
        data = QueryIntent(query_type="by_location", filter="freezer", response="...").to_dict()

        assert data["queryType"] == "by_location"
        assert data["filter"] == "freezer"
        assert data["items"] == []
