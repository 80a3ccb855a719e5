"""
Unit tests for the Ollama adapter.

Tests cover:
- /api/chat request construction
- Tool-call parsing (object and string arguments, generated ids)
- "Ollama not running" translation and error bodies
- Model listing and pulling
"""
import json

import httpx
import pytest

from pantrybot.infrastructure.llm.providers.ollama import OllamaProvider
from pantrybot.infrastructure.llm.types import (
    ChatMessage,
    ChatOptions,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)
from pantrybot.shared.exceptions import LLMProviderError, LLMTransportError, MalformedResponseError

MESSAGES = [
    ChatMessage(role="system", content="You are Pantrybot."),
    ChatMessage(role="user", content="What's expiring?"),
]

QUERY_TOOL = ToolDefinition(
    name="query_inventory",
    description="Answer inventory questions",
    parameters={"type": "object", "properties": {"queryType": {"type": "string"}}},
)


def make_provider(handler, **kwargs) -> OllamaProvider:
    return OllamaProvider(transport=httpx.MockTransport(handler), **kwargs)


def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


class TestOllamaProviderInit:
    """Tests for adapter construction."""

    def test_defaults(self):
        """Test local URL, model and the longer default timeout."""
        provider = OllamaProvider()

        assert provider.name == "ollama"
        assert provider.base_url == "http://localhost:11434"
        assert provider.get_default_model() == "llama3.2"
        assert provider.timeout == 60.0


class TestOllamaBuildRequest:
    """Tests for request body construction."""

    @pytest.fixture
    def provider(self):
        return OllamaProvider()

    def test_basic_body(self, provider):
        """Test messages, stream flag and options."""
        body = provider.build_request(MESSAGES, ChatOptions(temperature=0.2))

        assert body == {
            "model": "llama3.2",
            "messages": [
                {"role": "system", "content": "You are Pantrybot."},
                {"role": "user", "content": "What's expiring?"},
            ],
            "stream": False,
            "options": {"temperature": 0.2},
        }

    def test_max_tokens_maps_to_num_predict(self, provider):
        body = provider.build_request(MESSAGES, ChatOptions(max_tokens=128))

        assert body["options"]["num_predict"] == 128

    def test_tools_use_function_envelope(self, provider):
        """Test tools are sent in the OpenAI-compatible shape."""
        body = provider.build_request(MESSAGES, ChatOptions(tools=(QUERY_TOOL,), tool_choice="auto"))

        assert body["tools"][0] == {
            "type": "function",
            "function": {
                "name": "query_inventory",
                "description": "Answer inventory questions",
                "parameters": QUERY_TOOL.parameters,
            },
        }
        assert "tool_choice" not in body

    def test_none_tool_choice_omits_tools(self, provider):
        body = provider.build_request(MESSAGES, ChatOptions(tools=(QUERY_TOOL,), tool_choice="none"))

        assert "tools" not in body


class TestOllamaChat:
    """Tests for non-streaming chat."""

    @pytest.mark.asyncio
    async def test_parses_text_response(self, recording_handler):
        """Test content, counters and default finish reason."""
        handler = recording_handler(
            httpx.Response(
                200,
                json={
                    "model": "llama3.2",
                    "message": {"role": "assistant", "content": "Your milk expires tomorrow."},
                    "done": True,
                    "prompt_eval_count": 42,
                    "eval_count": 7,
                },
            )
        )

        response = await make_provider(handler).chat(MESSAGES)

        assert str(handler.last_request.url) == "http://localhost:11434/api/chat"
        assert "authorization" not in handler.last_request.headers
        assert response.content == "Your milk expires tomorrow."
        assert response.tool_calls is None
        assert response.usage == TokenUsage(input_tokens=42, output_tokens=7)
        assert response.usage.total_tokens == 49
        assert response.finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_bearer_token_for_proxies(self, recording_handler):
        """Test an API key is sent as a bearer token."""
        handler = recording_handler(httpx.Response(200, json={"message": {"content": "ok"}}))

        await make_provider(handler, api_key="proxy-token").chat(MESSAGES)

        assert handler.last_request.headers["authorization"] == "Bearer proxy-token"

    @pytest.mark.asyncio
    async def test_parses_tool_calls(self, recording_handler):
        """Test object and string arguments; ids are generated from the index."""
        handler = recording_handler(
            httpx.Response(
                200,
                json={
                    "message": {
                        "content": "",
                        "tool_calls": [
                            {
                                "function": {
                                    "name": "query_inventory",
                                    "arguments": {"queryType": "expiring_soon"},
                                }
                            },
                            {
                                "function": {
                                    "name": "query_inventory",
                                    "arguments": json.dumps({"queryType": "all_items"}),
                                }
                            },
                        ],
                    },
                    "done_reason": "stop",
                },
            )
        )

        response = await make_provider(handler).chat(
            MESSAGES,
            ChatOptions(tools=(QUERY_TOOL,), tool_choice="auto"),
        )

        assert response.tool_calls == (
            ToolCall(id="call_0", name="query_inventory", arguments={"queryType": "expiring_soon"}),
            ToolCall(id="call_1", name="query_inventory", arguments={"queryType": "all_items"}),
        )

    @pytest.mark.asyncio
    async def test_malformed_string_arguments_become_empty(self, recording_handler):
        """Test a broken JSON string degrades to an empty object without raising."""
        handler = recording_handler(
            httpx.Response(
                200,
                json={
                    "message": {
                        "tool_calls": [
                            {"function": {"name": "query_inventory", "arguments": "{'bad': json"}}
                        ]
                    }
                },
            )
        )

        response = await make_provider(handler).chat(MESSAGES)

        assert response.tool_calls[0].arguments == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("body", "field"),
        [
            ({"message": "oops", "done": True}, "message"),
            ({"message": {"tool_calls": [{"function": "query_inventory"}]}}, "function"),
        ],
        ids=["message", "function"],
    )
    async def test_wrongly_shaped_nested_objects_are_malformed(
        self, recording_handler, body, field
    ):
        """Test nested values that are not objects raise a gateway error."""
        handler = recording_handler(httpx.Response(200, json=body))

        with pytest.raises(MalformedResponseError, match=f"field '{field}' is not an object"):
            await make_provider(handler).chat(MESSAGES)

    @pytest.mark.asyncio
    async def test_connection_refused_message(self):
        """Test the "is Ollama running" hint on connection failure."""
        with pytest.raises(LLMTransportError) as exc_info:
            await make_provider(refuse).chat(MESSAGES)

        assert str(exc_info.value) == (
            "Cannot connect to Ollama at http://localhost:11434. Is Ollama running?"
        )

    @pytest.mark.asyncio
    async def test_error_body(self, recording_handler):
        """Test Ollama's top-level error string is surfaced."""
        handler = recording_handler(
            httpx.Response(404, json={"error": "model 'mistral' not found, try pulling it first"})
        )

        with pytest.raises(LLMProviderError) as exc_info:
            await make_provider(handler).chat(MESSAGES, ChatOptions(model="mistral"))

        assert exc_info.value.status_code == 404
        assert "model 'mistral' not found" in str(exc_info.value)
        assert str(exc_info.value).startswith("Ollama API error: 404 - ")


class TestOllamaStreaming:
    """Tests for chat_stream."""

    @pytest.mark.asyncio
    async def test_streams_ndjson(self, recording_handler, chunked_stream):
        """Test NDJSON lines split across reads."""
        handler = recording_handler(
            httpx.Response(
                200,
                stream=chunked_stream(
                    b'{"message":{"content":"Milk"},"done":false}\n{"message":{"con',
                    b'tent":" and eggs"},"done":false}\n',
                    b'{"done":true,"prompt_eval_count":3,"eval_count":2}\n',
                ),
            )
        )

        chunks = [chunk async for chunk in make_provider(handler).chat_stream(MESSAGES)]

        assert [c.content for c in chunks if not c.done] == ["Milk", " and eggs"]
        assert chunks[-1].usage == TokenUsage(input_tokens=3, output_tokens=2)
        assert handler.last_json["stream"] is True


class TestOllamaModels:
    """Tests for availability, listing and pulling models."""

    @pytest.mark.asyncio
    async def test_is_available(self, recording_handler):
        handler = recording_handler(httpx.Response(200, json={"models": []}))

        assert await make_provider(handler).is_available() is True
        assert handler.last_request.url.path == "/api/tags"

    @pytest.mark.asyncio
    async def test_not_running_is_unavailable(self):
        assert await make_provider(refuse).is_available() is False

    @pytest.mark.asyncio
    async def test_list_models(self, recording_handler):
        handler = recording_handler(
            httpx.Response(
                200,
                json={"models": [{"name": "llama3.2:latest"}, {"name": "mistral:7b"}, {"size": 1}]},
            )
        )

        assert await make_provider(handler).list_models() == ["llama3.2:latest", "mistral:7b"]

    @pytest.mark.asyncio
    async def test_list_models_failure_is_empty(self, recording_handler):
        """Test failures yield an empty list."""
        assert await make_provider(refuse).list_models() == []

        handler = recording_handler(httpx.Response(500, text="boom"))
        assert await make_provider(handler).list_models() == []

    @pytest.mark.asyncio
    async def test_pull_model(self, recording_handler):
        """Test the pull request body and success."""
        handler = recording_handler(httpx.Response(200, json={"status": "success"}))

        assert await make_provider(handler).pull_model("llama3.2") is True
        assert handler.last_request.url.path == "/api/pull"
        assert handler.last_json == {"name": "llama3.2", "stream": False}

    @pytest.mark.asyncio
    async def test_pull_model_failure(self, recording_handler):
        handler = recording_handler(httpx.Response(500, json={"error": "pull failed"}))

        assert await make_provider(handler).pull_model("nope") is False
        assert await make_provider(refuse).pull_model("nope") is False
