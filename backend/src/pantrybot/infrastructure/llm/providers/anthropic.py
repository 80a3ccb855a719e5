"""Anthropic Messages API adapter.

This module handles the Claude-specific request shape: the system prompt is a
top-level field, tools use ``input_schema`` and the response is a list of
typed content blocks.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from pantrybot.config import DEFAULT_ANTHROPIC_BASE_URL
from pantrybot.infrastructure.llm.streaming import decode_anthropic_sse
from pantrybot.infrastructure.llm.transport import BackendHttpClient, nested_error_message
from pantrybot.infrastructure.llm.types import (
    ChatChunk,
    ChatMessage,
    ChatOptions,
    ChatResponse,
    TokenUsage,
    ToolCall,
)
from pantrybot.observability.metrics import track_llm_request
from pantrybot.shared.exceptions import LLMConfigurationError, MalformedResponseError

DEFAULT_MODEL = "claude-3-haiku-20240307"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_TOKENS = 4096
API_VERSION = "2023-06-01"


class AnthropicProvider:
    """Chat adapter for the Anthropic ``/v1/messages`` API."""

    name = "anthropic"
    display_name = "Anthropic"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        default_model: str | None = None,
        timeout: float | None = None,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
        stream_idle_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Anthropic adapter.

        Args:
            api_key: Anthropic API key (required)
            base_url: API base URL without the ``/v1`` prefix
            default_model: Model used when a call does not name one
            timeout: Request timeout in seconds
            default_max_tokens: ``max_tokens`` sent when a call does not set one
                (the API requires the field)
            stream_idle_timeout: Maximum silence between streamed chunks
            transport: Optional httpx transport (tests)

        Raises:
            LLMConfigurationError: If no API key is given
        """
        if not api_key:
            raise LLMConfigurationError("Anthropic API key is required")

        self.base_url = (base_url or DEFAULT_ANTHROPIC_BASE_URL).rstrip("/")
        self.default_model = default_model or DEFAULT_MODEL
        self.default_max_tokens = default_max_tokens
        self.timeout = timeout or DEFAULT_TIMEOUT
        self._http = BackendHttpClient(
            provider=self.name,
            display_name=self.display_name,
            base_url=self.base_url,
            headers={
                "Content-Type": "application/json",
                "x-api-key": api_key,
                "anthropic-version": API_VERSION,
            },
            timeout=self.timeout,
            stream_idle_timeout=stream_idle_timeout,
            extract_error_message=nested_error_message,
            transport=transport,
        )

    def get_default_model(self) -> str:
        return self.default_model

    async def aclose(self) -> None:
        await self._http.aclose()

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Translate messages and options into a Messages API body."""
        system_message = next((m for m in messages if m.role == "system"), None)
        body: dict[str, Any] = {
            "model": options.model or self.default_model,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role != "system"
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens or self.default_max_tokens,
        }
        if system_message is not None:
            body["system"] = system_message.content

        if stream:
            body["stream"] = True
            return body

        # The API has no "none" tool choice: leaving the tools out has the same effect
        if options.tools and options.tool_choice != "none":
            body["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.parameters,
                }
                for tool in options.tools
            ]
            if options.tool_choice == "auto":
                body["tool_choice"] = {"type": "auto"}
            elif options.tool_choice:
                body["tool_choice"] = {"type": "tool", "name": options.tool_choice}
        return body

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Send a Messages API request.

        Raises:
            LLMProviderError: Non-2xx response
            LLMTimeoutError: No response within ``timeout``
            LLMTransportError: Connection failure
            MalformedResponseError: 2xx body with an unexpected shape
        """
        body = self.build_request(messages, options or ChatOptions())
        with track_llm_request(self.name) as observation:
            data = await self._http.post_json("/v1/messages", body)
            response = self.parse_response(data)
            observation.usage = response.usage
        return response

    def parse_response(self, data: dict[str, Any]) -> ChatResponse:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise MalformedResponseError(
                "Anthropic response has no content blocks",
                details={"provider": self.name},
            )

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in blocks:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    text_parts.append(text)
            elif block.get("type") == "tool_use":
                arguments = block.get("input")
                tool_calls.append(
                    ToolCall(
                        id=block.get("id") or f"call_{len(tool_calls)}",
                        name=block.get("name") or "",
                        # Already a decoded object on this API
                        arguments=arguments if isinstance(arguments, dict) else {},
                    )
                )

        usage = self._http.object_field(data, "usage")
        return ChatResponse(
            content="".join(text_parts),
            tool_calls=tuple(tool_calls) or None,
            usage=TokenUsage.from_counts(
                usage.get("input_tokens"),
                usage.get("output_tokens"),
            ),
            finish_reason=data.get("stop_reason"),
        )

    async def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> AsyncIterator[ChatChunk]:
        """Stream a Messages API response as ``ChatChunk`` items.

        Closing the generator releases the underlying HTTP response.
        """
        body = self.build_request(messages, options or ChatOptions(), stream=True)
        async with (
            self._http.stream_post("/v1/messages", body) as response,
            aclosing(decode_anthropic_sse(self._http.iter_body(response))) as chunks,
        ):
            async for chunk in chunks:
                yield chunk

    async def is_available(self) -> bool:
        """There is no free endpoint that checks the key, so this spends one output token."""
        return await self._http.probe(
            "POST",
            "/v1/messages",
            {
                "model": self.default_model,
                "messages": [{"role": "user", "content": "hi"}],
                "max_tokens": 1,
            },
        )
