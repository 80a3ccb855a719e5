"""OpenAI chat-completions adapter.

Works against api.openai.com and any OpenAI-compatible endpoint (Azure,
vLLM, Together, ...) via ``base_url``.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from pantrybot.config import DEFAULT_OPENAI_BASE_URL
from pantrybot.infrastructure.llm.streaming import decode_openai_sse
from pantrybot.infrastructure.llm.transport import (
    BackendHttpClient,
    decode_tool_arguments,
    nested_error_message,
)
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

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT = 30.0


class OpenAIProvider:
    """Chat adapter for the OpenAI ``/chat/completions`` API."""

    name = "openai"
    display_name = "OpenAI"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        default_model: str | None = None,
        timeout: float | None = None,
        stream_idle_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the OpenAI adapter.

        Args:
            api_key: OpenAI API key (required)
            base_url: API base URL, including the ``/v1`` prefix
            default_model: Model used when a call does not name one
            timeout: Request timeout in seconds
            stream_idle_timeout: Maximum silence between streamed chunks
            transport: Optional httpx transport (tests)

        Raises:
            LLMConfigurationError: If no API key is given
        """
        if not api_key:
            raise LLMConfigurationError("OpenAI API key is required")

        self.base_url = (base_url or DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self.default_model = default_model or DEFAULT_MODEL
        self.timeout = timeout or DEFAULT_TIMEOUT
        self._http = BackendHttpClient(
            provider=self.name,
            display_name=self.display_name,
            base_url=self.base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
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
        """Translate messages and options into a chat-completions body."""
        body: dict[str, Any] = {
            "model": options.model or self.default_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": options.temperature,
        }
        if options.max_tokens:
            body["max_tokens"] = options.max_tokens

        if stream:
            # Streaming is text-only; tool deltas are not decoded
            body["stream"] = True
            # Usage arrives in a final chunk with empty choices
            body["stream_options"] = {"include_usage": True}
            return body

        if options.tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in options.tools
            ]
            if options.tool_choice in ("auto", "none"):
                body["tool_choice"] = options.tool_choice
            elif options.tool_choice:
                body["tool_choice"] = {
                    "type": "function",
                    "function": {"name": options.tool_choice},
                }
        return body

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Send a chat completion request.

        Raises:
            LLMProviderError: Non-2xx response
            LLMTimeoutError: No response within ``timeout``
            LLMTransportError: Connection failure
            MalformedResponseError: 2xx body with an unexpected shape
        """
        body = self.build_request(messages, options or ChatOptions())
        with track_llm_request(self.name) as observation:
            data = await self._http.post_json("/chat/completions", body)
            response = self.parse_response(data)
            observation.usage = response.usage
        return response

    def parse_response(self, data: dict[str, Any]) -> ChatResponse:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise MalformedResponseError(
                "OpenAI response has no choices",
                details={"provider": self.name},
            )
        choice = choices[0]
        message = self._http.object_field(choice, "message")
        usage = self._http.object_field(data, "usage")
        content = message.get("content")

        return ChatResponse(
            # null when the model only called tools
            content=content if isinstance(content, str) else "",
            tool_calls=self._parse_tool_calls(message.get("tool_calls")),
            usage=TokenUsage.from_counts(
                usage.get("prompt_tokens"),
                usage.get("completion_tokens"),
            ),
            finish_reason=choice.get("finish_reason"),
        )

    def _parse_tool_calls(self, raw_calls: Any) -> tuple[ToolCall, ...] | None:
        if not isinstance(raw_calls, list) or not raw_calls:
            return None

        calls = []
        for index, raw in enumerate(raw_calls):
            if not isinstance(raw, dict):
                continue
            function = self._http.object_field(raw, "function")
            name = function.get("name") or ""
            calls.append(
                ToolCall(
                    id=raw.get("id") or f"call_{index}",
                    name=name,
                    # OpenAI always sends arguments as a JSON-encoded string
                    arguments=decode_tool_arguments(
                        function.get("arguments"),
                        provider=self.name,
                        tool_name=name,
                    ),
                )
            )
        return tuple(calls) or None

    async def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> AsyncIterator[ChatChunk]:
        """Stream a chat completion as ``ChatChunk`` items.

        Closing the generator releases the underlying HTTP response.
        """
        body = self.build_request(messages, options or ChatOptions(), stream=True)
        async with (
            self._http.stream_post("/chat/completions", body) as response,
            aclosing(decode_openai_sse(self._http.iter_body(response))) as chunks,
        ):
            async for chunk in chunks:
                yield chunk

    async def is_available(self) -> bool:
        """Listing models is free and validates the key."""
        return await self._http.probe("GET", "/models")
