"""Ollama adapter for self-hosted models.

Privacy-first option: prompts and inventory data never leave the local
network. Ollama speaks its own ``/api/chat`` protocol (NDJSON streaming,
``prompt_eval_count``/``eval_count`` usage) rather than the OpenAI one.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from pantrybot.config import DEFAULT_OLLAMA_BASE_URL
from pantrybot.infrastructure.llm.streaming import decode_ollama_ndjson
from pantrybot.infrastructure.llm.transport import BackendHttpClient, decode_tool_arguments
from pantrybot.infrastructure.llm.types import (
    ChatChunk,
    ChatMessage,
    ChatOptions,
    ChatResponse,
    TokenUsage,
    ToolCall,
)
from pantrybot.observability.metrics import track_llm_request
from pantrybot.shared.exceptions import LLMError
from pantrybot.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "llama3.2"
DEFAULT_TIMEOUT = 60.0


def _ollama_error_message(body: Any, text: str) -> str | None:
    """Ollama reports ``{"error": "..."}``; proxies in front of it may send plain text."""
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return text.strip() or None


class OllamaProvider:
    """Chat adapter for an Ollama server."""

    name = "ollama"
    display_name = "Ollama"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        default_model: str | None = None,
        timeout: float | None = None,
        stream_idle_timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Ollama adapter.

        Args:
            base_url: Ollama server URL
            api_key: Bearer token for authenticated reverse proxies
            default_model: Model used when a call does not name one
            timeout: Request timeout in seconds
            stream_idle_timeout: Maximum silence between streamed chunks
            transport: Optional httpx transport (tests)
        """
        self.base_url = (base_url or DEFAULT_OLLAMA_BASE_URL).rstrip("/")
        self.default_model = default_model or DEFAULT_MODEL
        self.timeout = timeout or DEFAULT_TIMEOUT

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._http = BackendHttpClient(
            provider=self.name,
            display_name=self.display_name,
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            stream_idle_timeout=stream_idle_timeout,
            extract_error_message=_ollama_error_message,
            connect_error_message=(
                f"Cannot connect to Ollama at {self.base_url}. Is Ollama running?"
            ),
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
        """Translate messages and options into an ``/api/chat`` body."""
        model_options: dict[str, Any] = {"temperature": options.temperature}
        if options.max_tokens:
            model_options["num_predict"] = options.max_tokens

        body: dict[str, Any] = {
            "model": options.model or self.default_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": stream,
            "options": model_options,
        }

        # Ollama has no tool_choice; "none" is expressed by not offering tools
        if not stream and options.tools and options.tool_choice != "none":
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
        return body

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Send a non-streaming ``/api/chat`` request.

        Raises:
            LLMProviderError: Non-2xx response
            LLMTimeoutError: No response within ``timeout``
            LLMTransportError: Ollama not reachable
            MalformedResponseError: 2xx body with an unexpected shape
        """
        body = self.build_request(messages, options or ChatOptions())
        with track_llm_request(self.name) as observation:
            data = await self._http.post_json("/api/chat", body)
            response = self.parse_response(data)
            observation.usage = response.usage
        return response

    def parse_response(self, data: dict[str, Any]) -> ChatResponse:
        message = self._http.object_field(data, "message")
        content = message.get("content")

        return ChatResponse(
            content=content if isinstance(content, str) else "",
            tool_calls=self._parse_tool_calls(message.get("tool_calls")),
            usage=TokenUsage.from_counts(
                data.get("prompt_eval_count"),
                data.get("eval_count"),
            ),
            finish_reason=data.get("done_reason") or "stop",
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
                    # Ollama does not assign call ids
                    id=raw.get("id") or f"call_{index}",
                    name=name,
                    # Usually an object, but some models emit a JSON string
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
        """Stream an ``/api/chat`` response as ``ChatChunk`` items.

        Closing the generator releases the underlying HTTP response.
        """
        body = self.build_request(messages, options or ChatOptions(), stream=True)
        async with (
            self._http.stream_post("/api/chat", body) as response,
            aclosing(decode_ollama_ndjson(self._http.iter_body(response))) as chunks,
        ):
            async for chunk in chunks:
                yield chunk

    async def is_available(self) -> bool:
        """``/api/tags`` is a cheap local listing call."""
        return await self._http.probe("GET", "/api/tags")

    async def list_models(self) -> list[str]:
        """Names of the models installed on the server; empty on any failure."""
        try:
            response = await self._http.request("GET", "/api/tags")
            if not response.is_success:
                return []
            data = response.json()
        except (LLMError, ValueError) as exc:
            logger.warning("ollama_list_models_failed", error=str(exc))
            return []

        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return []
        return [m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)]

    async def pull_model(self, model_name: str) -> bool:
        """Ask the server to download a model; False if it fails or outlasts the request timeout."""
        try:
            response = await self._http.request(
                "POST",
                "/api/pull",
                {"name": model_name, "stream": False},
            )
        except LLMError as exc:
            logger.warning("ollama_pull_failed", model=model_name, error=str(exc))
            return False
        return response.is_success
