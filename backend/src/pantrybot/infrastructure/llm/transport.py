"""HTTP plumbing shared by the backend adapters.

Each adapter owns one ``BackendHttpClient`` (composition, not inheritance).
The client enforces request deadlines, turns httpx failures into the gateway
error hierarchy and extracts the backend's own error message from non-2xx
responses.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from pantrybot.shared.exceptions import (
    LLMProviderError,
    LLMTimeoutError,
    LLMTransportError,
    MalformedResponseError,
)
from pantrybot.shared.logging import get_logger

logger = get_logger(__name__)

# (parsed JSON body or None, raw body text) -> backend error message
ErrorMessageExtractor = Callable[[Any, str], str | None]


def nested_error_message(body: Any, _text: str) -> str | None:
    """``{"error": {"message": ...}}`` as used by OpenAI and Anthropic."""
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if isinstance(message, str) and message:
            return message
    return None


def as_dict(value: Any) -> dict[str, Any]:
    """Read anything that is not a JSON object as an empty one."""
    return value if isinstance(value, dict) else {}


def decode_tool_arguments(
    raw: Any,
    *,
    provider: str,
    tool_name: str | None = None,
) -> dict[str, Any]:
    """Decode tool-call arguments that may arrive as an object or a JSON string.

    Undecodable input yields ``{}`` and a warning.
    """
    if isinstance(raw, dict):
        return raw
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            return decoded

    logger.warning(
        "tool_arguments_undecodable",
        provider=provider,
        tool=tool_name,
        arguments=str(raw)[:200],
    )
    return {}


class BackendHttpClient:
    """Async HTTP access to one LLM backend."""

    def __init__(
        self,
        *,
        provider: str,
        display_name: str,
        base_url: str,
        headers: dict[str, str],
        timeout: float,
        stream_idle_timeout: float,
        extract_error_message: ErrorMessageExtractor,
        connect_error_message: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider = provider
        self.display_name = display_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.stream_idle_timeout = stream_idle_timeout
        self._headers = headers
        self._extract_error_message = extract_error_message
        self._connect_error_message = connect_error_message
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout * 1000)

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._headers,
                # Reads are bounded by asyncio deadlines (request timeout / stream idle timeout)
                timeout=httpx.Timeout(self.timeout, read=None),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON object response."""
        client = await self._get_client()
        try:
            async with asyncio.timeout(self.timeout):
                response = await client.post(self.url(path), json=payload)
                if response.is_error:
                    self._raise_for_status(response)
                body = response.json()
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise LLMTimeoutError(self.display_name, self.timeout_ms) from exc
        except httpx.TransportError as exc:
            raise self._transport_error(exc) from exc
        except ValueError as exc:
            raise MalformedResponseError(
                f"{self.display_name} returned a body that is not JSON",
                details={"provider": self.provider},
            ) from exc

        if not isinstance(body, dict):
            raise MalformedResponseError(
                f"{self.display_name} returned an unexpected response shape",
                details={"provider": self.provider},
            )
        return body

    def object_field(self, container: dict[str, Any], key: str) -> dict[str, Any]:
        """Nested object of a response body; missing or null reads as empty.

        Raises:
            MalformedResponseError: If the value is present but not an object
        """
        value = container.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise MalformedResponseError(
                f"{self.display_name} response field '{key}' is not an object",
                details={"provider": self.provider, "field": key},
            )
        return value

    async def request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request under the deadline without checking its status."""
        client = await self._get_client()
        try:
            async with asyncio.timeout(self.timeout):
                response = await client.request(method, self.url(path), json=payload)
                await response.aread()
                return response
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise LLMTimeoutError(self.display_name, self.timeout_ms) from exc
        except httpx.TransportError as exc:
            raise self._transport_error(exc) from exc

    async def probe(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """Return True if the backend answers with 2xx. Never raises."""
        try:
            response = await self.request(method, path, payload)
        except Exception as exc:
            logger.debug("llm_probe_failed", provider=self.provider, error=str(exc))
            return False
        return response.is_success

    @asynccontextmanager
    async def stream_post(
        self,
        path: str,
        payload: dict[str, Any],
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming POST; the response is closed when the block exits."""
        client = await self._get_client()
        request = client.build_request("POST", self.url(path), json=payload)
        try:
            async with asyncio.timeout(self.timeout):
                response = await client.send(request, stream=True)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise LLMTimeoutError(self.display_name, self.timeout_ms) from exc
        except httpx.TransportError as exc:
            raise self._transport_error(exc) from exc

        try:
            if response.is_error:
                await response.aread()
                self._raise_for_status(response)
            yield response
        finally:
            await response.aclose()

    async def iter_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield raw body chunks, failing if the backend goes quiet for too long."""
        chunks = response.aiter_bytes().__aiter__()
        while True:
            try:
                async with asyncio.timeout(self.stream_idle_timeout):
                    chunk = await anext(chunks)
            except StopAsyncIteration:
                return
            except (TimeoutError, httpx.TimeoutException) as exc:
                raise LLMTimeoutError(
                    self.display_name,
                    int(self.stream_idle_timeout * 1000),
                    streaming=True,
                ) from exc
            except httpx.TransportError as exc:
                raise self._transport_error(exc) from exc
            yield chunk

    def _raise_for_status(self, response: httpx.Response) -> None:
        text = response.text
        try:
            body: Any = response.json()
        except ValueError:
            body = None
        message = self._extract_error_message(body, text)
        logger.error(
            "llm_api_error",
            provider=self.provider,
            status=response.status_code,
            error=message,
        )
        raise LLMProviderError(self.display_name, response.status_code, message)

    def _transport_error(self, exc: httpx.TransportError) -> LLMTransportError:
        logger.error("llm_transport_error", provider=self.provider, error=str(exc))
        if self._connect_error_message and isinstance(exc, httpx.ConnectError):
            return LLMTransportError(
                self._connect_error_message,
                details={"provider": self.provider, "base_url": self.base_url},
            )
        return LLMTransportError(
            f"{self.display_name} request failed: {exc}",
            details={"provider": self.provider},
        )
