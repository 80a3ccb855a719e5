"""
Pytest configuration and fixtures for Pantrybot LLM tests.
"""
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from pantrybot.config import Settings, get_settings
from pantrybot.infrastructure.llm.factory import get_provider_cache


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's .env and LLM credentials."""
    values: dict[str, Any] = {
        "llm_provider": None,
        "ollama_base_url": "",
        "anthropic_api_key": "",
        "openai_api_key": "",
        "ollama_api_key": "",
        "app_env": "development",
        "app_debug": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build isolated settings with overrides."""
    return make_settings


@pytest.fixture
def empty_settings() -> Settings:
    """Settings with no backend configured."""
    return make_settings()


@pytest.fixture(autouse=True)
def _clear_singletons() -> None:
    """Every test starts with fresh cached settings and provider cache."""
    get_settings.cache_clear()
    get_provider_cache.cache_clear()


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.last_request.content)


@pytest.fixture
def recording_handler() -> Callable[..., RecordingHandler]:
    return RecordingHandler


class ChunkedByteStream(httpx.AsyncByteStream):
    """A response body delivered in exactly the given read chunks."""

    def __init__(self, *chunks: bytes) -> None:
        self._chunks = chunks

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            yield chunk


@pytest.fixture
def chunked_stream() -> Callable[..., ChunkedByteStream]:
    return ChunkedByteStream
