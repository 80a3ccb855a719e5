"""LLM provider factory - picks the backend from configuration.

Priority order (first match wins):
1. Explicit provider name (``LLMConfig.provider`` or ``LLM_PROVIDER``)
2. Ollama, if ``OLLAMA_BASE_URL`` is set
3. Anthropic, if ``ANTHROPIC_API_KEY`` is set
4. OpenAI, if ``OPENAI_API_KEY`` is set

Usage:
    # In .env:
    OLLAMA_BASE_URL=http://localhost:11434
    # or
    ANTHROPIC_API_KEY=sk-ant-...

    # In code:
    cache = get_provider_cache()
    response = await cache.get().chat([ChatMessage(role="user", content="Hi")])
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pantrybot.config import DEFAULT_OLLAMA_BASE_URL, Settings, get_settings
from pantrybot.infrastructure.llm.providers.anthropic import AnthropicProvider
from pantrybot.infrastructure.llm.providers.ollama import OllamaProvider
from pantrybot.infrastructure.llm.providers.openai import OpenAIProvider
from pantrybot.infrastructure.llm.types import LLMProvider
from pantrybot.shared.exceptions import LLMConfigurationError
from pantrybot.shared.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "ollama")
AUTO = "auto"


@dataclass(frozen=True)
class LLMConfig:
    """Per-resolution overrides; empty fields fall back to settings."""

    provider: str | None = None
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    timeout: float | None = None


@dataclass(frozen=True)
class ProviderInfo:
    """Which backend would be selected, and why."""

    provider: str | None
    source: Literal["explicit", "auto-detected", "none"]
    base_url: str | None = None


def _explicit_provider_name(config: LLMConfig, settings: Settings) -> str | None:
    name = (config.provider or settings.llm_provider or "").strip().lower()
    if not name or name == AUTO:
        return None
    return name


def create_specific_provider(
    provider_name: str,
    config: LLMConfig | None = None,
    settings: Settings | None = None,
) -> LLMProvider:
    """Create a provider by name. No fallback to other backends.

    Raises:
        LLMConfigurationError: Unknown name or missing credential
    """
    config = config or LLMConfig()
    settings = settings or get_settings()
    name = provider_name.strip().lower()
    stream_idle_timeout = settings.llm_stream_idle_timeout_seconds

    if name == "openai":
        api_key = config.api_key or settings.openai_api_key
        if not api_key:
            raise LLMConfigurationError("OPENAI_API_KEY is required for OpenAI provider")
        return OpenAIProvider(
            api_key=api_key,
            base_url=config.base_url or settings.openai_base_url,
            default_model=config.model or settings.openai_model,
            timeout=config.timeout or settings.openai_timeout_seconds,
            stream_idle_timeout=stream_idle_timeout,
        )

    if name == "anthropic":
        api_key = config.api_key or settings.anthropic_api_key
        if not api_key:
            raise LLMConfigurationError("ANTHROPIC_API_KEY is required for Anthropic provider")
        return AnthropicProvider(
            api_key=api_key,
            base_url=config.base_url or settings.anthropic_base_url,
            default_model=config.model or settings.anthropic_model,
            timeout=config.timeout or settings.anthropic_timeout_seconds,
            default_max_tokens=settings.anthropic_max_tokens,
            stream_idle_timeout=stream_idle_timeout,
        )

    if name == "ollama":
        # No credential needed; an unset URL means the local default
        return OllamaProvider(
            base_url=config.base_url or settings.ollama_base_url or DEFAULT_OLLAMA_BASE_URL,
            api_key=config.api_key or settings.ollama_api_key or None,
            default_model=config.model or settings.ollama_model,
            timeout=config.timeout or settings.ollama_timeout_seconds,
            stream_idle_timeout=stream_idle_timeout,
        )

    raise LLMConfigurationError(
        f"Unknown LLM provider: {provider_name}",
        details={"supported": list(SUPPORTED_PROVIDERS)},
    )


def _detect_provider_name(settings: Settings) -> str | None:
    # Ollama first: local and needs no API key
    if settings.ollama_base_url:
        return "ollama"
    if settings.anthropic_api_key:
        return "anthropic"
    if settings.openai_api_key:
        return "openai"
    return None


def create_provider(
    config: LLMConfig | None = None,
    settings: Settings | None = None,
) -> LLMProvider:
    """Run the full selection chain and build a fresh provider (not cached).

    Raises:
        LLMConfigurationError: If nothing is configured, or the explicit choice is unusable
    """
    config = config or LLMConfig()
    settings = settings or get_settings()

    explicit = _explicit_provider_name(config, settings)
    if explicit is not None:
        provider = create_specific_provider(explicit, config, settings)
        logger.info("llm_provider_selected", provider=provider.name, source="explicit")
        return provider

    detected = _detect_provider_name(settings)
    if detected is None:
        raise LLMConfigurationError(
            "No LLM provider configured. Set one of: "
            "LLM_PROVIDER, OLLAMA_BASE_URL, ANTHROPIC_API_KEY, or OPENAI_API_KEY"
        )

    provider = create_specific_provider(detected, config, settings)
    logger.info("llm_provider_selected", provider=provider.name, source="auto-detected")
    return provider


def is_llm_configured(settings: Settings | None = None) -> bool:
    """Whether any backend signal is present."""
    settings = settings or get_settings()
    return bool(
        settings.openai_api_key or settings.anthropic_api_key or settings.ollama_base_url
    )


def get_provider_info(settings: Settings | None = None) -> ProviderInfo:
    """Describe the backend the selection chain would pick, without building it."""
    settings = settings or get_settings()

    explicit = _explicit_provider_name(LLMConfig(), settings)
    if explicit is not None:
        return ProviderInfo(provider=explicit, source="explicit")

    detected = _detect_provider_name(settings)
    if detected is None:
        return ProviderInfo(provider=None, source="none")
    if detected == "ollama":
        return ProviderInfo(
            provider=detected,
            source="auto-detected",
            base_url=settings.ollama_base_url,
        )
    return ProviderInfo(provider=detected, source="auto-detected")


class ProviderCache:
    """Single-slot cache for the authoritative provider.

    Only one backend is in use at a time, so this holds at most one instance.
    Configuration passed to ``get`` only matters on the call that fills the slot.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._provider: LLMProvider | None = None

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def cached(self) -> LLMProvider | None:
        return self._provider

    def get(self, config: LLMConfig | None = None) -> LLMProvider:
        if self._provider is None:
            self._provider = create_provider(config, self.settings)
        return self._provider

    def reset(self) -> None:
        """Forget the cached provider; the next ``get`` re-runs selection."""
        self._provider = None

    async def aclose(self) -> None:
        """Close the cached provider's connections and clear the slot."""
        provider, self._provider = self._provider, None
        if provider is not None:
            await provider.aclose()


@lru_cache(maxsize=1)
def get_provider_cache() -> ProviderCache:
    """Get the process-wide provider cache."""
    return ProviderCache()
