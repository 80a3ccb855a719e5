"""Provider-agnostic LLM gateway.

This module provides:
- Chat Contract: value objects and the ``LLMProvider`` protocol
- Adapters: OpenAI, Anthropic and Ollama
- Provider selection: ``create_provider`` and the single-slot ``ProviderCache``
"""

from pantrybot.infrastructure.llm.factory import (
    LLMConfig,
    ProviderCache,
    ProviderInfo,
    create_provider,
    create_specific_provider,
    get_provider_cache,
    get_provider_info,
    is_llm_configured,
)
from pantrybot.infrastructure.llm.providers import (
    AnthropicProvider,
    OllamaProvider,
    OpenAIProvider,
)
from pantrybot.infrastructure.llm.types import (
    ChatChunk,
    ChatMessage,
    ChatOptions,
    ChatResponse,
    LLMProvider,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)

__all__ = [
    # Chat contract
    "ChatChunk",
    "ChatMessage",
    "ChatOptions",
    "ChatResponse",
    "LLMProvider",
    "TokenUsage",
    "ToolCall",
    "ToolDefinition",
    # Adapters
    "AnthropicProvider",
    "OllamaProvider",
    "OpenAIProvider",
    # Selection
    "LLMConfig",
    "ProviderCache",
    "ProviderInfo",
    "create_provider",
    "create_specific_provider",
    "get_provider_cache",
    "get_provider_info",
    "is_llm_configured",
]
