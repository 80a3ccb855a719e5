"""Protocol adapters, one per LLM backend."""

from pantrybot.infrastructure.llm.providers.anthropic import AnthropicProvider
from pantrybot.infrastructure.llm.providers.ollama import OllamaProvider
from pantrybot.infrastructure.llm.providers.openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "OllamaProvider",
    "OpenAIProvider",
]
