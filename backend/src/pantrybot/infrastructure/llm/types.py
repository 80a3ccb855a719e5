"""Provider-agnostic chat types.

Every backend adapter accepts and returns these value objects only; wire
formats never leak past the adapter.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

Role = Literal["system", "user", "assistant"]

DEFAULT_TEMPERATURE = 0.3


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A single message in a conversation."""

    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A function the model may call, described by a JSON schema."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ChatOptions:
    """Per-call request options.

    ``tool_choice`` is ``"auto"``, ``"none"`` or the name of one tool.
    """

    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int | None = None
    tools: tuple[ToolDefinition, ...] = ()
    tool_choice: str | None = None


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Normalized token usage; the total is always derived from its parts."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @classmethod
    def from_counts(cls, input_tokens: Any, output_tokens: Any) -> TokenUsage:
        """Build usage from raw backend counters, treating missing values as 0."""
        return cls(
            input_tokens=_as_count(input_tokens),
            output_tokens=_as_count(output_tokens),
        )


@dataclass(frozen=True, slots=True)
class ChatResponse:
    """Normalized completion.

    ``tool_calls`` is ``None`` (never an empty tuple) when the model called no tools.
    """

    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    tool_calls: tuple[ToolCall, ...] | None = None
    finish_reason: str | None = None


@dataclass(frozen=True, slots=True)
class ChatChunk:
    """One element of a streamed response."""

    content: str
    done: bool = False
    usage: TokenUsage | None = None


@runtime_checkable
class LLMProvider(Protocol):
    """Contract every backend adapter implements."""

    name: str

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Perform one request/response round trip."""
        ...

    def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions | None = None,
    ) -> AsyncIterator[ChatChunk]:
        """Stream a response; the sequence ends with exactly one ``done`` chunk."""
        ...

    async def is_available(self) -> bool:
        """Cheap liveness/credential probe. Never raises."""
        ...

    def get_default_model(self) -> str: ...

    async def aclose(self) -> None:
        """Release pooled HTTP connections."""
        ...


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, int(value))
