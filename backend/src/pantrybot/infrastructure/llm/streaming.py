"""Incremental decoders for the three streaming wire formats.

All decoders consume an async iterable of raw byte chunks as they come off the
socket. Read boundaries never line up with frame boundaries, so bytes are
buffered until a full line is available. Lines that do not parse as the
expected frame are dropped; they never abort the stream. Each decoder yields
exactly one ``done`` chunk and then stops.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from pantrybot.infrastructure.llm.transport import as_dict
from pantrybot.infrastructure.llm.types import ChatChunk, TokenUsage
from pantrybot.shared.logging import get_logger

logger = get_logger(__name__)

SSE_DATA_PREFIX = "data: "
OPENAI_DONE_SENTINEL = "[DONE]"


async def iter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Reassemble newline-terminated lines from arbitrarily split byte chunks.

    Multi-byte UTF-8 sequences split across reads are decoded correctly. A
    trailing line without a newline is emitted when the input ends.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        buffer += decoder.decode(chunk)
        *lines, buffer = buffer.split("\n")
        for line in lines:
            yield line.rstrip("\r")
    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer.rstrip("\r")


def _load_frame(payload: str, provider: str) -> dict[str, Any] | None:
    try:
        frame = json.loads(payload)
    except ValueError:
        logger.debug("stream_frame_discarded", provider=provider, frame=payload[:200])
        return None
    if not isinstance(frame, dict):
        logger.debug("stream_frame_discarded", provider=provider, frame=payload[:200])
        return None
    return frame


async def decode_openai_sse(chunks: AsyncIterable[bytes]) -> AsyncIterator[ChatChunk]:
    """OpenAI chat-completions SSE: ``data: {...}`` lines closed by ``data: [DONE]``."""
    usage: TokenUsage | None = None
    async for line in iter_lines(chunks):
        if not line.startswith(SSE_DATA_PREFIX):
            continue
        payload = line[len(SSE_DATA_PREFIX):].strip()
        if payload == OPENAI_DONE_SENTINEL:
            yield ChatChunk(content="", done=True, usage=usage)
            return

        frame = _load_frame(payload, "openai")
        if frame is None:
            continue

        # Only present when the request asked for stream usage
        if isinstance(frame.get("usage"), dict):
            usage = TokenUsage.from_counts(
                frame["usage"].get("prompt_tokens"),
                frame["usage"].get("completion_tokens"),
            )

        choices = frame.get("choices")
        if not isinstance(choices, list) or not choices:
            continue
        delta = as_dict(as_dict(choices[0]).get("delta")).get("content")
        if isinstance(delta, str) and delta:
            yield ChatChunk(content=delta)

    yield ChatChunk(content="", done=True, usage=usage)


async def decode_anthropic_sse(chunks: AsyncIterable[bytes]) -> AsyncIterator[ChatChunk]:
    """Anthropic messages SSE: typed envelopes, text in ``content_block_delta``,
    terminated by a ``message_stop`` event.
    """
    input_tokens: int | None = None
    output_tokens: int | None = None
    async for line in iter_lines(chunks):
        # "event:" lines repeat the type that is also inside the data envelope
        if not line.startswith(SSE_DATA_PREFIX):
            continue

        frame = _load_frame(line[len(SSE_DATA_PREFIX):], "anthropic")
        if frame is None:
            continue

        event_type = frame.get("type")
        if event_type == "content_block_delta":
            text = as_dict(frame.get("delta")).get("text")
            if isinstance(text, str) and text:
                yield ChatChunk(content=text)
        elif event_type == "message_start":
            usage = as_dict(as_dict(frame.get("message")).get("usage"))
            input_tokens = usage.get("input_tokens", input_tokens)
            output_tokens = usage.get("output_tokens", output_tokens)
        elif event_type == "message_delta":
            usage = as_dict(frame.get("usage"))
            output_tokens = usage.get("output_tokens", output_tokens)
        elif event_type == "message_stop":
            yield ChatChunk(
                content="",
                done=True,
                usage=_usage_or_none(input_tokens, output_tokens),
            )
            return

    yield ChatChunk(content="", done=True, usage=_usage_or_none(input_tokens, output_tokens))


async def decode_ollama_ndjson(chunks: AsyncIterable[bytes]) -> AsyncIterator[ChatChunk]:
    """Ollama ``/api/chat`` stream: one JSON object per line, last one has ``done: true``."""
    async for line in iter_lines(chunks):
        if not line.strip():
            continue

        frame = _load_frame(line, "ollama")
        if frame is None:
            continue

        if frame.get("done") is True:
            yield ChatChunk(
                content="",
                done=True,
                usage=TokenUsage.from_counts(
                    frame.get("prompt_eval_count"),
                    frame.get("eval_count"),
                ),
            )
            return

        content = as_dict(frame.get("message")).get("content")
        if isinstance(content, str) and content:
            yield ChatChunk(content=content)

    yield ChatChunk(content="", done=True)


def _usage_or_none(input_tokens: Any, output_tokens: Any) -> TokenUsage | None:
    if input_tokens is None and output_tokens is None:
        return None
    return TokenUsage.from_counts(input_tokens, output_tokens)
