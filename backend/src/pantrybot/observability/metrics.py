"""Prometheus metrics for the LLM gateway and intent extraction."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

from pantrybot.shared.exceptions import LLMProviderError, LLMTimeoutError, LLMTransportError

if TYPE_CHECKING:
    from pantrybot.infrastructure.llm.types import TokenUsage

LLM_REQUEST_COUNT = Counter(
    "pantrybot_llm_requests_total",
    "Total LLM chat requests",
    ["provider", "outcome"],
)
LLM_REQUEST_LATENCY = Histogram(
    "pantrybot_llm_request_duration_seconds",
    "LLM chat request duration in seconds",
    ["provider"],
    buckets=(0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)
LLM_TOKENS = Counter(
    "pantrybot_llm_tokens_total",
    "Tokens consumed by LLM chat requests",
    ["provider", "direction"],
)
INTENT_COUNT = Counter(
    "pantrybot_llm_intents_total",
    "Inventory intents extracted from user messages",
    ["action"],
)


@dataclass
class LLMRequestObservation:
    """Filled in by the caller while a tracked request is in flight."""

    usage: TokenUsage | None = None


def observe_llm_request(
    provider: str,
    outcome: str,
    duration_seconds: float,
    usage: TokenUsage | None = None,
) -> None:
    """Record one finished chat round trip."""
    LLM_REQUEST_COUNT.labels(provider=provider, outcome=outcome).inc()
    LLM_REQUEST_LATENCY.labels(provider=provider).observe(duration_seconds)
    if usage is not None:
        LLM_TOKENS.labels(provider=provider, direction="input").inc(usage.input_tokens)
        LLM_TOKENS.labels(provider=provider, direction="output").inc(usage.output_tokens)


@contextmanager
def track_llm_request(provider: str) -> Iterator[LLMRequestObservation]:
    """Time a chat call and label it with the way it ended."""
    observation = LLMRequestObservation()
    outcome = "success"
    start = time.perf_counter()
    try:
        yield observation
    except LLMTimeoutError:
        outcome = "timeout"
        raise
    except LLMProviderError:
        outcome = "provider_error"
        raise
    except LLMTransportError:
        outcome = "transport_error"
        raise
    except Exception:
        outcome = "error"
        raise
    finally:
        observe_llm_request(
            provider,
            outcome,
            time.perf_counter() - start,
            observation.usage,
        )


def record_intent(action: str) -> None:
    INTENT_COUNT.labels(action=action).inc()
