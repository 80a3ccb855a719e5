"""Custom exception hierarchy for Pantrybot."""

from typing import Any


class PantrybotError(Exception):
    """Base exception for all Pantrybot errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- LLM Gateway Errors -----


class LLMError(PantrybotError):
    """Base for every error raised by the LLM gateway."""

    pass


class LLMConfigurationError(LLMError):
    """Missing or invalid provider configuration (credentials, provider name)."""

    pass


class LLMProviderError(LLMError):
    """Backend answered with a non-success HTTP status."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        backend_message: str | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.backend_message = backend_message or "Unknown error"
        super().__init__(
            message=f"{provider} API error: {status_code} - {self.backend_message}",
            details={"provider": provider, "status_code": status_code},
        )


class LLMTimeoutError(LLMError, TimeoutError):
    """The request (or an idle stream) exceeded its deadline."""

    def __init__(self, provider: str, timeout_ms: int, *, streaming: bool = False) -> None:
        self.provider = provider
        self.timeout_ms = timeout_ms
        if streaming:
            message = f"{provider} stream idle for more than {timeout_ms}ms"
        else:
            message = f"{provider} request timed out after {timeout_ms}ms"
        super().__init__(
            message=message,
            details={"provider": provider, "timeout_ms": timeout_ms},
        )


class LLMTransportError(LLMError):
    """DNS, connection or protocol failure before an HTTP status was received."""

    pass


class MalformedResponseError(LLMError):
    """Backend payload could not be decoded (e.g. tool-call arguments)."""

    pass


# ----- Intent Extraction Errors -----


class ExtractionFailure(PantrybotError):
    """Intent extraction could not produce a typed intent.

    Only used for logging; callers always receive an ``unknown`` intent.
    """

    pass
