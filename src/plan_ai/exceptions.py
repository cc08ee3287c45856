"""Custom exceptions for the plan-ai scheduling workflow.

Exception hierarchy::

    GatewayError              (any Gemini provider failure)
    +-- RateLimitError        (HTTP 429 from the provider)
    MalformedResponseError    (model output is not the expected JSON)

Configuration problems are reported with
:class:`~plan_ai.config.ConfigError`.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Raised when a call to the language-model provider fails.

    Attributes:
        status_code: HTTP status code reported by the provider, or ``None``
            if the failure did not carry one.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GatewayError):
    """Raised when the provider throttles the request (HTTP 429).

    Retrying immediately will not help; the user should try again later.
    """

    def __init__(
        self, message: str = "Rate limit exceeded. Please try again later."
    ) -> None:
        super().__init__(message, status_code=429)


class MalformedResponseError(Exception):
    """Raised when model output cannot be decoded as JSON.

    Callers normally recover from this locally (empty result or a fallback
    prompt); only the plan endpoint reports it to the client.

    Attributes:
        raw_response: The raw model output that failed to parse.
    """

    def __init__(self, message: str, raw_response: str = "") -> None:
        super().__init__(message)
        self.raw_response = raw_response
