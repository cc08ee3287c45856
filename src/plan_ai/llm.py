"""Gemini gateway for the scheduling workflow.

Wraps the Google ``google-genai`` SDK and is the only module that talks to
the provider.  Offers two call shapes:

- :meth:`GeminiGateway.complete_json` -- one-shot call in JSON mode that
  returns the raw response text, which may still be fenced or wrapped in
  prose.
- :meth:`GeminiGateway.complete_stream` -- an incremental reply exposed as a
  :class:`ReplyStream`.

Provider and network failures are translated into
:class:`~plan_ai.exceptions.GatewayError`
(or :class:`~plan_ai.exceptions.RateLimitError` for HTTP 429).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from plan_ai.config import ConfigError, Settings
from plan_ai.exceptions import GatewayError, RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

Contents = str | list[dict]

# Connection failures, timeouts and dropped streams from the SDK's HTTP layer.
_TRANSPORT_ERRORS = (httpx.HTTPError, OSError)


class ReplyStream:
    """A lazy, finite, single-use sequence of reply text deltas.

    Iterating yields each non-empty text fragment as the provider sends it.
    The stream cannot be restarted: once exhausted or closed, a new
    :meth:`GeminiGateway.complete_stream` call is needed.  :meth:`close`
    abandons the reply and releases the underlying response; it is the only
    cancellation path.

    Args:
        chunks: Iterator of SDK response chunks (objects with a ``text``
            attribute).
        on_complete: Called once with the full reply text when the provider
            ends the turn.  Not called when the stream is closed early or
            fails.
    """

    def __init__(
        self,
        chunks: Iterator[Any],
        on_complete: Callable[[str], None] | None = None,
    ) -> None:
        self._chunks = chunks
        self._on_complete = on_complete
        self._parts: list[str] = []
        self._deltas = self._generate()
        self.finished = False
        self.closed = False

    def __iter__(self) -> ReplyStream:
        return self

    def __next__(self) -> str:
        return next(self._deltas)

    def __enter__(self) -> ReplyStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def text(self) -> str:
        """Everything received so far."""
        return "".join(self._parts)

    def close(self) -> None:
        """Stop the stream and release the provider response."""
        if self.closed:
            return
        self.closed = True
        self._deltas.close()
        close = getattr(self._chunks, "close", None)
        if callable(close):
            close()

    def _generate(self) -> Iterator[str]:
        try:
            for chunk in self._chunks:
                delta = chunk.text
                if delta:
                    self._parts.append(delta)
                    yield delta
        except genai_errors.APIError as exc:
            raise _translate_api_error(exc) from exc
        except _TRANSPORT_ERRORS as exc:
            raise _translate_transport_error(exc) from exc

        self.finished = True
        logger.debug("Streamed reply complete (%d chars)", len(self.text))
        if self._on_complete is not None:
            self._on_complete(self.text)


class GeminiGateway:
    """Client for Gemini completions.

    Args:
        api_key: Google Gemini API key.  Must be non-empty; checked before
            any network activity.
        model: Model identifier to use for generation.  Defaults to
            ``"gemini-2.0-flash"``.

    Raises:
        ConfigError: If *api_key* is missing or blank.
    """

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL) -> None:
        if not api_key or not api_key.strip():
            raise ConfigError("Missing Gemini API key. Set GEMINI_API_KEY")
        self._client = genai.Client(api_key=api_key)
        self._model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiGateway:
        """Build a gateway from loaded :class:`~plan_ai.config.Settings`."""
        return cls(api_key=settings.gemini_api_key, model=settings.gemini_model)

    @property
    def model(self) -> str:
        """The model identifier used for every call."""
        return self._model

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def complete_json(self, contents: Contents) -> str:
        """Request a JSON-mode completion and return the raw text.

        Args:
            contents: A prompt string or a list of Gemini content dicts.

        Returns:
            The raw text of the first candidate (``""`` if the response
            carried no text).

        Raises:
            RateLimitError: If the provider throttled the request.
            GatewayError: On any other provider or network failure.
        """
        logger.debug("JSON prompt sent to Gemini:\n%s", contents)
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json",
        )
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise _translate_api_error(exc) from exc
        except _TRANSPORT_ERRORS as exc:
            raise _translate_transport_error(exc) from exc

        raw_text = response.text or ""
        logger.debug("Raw JSON response from Gemini:\n%s", raw_text)
        return raw_text

    def complete_stream(
        self,
        contents: Contents,
        on_complete: Callable[[str], None] | None = None,
    ) -> ReplyStream:
        """Open an incremental completion.

        Args:
            contents: A prompt string or a list of Gemini content dicts.
            on_complete: Passed to :class:`ReplyStream`.

        Returns:
            A :class:`ReplyStream`.  Provider errors may surface when the
            stream is first iterated rather than here.

        Raises:
            RateLimitError: If the provider throttled the request.
            GatewayError: On any other provider or network failure.
        """
        logger.debug("Streaming %s to Gemini", _describe_contents(contents))
        try:
            chunks = self._client.models.generate_content_stream(
                model=self._model,
                contents=contents,
            )
        except genai_errors.APIError as exc:
            raise _translate_api_error(exc) from exc
        except _TRANSPORT_ERRORS as exc:
            raise _translate_transport_error(exc) from exc

        return ReplyStream(iter(chunks), on_complete=on_complete)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _translate_api_error(exc: genai_errors.APIError) -> GatewayError:
    """Map an SDK ``APIError`` to the gateway's exception types."""
    status = getattr(exc, "code", None)
    detail = getattr(exc, "message", None) or str(exc)

    if status == 429:
        logger.warning("Gemini rate limit hit: %s", detail)
        return RateLimitError(f"Rate limit exceeded: {detail}")

    logger.error("Gemini API error (HTTP %s): %s", status, detail)
    return GatewayError(f"Gemini API call failed: {detail}", status_code=status)


def _translate_transport_error(exc: Exception) -> GatewayError:
    """Wrap a network-level failure that carries no provider status."""
    logger.error("Gemini request failed: %s", exc)
    return GatewayError(f"Gemini request failed: {exc}", status_code=None)


def _describe_contents(contents: Contents) -> str:
    if isinstance(contents, str):
        return f"a {len(contents)}-char prompt"
    return f"{len(contents)} content item(s)"
