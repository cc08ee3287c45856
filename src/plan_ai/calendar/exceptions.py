"""Calendar collaborator errors and retry logic.

Exception hierarchy::

    CalendarAPIError           (base; carries the HTTP status)
    +-- CalendarAuthError      (401 / credential problems)
    +-- CalendarRateLimitError (429)
    +-- CalendarNotFoundError  (404)

:func:`with_retry` wraps Google Calendar API calls: rate limits and network
errors back off exponentially, an expired token is refreshed once, anything
else is raised immediately as a :class:`CalendarAPIError`.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class CalendarAPIError(Exception):
    """Base exception for calendar failures.

    Attributes:
        status_code: HTTP status code, or ``None`` when the error did not
            come from an HTTP response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CalendarAuthError(CalendarAPIError):
    """Calendar credentials are missing, expired, or rejected."""

    def __init__(self, message: str = "Unauthorized: calendar authentication failed") -> None:
        super().__init__(message, status_code=401)


class CalendarRateLimitError(CalendarAPIError):
    """The calendar API throttled the request."""

    def __init__(self, message: str = "Calendar API rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class CalendarNotFoundError(CalendarAPIError):
    """The calendar event does not exist (or no longer exists)."""

    def __init__(self, message: str = "Calendar event not found") -> None:
        super().__init__(message, status_code=404)


def classify_http_error(error: HttpError) -> CalendarAPIError:
    """Map a ``googleapiclient`` ``HttpError`` to a calendar exception."""
    status = error.resp.status
    if status == 401:
        return CalendarAuthError(f"Unauthorized: {error}")
    if status == 404:
        return CalendarNotFoundError(str(error))
    if status == 429:
        return CalendarRateLimitError(str(error))
    return CalendarAPIError(str(error), status_code=status)


def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> Callable[[F], F]:
    """Retry decorator for calendar client methods.

    - **429** and network errors (``OSError``): back off
      ``base_delay * 2**attempt`` seconds, up to *max_retries* times.
    - **401**: call ``self._refresh_credentials()`` if the instance has one,
      then retry once.
    - Anything else (including **404**): raise immediately.

    Args:
        max_retries: Retries allowed for rate-limit and network errors.
        base_delay: First backoff delay in seconds.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            refreshed = False
            attempt = 0

            while True:
                try:
                    return func(*args, **kwargs)
                except HttpError as exc:
                    error = classify_http_error(exc)

                    if isinstance(error, CalendarAuthError) and not refreshed:
                        refreshed = True
                        logger.warning("Calendar auth expired (401), refreshing token")
                        _refresh(args[0] if args else None)
                        continue

                    if isinstance(error, CalendarRateLimitError) and attempt < max_retries:
                        delay = base_delay * (2**attempt)
                        attempt += 1
                        logger.warning(
                            "Calendar rate limited, retrying in %.1fs (attempt %d/%d)",
                            delay,
                            attempt,
                            max_retries,
                        )
                        time.sleep(delay)
                        continue

                    logger.error("Calendar API error (HTTP %s): %s", error.status_code, exc)
                    raise error from exc

                except OSError as exc:
                    if attempt >= max_retries:
                        raise CalendarAPIError(
                            f"Network error after {max_retries} retries: {exc}"
                        ) from exc
                    delay = base_delay * (2**attempt)
                    attempt += 1
                    logger.warning(
                        "Calendar network error, retrying in %.1fs (attempt %d/%d): %s",
                        delay,
                        attempt,
                        max_retries,
                        exc,
                    )
                    time.sleep(delay)

        return wrapper  # type: ignore[return-value]

    return decorator


def _refresh(instance: object) -> None:
    refresh = getattr(instance, "_refresh_credentials", None)
    if not callable(refresh):
        logger.warning("No credential refresh available")
        return
    try:
        refresh()
    except Exception as exc:
        raise CalendarAuthError(f"Unauthorized: token refresh failed: {exc}") from exc
