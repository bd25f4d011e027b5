# tokenrouter/exceptions.py
"""
Custom exceptions for tokenrouter.

All public exceptions inherit from TokenRouterError so callers can catch
the whole family with a single except clause if preferred. Every error
also carries an explicit ``kind`` tag; the library itself dispatches on
the tag (retry policy, CLI exit handling) rather than on class identity.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any


class ErrorKind(str, enum.Enum):
    """Closed set of client-observable failure modes."""

    GENERIC = "generic"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    INVALID_REQUEST = "invalid_request"
    QUOTA_EXCEEDED = "quota_exceeded"
    API_STATUS = "api_status"
    CONNECTION = "connection"
    TIMEOUT = "timeout"


class TokenRouterError(Exception):
    """
    Base exception for all client errors.

    Also raised directly for failures that happen while building a request,
    before any network I/O.

    Attributes
    ----------
    message:
        Human-readable description.
    status_code:
        HTTP status of the failed response, when there was one.
    body:
        Parsed JSON body (or raw text) of the failed response.
    headers:
        Response headers with lower-cased names.
    """

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers) if headers is not None else None
        super().__init__(message)

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"{self.__class__.__name__}("
            f"kind={self.kind.value!r}, message={self.message!r}, "
            f"status_code={self.status_code})"
        )


class AuthenticationError(TokenRouterError):
    """401, or 403 without a quota indication; also a missing API key."""

    kind = ErrorKind.AUTHENTICATION


class RateLimitError(TokenRouterError):
    """
    429 Too Many Requests.

    Attributes
    ----------
    retry_after:
        Seconds to wait, parsed from the ``Retry-After`` header. None when
        the header is absent or not an integer.
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        retry_after: int | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, status_code, body, headers)


class InvalidRequestError(TokenRouterError):
    """400 Bad Request, or a request rejected client-side."""

    kind = ErrorKind.INVALID_REQUEST


class QuotaExceededError(TokenRouterError):
    """403 whose message mentions a quota."""

    kind = ErrorKind.QUOTA_EXCEEDED


class APIStatusError(TokenRouterError):
    """5xx, or any other non-2xx status without a more specific kind."""

    kind = ErrorKind.API_STATUS


class APIConnectionError(TokenRouterError):
    """The server was never reached, or the response body could not be read."""

    kind = ErrorKind.CONNECTION


class APITimeoutError(TokenRouterError):
    """The per-request timeout elapsed before a response arrived."""

    kind = ErrorKind.TIMEOUT


# Public alias matching the service's documented error names.
TimeoutError = APITimeoutError  # noqa: A001


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def extract_message(body: Any, reason: str) -> str:
    """Best-effort message: ``detail``, else ``error``, else the reason phrase."""
    if isinstance(body, Mapping):
        for key in ("detail", "error"):
            value = body.get(key)
            if not value:
                continue
            if isinstance(value, str):
                return value
            if isinstance(value, Mapping) and isinstance(value.get("message"), str):
                return value["message"]
            return str(value)
    if isinstance(body, str) and body.strip():
        return body.strip()
    return reason


def parse_retry_after(headers: Mapping[str, str] | None) -> int | None:
    """Return the integer ``Retry-After`` value in seconds, if any."""
    if not headers:
        return None
    for name, value in headers.items():
        if name.lower() == "retry-after":
            try:
                return int(value.strip())
            except ValueError:
                return None
    return None


def error_from_response(
    status_code: int,
    body: Any = None,
    headers: Mapping[str, str] | None = None,
    reason: str = "",
) -> TokenRouterError:
    """
    Map a non-2xx response to exactly one error kind.

    Parameters
    ----------
    status_code:
        HTTP status of the response.
    body:
        Parsed JSON body, raw text, or None.
    headers:
        Response headers.
    reason:
        HTTP reason phrase, used when the body carries no message.
    """
    message = extract_message(body, reason or f"HTTP {status_code}")

    if status_code == 401:
        return AuthenticationError(message, status_code, body, headers)
    if status_code == 429:
        return RateLimitError(
            message,
            status_code,
            body,
            headers,
            retry_after=parse_retry_after(headers),
        )
    if status_code == 400:
        return InvalidRequestError(message, status_code, body, headers)
    if status_code == 403:
        if "quota" in message.lower():
            return QuotaExceededError(message, status_code, body, headers)
        return AuthenticationError(message, status_code, body, headers)
    return APIStatusError(message, status_code, body, headers)
