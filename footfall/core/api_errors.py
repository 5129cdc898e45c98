"""
API error classification for the external clients.

Every error carries the source it came from and whether the failed
operation may be retried, so the analysis engine can decide between
degrading (visit statistics) and surfacing (venue directory).
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional


DEFAULT_RATE_LIMIT_WAIT_SECONDS = 60


class APIError(Exception):
    """
    Base exception for all API-related errors.

    Attributes:
        message: Human-readable error description
        source: API source name (e.g., 'foursquare')
        status_code: HTTP status code if applicable
        retryable: Whether this error should trigger a retry
        retry_after: Seconds the server asked us to wait, if it said
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: bool = False,
        retry_after: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.status_code = status_code
        self.retryable = retryable
        self.retry_after = retry_after

    def __str__(self) -> str:
        parts = [self.message]
        if self.source:
            parts.insert(0, f"[{self.source}]")
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        return " ".join(parts)


class RetryableError(APIError):
    """Transient failure: 5xx, timeout or connection drop."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            source=source,
            status_code=status_code,
            retryable=True,
            retry_after=retry_after,
        )


class RateLimitError(RetryableError):
    """HTTP 429. Always carries a wait, defaulting to a minute."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            source=source,
            status_code=429,
            retry_after=DEFAULT_RATE_LIMIT_WAIT_SECONDS if retry_after is None else retry_after,
        )


class FatalError(APIError):
    """Permanent failure; retrying the same request will not help."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message=message, source=source, status_code=status_code, retryable=False
        )


class AuthenticationError(FatalError):
    """Invalid or missing API key (HTTP 401)."""

    def __init__(self, message: str = "Authentication failed - check API key", source: Optional[str] = None):
        super().__init__(message=message, source=source, status_code=401)


class AccessForbiddenError(FatalError):
    """Key is valid but the plan lacks the endpoint (HTTP 403), e.g. venue stats."""

    def __init__(self, message: str = "Access forbidden", source: Optional[str] = None):
        super().__init__(message=message, source=source, status_code=403)


class NotFoundError(FatalError):
    """Unknown venue or endpoint (HTTP 404)."""

    def __init__(self, message: str = "Resource not found", source: Optional[str] = None):
        super().__init__(message=message, source=source, status_code=404)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """
    Parse a Retry-After header value.

    Accepts delta-seconds ("120") or an HTTP-date. Dates in the past give 0.
    Returns None when the header is missing or unreadable.
    """
    if value is None:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0, int((when - now).total_seconds()))


def classify_http_error(
    status_code: int,
    response_text: str = "",
    source: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> APIError:
    """
    Classify an HTTP error into the appropriate APIError subclass.

    Args:
        status_code: HTTP status code
        response_text: Response body text
        source: API source name
        headers: Response headers; Retry-After is honoured on 429 and 5xx

    Returns:
        Appropriate APIError subclass instance
    """
    body = response_text[:200]
    retry_after = parse_retry_after((headers or {}).get("Retry-After"))

    if status_code == 429:
        return RateLimitError(f"Rate limited: {body}", source=source, retry_after=retry_after)
    if status_code == 401:
        return AuthenticationError(f"Authentication failed: {body}", source=source)
    if status_code == 403:
        return AccessForbiddenError(f"Access forbidden: {body}", source=source)
    if status_code == 404:
        return NotFoundError(f"Not found: {body}", source=source)
    if 500 <= status_code < 600:
        return RetryableError(
            f"Server error: {body}",
            source=source,
            status_code=status_code,
            retry_after=retry_after,
        )
    return FatalError(f"HTTP error {status_code}: {body}", source=source, status_code=status_code)
