"""
Errors raised inside the area analysis engine.

Only VenueDirectoryUnavailable leaves the engine. Statistics and cache
failures are recovered where they happen.
"""
from typing import Optional

from footfall.core.api_errors import APIError, RetryableError


class VenueDirectoryUnavailable(RetryableError):
    """The venue directory could not be searched; the request cannot be answered."""

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message=message, source=source, status_code=status_code)


class VisitStatisticsUnavailable(APIError):
    """A venue's real visit statistics could not be obtained (quota, entitlement, bad payload)."""

    def __init__(
        self,
        message: str,
        venue_id: Optional[str] = None,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message=message, source=source, status_code=status_code)
        self.venue_id = venue_id


class AnalysisCacheError(Exception):
    """Base class for analysis cache failures."""
    pass


class CacheReadFailure(AnalysisCacheError):
    """Reading a cached analysis failed; treated as a miss."""
    pass


class CacheWriteFailure(AnalysisCacheError):
    """Writing an analysis to the cache failed; the write is dropped."""
    pass
