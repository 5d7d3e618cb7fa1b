"""
Domain exceptions for the analytics service.

There is no numeric/computation error here: every ratio in the
metrics engine goes through safe division and cannot fail.
"""

from datetime import date
from typing import Optional


class AnalyticsError(Exception):
    """Base exception for analytics failures surfaced to API callers."""


class EntityNotFoundError(AnalyticsError):
    """A client (entity) or its configuration does not exist."""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Client not found: {entity_id}")


class InvalidDateRangeError(AnalyticsError):
    """
    Report requested with an unusable date range: end before start, or a
    start so early that the comparison window falls before the first
    representable date.
    """

    def __init__(self, start: date, end: date, reason: Optional[str] = None):
        self.start = start
        self.end = end
        reason = reason or f"end {end.isoformat()} is before start {start.isoformat()}"
        super().__init__(f"Invalid date range: {reason}")
