"""
Enumeration types for the analytics service.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class ClientStatus(str, Enum):
    """Lifecycle status of an agency client. Only active clients join the agency rollup."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class GroupBy(str, Enum):
    """Bucket size for chart history."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class DeleteAction(str, Enum):
    """Scope of a funnel/cost data deletion."""

    SINGLE = "single"
    RESET_ALL = "reset_all"
