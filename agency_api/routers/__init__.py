"""API routers for all endpoints."""

from agency_api.routers import analytics, clients, entries, projections, system

__all__ = [
    "analytics",
    "clients",
    "entries",
    "projections",
    "system",
]
