"""
Abstract storage interface for the analytics service.

The reporting service only ever reads through the four aggregate queries
defined here; it never sees tables or SQL. The write operations back the
client and daily-entry endpoints.

Range semantics shared by every implementation: a ``DateRange`` is a closed
interval of days, so a record dated exactly on ``start`` or ``end`` is
included and a record one day outside is not.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from agency_api.models.analytics import DailyRevenueLeads, DateRange, RawPeriodTotals
from agency_api.models.clients import Client, DailyEntry, DailyEntryResult


class StorageBackend(ABC):
    """
    Abstract base class for all storage implementations.

    Implementations must:
    - Raise EntityNotFoundError for unknown client ids where documented
    - Propagate every other failure (no partial or defaulted results)
    - Treat ``entity_id=None`` as "all active clients"
    """

    # =========================================================================
    # Aggregate reads (reporting)
    # =========================================================================

    @abstractmethod
    def sum_funnel_and_costs(
        self,
        entity_id: Optional[str],
        date_range: DateRange,
    ) -> RawPeriodTotals:
        """
        Sum funnel and cost records for a client over a date range.

        Args:
            entity_id: Client to sum, or None for every active client
            date_range: Closed day interval

        Returns:
            RawPeriodTotals with margin_percent left at 0; the margin is
            configuration and is looked up separately.

        None returns blended agency totals in one query. The agency rollup
        calls this once per active client instead, applying each margin to
        that client's own revenue.
        """

    @abstractmethod
    def get_entity_margin_percent(self, entity_id: str) -> float:
        """
        Read a client's contribution margin (fraction in [0, 1]).

        Callers that also need the rest of the client record (the reporting
        service echoes the niche) read ``get_entity`` instead.

        Raises:
            EntityNotFoundError: If the client does not exist
        """

    @abstractmethod
    def sum_daily_revenue_and_leads(
        self,
        entity_id: Optional[str],
        date_range: DateRange,
    ) -> list[DailyRevenueLeads]:
        """
        Sum revenue and leads per day for every day that has data.

        Args:
            entity_id: Client to sum, or None for every active client
            date_range: Closed day interval

        Returns:
            One row per date, in no guaranteed order
        """

    @abstractmethod
    def list_active_entities(self) -> list[Client]:
        """
        List every active client with its current margin and flat fee.

        The fee and margin are a snapshot of the client record, not date-ranged.
        """

    # =========================================================================
    # Clients
    # =========================================================================

    @abstractmethod
    def get_entity(self, entity_id: str) -> Client:
        """
        Read a single client.

        Raises:
            EntityNotFoundError: If the client does not exist
        """

    @abstractmethod
    def create_entity(self, client: Client) -> str:
        """Persist a new client and return its id."""

    @abstractmethod
    def set_entity_margin(self, entity_id: str, margin_percent: float) -> Client:
        """
        Update a client's margin and return the updated client.

        Raises:
            EntityNotFoundError: If the client does not exist
        """

    # =========================================================================
    # Daily funnel / cost data
    # =========================================================================

    @abstractmethod
    def record_daily_entry(self, entry: DailyEntry) -> DailyEntryResult:
        """
        Save one day of funnel and cost data for a client.

        Existing rows of that client on that date are removed first, so saving
        the same day twice edits it rather than doubling it. The whole
        operation is atomic.

        Raises:
            EntityNotFoundError: If the client does not exist
        """

    @abstractmethod
    def delete_daily_entry(self, entity_id: str, day: date) -> int:
        """Delete a client's funnel and cost rows on one date. Returns rows removed."""

    @abstractmethod
    def reset_entity_data(self, entity_id: str) -> int:
        """Delete all funnel and cost rows of a client. Returns rows removed."""

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @abstractmethod
    def ping(self) -> bool:
        """Cheap connectivity check used by the health endpoint."""
