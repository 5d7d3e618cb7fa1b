"""
DuckDB storage implementation for the analytics service.

Tables:
- clients: reporting entities with margin and flat recurring fee
- cohorts: campaign groupings owned by a client
- funnel_data: daily funnel counts and revenue per cohort
- marketing_costs: daily cost records per client

Currency columns are DECIMAL so sums are exact: two identical reports over
unchanged data return identical numbers. Date filters compare DATE columns
with inclusive bounds on both ends.
"""

import threading
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Optional
from uuid import uuid4

import duckdb
import structlog

from agency_api.exceptions import EntityNotFoundError
from agency_api.models.analytics import DailyRevenueLeads, DateRange, RawPeriodTotals
from agency_api.models.clients import Client, DailyEntry, DailyEntryResult
from agency_api.models.enums import ClientStatus

from .base import StorageBackend

logger = structlog.get_logger(__name__)

_CLIENT_COLUMNS = (
    "client_id, name, niche, status, margin_percent, contract_value, created_at"
)


class StorageError(Exception):
    """Base exception for all storage operation failures."""


class DuckDBStorage(StorageBackend):
    """
    DuckDB implementation of the storage backend.

    Uses one connection per thread against a single database file and creates
    the schema on first use.

    Attributes:
        db_path: Path to the DuckDB database file
        manual_cohort_name: Cohort that receives manually entered daily data
        allow_clear: Whether clear_for_testing may truncate tables
    """

    def __init__(
        self,
        db_path: str = "./data/agency.duckdb",
        manual_cohort_name: str = "Manual entry",
        allow_clear: bool = False,
    ):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.manual_cohort_name = manual_cohort_name
        self.allow_clear = allow_clear

        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False

        logger.info("duckdb_storage_initialized", db_path=str(self.db_path))

        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """
        Get a thread-local DuckDB connection.

        Raises:
            StorageError: If connection cannot be established
        """
        if not hasattr(self._local, "connection"):
            try:
                self._local.connection = duckdb.connect(str(self.db_path))
                logger.debug("duckdb_connection_created", thread_id=threading.get_ident())
            except duckdb.Error as e:
                logger.error("duckdb_connection_failed", error=str(e))
                raise StorageError(f"Failed to connect to DuckDB: {e}") from e

        yield self._local.connection

    @contextmanager
    def _transaction(self):
        """Thread-local connection inside BEGIN; COMMIT on success, ROLLBACK on any error."""
        with self._get_connection() as conn:
            conn.begin()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _initialize_schema(self):
        """Create tables and indexes. Idempotent."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                with self._get_connection() as conn:
                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS clients (
                            client_id VARCHAR PRIMARY KEY,
                            name VARCHAR NOT NULL,
                            niche VARCHAR,
                            status VARCHAR NOT NULL DEFAULT 'active',
                            margin_percent DECIMAL(9, 6) NOT NULL DEFAULT 0,
                            contract_value DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS cohorts (
                            cohort_id VARCHAR PRIMARY KEY,
                            client_id VARCHAR NOT NULL,
                            name VARCHAR NOT NULL,
                            channel VARCHAR,
                            start_date DATE,
                            end_date DATE,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE INDEX IF NOT EXISTS idx_cohorts_client_id
                        ON cohorts(client_id)
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS funnel_data (
                            record_id VARCHAR PRIMARY KEY,
                            cohort_id VARCHAR NOT NULL,
                            entry_date DATE NOT NULL,
                            impressions BIGINT NOT NULL DEFAULT 0,
                            clicks BIGINT NOT NULL DEFAULT 0,
                            leads BIGINT NOT NULL DEFAULT 0,
                            appointments BIGINT NOT NULL DEFAULT 0,
                            sales BIGINT NOT NULL DEFAULT 0,
                            revenue DECIMAL(18, 2) NOT NULL DEFAULT 0
                        )
                    """)

                    conn.execute("""
                        CREATE INDEX IF NOT EXISTS idx_funnel_cohort_date
                        ON funnel_data(cohort_id, entry_date)
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS marketing_costs (
                            record_id VARCHAR PRIMARY KEY,
                            client_id VARCHAR NOT NULL,
                            cohort_id VARCHAR,
                            entry_date DATE NOT NULL,
                            ad_spend DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            creative_cost DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            agency_fee DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            software_cost DECIMAL(18, 2) NOT NULL DEFAULT 0,
                            other_costs DECIMAL(18, 2) NOT NULL DEFAULT 0
                        )
                    """)

                    conn.execute("""
                        CREATE INDEX IF NOT EXISTS idx_costs_client_date
                        ON marketing_costs(client_id, entry_date)
                    """)

                self._initialized = True
                logger.info("duckdb_schema_initialized")

            except duckdb.Error as e:
                logger.error("duckdb_schema_initialization_failed", error=str(e))
                raise StorageError(f"Failed to initialize schema: {e}") from e

    def clear_for_testing(self) -> None:
        """
        Truncate all tables. A no-op unless the storage was built with allow_clear.
        """
        if not self.allow_clear:
            return
        with self._get_connection() as conn:
            for table in ("funnel_data", "marketing_costs", "cohorts", "clients"):
                conn.execute(f"DELETE FROM {table}")

    @staticmethod
    def _entity_filter(entity_id: Optional[str]) -> tuple[str, list]:
        """SQL predicate on the ``cl`` (clients) alias for one client or all active ones."""
        if entity_id is None:
            return "cl.status = ?", [ClientStatus.ACTIVE.value]
        return "cl.client_id = ?", [entity_id]

    @staticmethod
    def _row_to_client(row: tuple) -> Client:
        return Client(
            client_id=row[0],
            name=row[1],
            niche=row[2],
            status=row[3],
            margin_percent=float(row[4]),
            contract_value=float(row[5]),
            created_at=row[6],
        )

    # =========================================================================
    # Aggregate reads
    # =========================================================================

    def sum_funnel_and_costs(
        self,
        entity_id: Optional[str],
        date_range: DateRange,
    ) -> RawPeriodTotals:
        """Sum funnel and cost rows of one client (or all active clients) in a closed range."""
        predicate, params = self._entity_filter(entity_id)
        range_params = [date_range.start, date_range.end]

        try:
            with self._get_connection() as conn:
                funnel = conn.execute(
                    f"""
                    SELECT COALESCE(SUM(f.impressions), 0),
                           COALESCE(SUM(f.clicks), 0),
                           COALESCE(SUM(f.leads), 0),
                           COALESCE(SUM(f.appointments), 0),
                           COALESCE(SUM(f.sales), 0),
                           COALESCE(SUM(f.revenue), 0)
                    FROM funnel_data f
                    JOIN cohorts c ON c.cohort_id = f.cohort_id
                    JOIN clients cl ON cl.client_id = c.client_id
                    WHERE f.entry_date >= ? AND f.entry_date <= ? AND {predicate}
                    """,
                    range_params + params,
                ).fetchone()

                costs = conn.execute(
                    f"""
                    SELECT COALESCE(SUM(m.ad_spend), 0),
                           COALESCE(SUM(m.creative_cost), 0),
                           COALESCE(SUM(m.agency_fee), 0),
                           COALESCE(SUM(m.software_cost), 0),
                           COALESCE(SUM(m.other_costs), 0)
                    FROM marketing_costs m
                    JOIN clients cl ON cl.client_id = m.client_id
                    WHERE m.entry_date >= ? AND m.entry_date <= ? AND {predicate}
                    """,
                    range_params + params,
                ).fetchone()

            totals = RawPeriodTotals(
                impressions=int(funnel[0]),
                clicks=int(funnel[1]),
                leads=int(funnel[2]),
                appointments=int(funnel[3]),
                sales=int(funnel[4]),
                revenue=float(funnel[5]),
                ad_spend=float(costs[0]),
                creative_cost=float(costs[1]),
                agency_fee=float(costs[2]),
                software_cost=float(costs[3]),
                other_costs=float(costs[4]),
            )
            logger.debug(
                "funnel_and_costs_summed",
                entity_id=entity_id,
                start=date_range.start.isoformat(),
                end=date_range.end.isoformat(),
            )
            return totals

        except duckdb.Error as e:
            logger.error("sum_funnel_and_costs_failed", entity_id=entity_id, error=str(e))
            raise StorageError(f"Failed to sum funnel and costs: {e}") from e

    def get_entity_margin_percent(self, entity_id: str) -> float:
        return self.get_entity(entity_id).margin_percent

    def sum_daily_revenue_and_leads(
        self,
        entity_id: Optional[str],
        date_range: DateRange,
    ) -> list[DailyRevenueLeads]:
        """Per-day revenue and lead sums; days without rows are absent."""
        predicate, params = self._entity_filter(entity_id)

        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    f"""
                    SELECT f.entry_date,
                           COALESCE(SUM(f.revenue), 0),
                           COALESCE(SUM(f.leads), 0)
                    FROM funnel_data f
                    JOIN cohorts c ON c.cohort_id = f.cohort_id
                    JOIN clients cl ON cl.client_id = c.client_id
                    WHERE f.entry_date >= ? AND f.entry_date <= ? AND {predicate}
                    GROUP BY f.entry_date
                    ORDER BY f.entry_date ASC
                    """,
                    [date_range.start, date_range.end] + params,
                ).fetchall()

            daily = [
                DailyRevenueLeads(day=row[0], revenue=float(row[1]), leads=int(row[2]))
                for row in rows
            ]
            logger.debug("daily_revenue_and_leads_read", entity_id=entity_id, count=len(daily))
            return daily

        except duckdb.Error as e:
            logger.error("sum_daily_revenue_and_leads_failed", entity_id=entity_id, error=str(e))
            raise StorageError(f"Failed to read daily revenue and leads: {e}") from e

    def list_active_entities(self) -> list[Client]:
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    f"""
                    SELECT {_CLIENT_COLUMNS}
                    FROM clients
                    WHERE status = ?
                    ORDER BY created_at ASC, client_id ASC
                    """,
                    [ClientStatus.ACTIVE.value],
                ).fetchall()

            clients = [self._row_to_client(row) for row in rows]
            logger.debug("active_clients_read", count=len(clients))
            return clients

        except duckdb.Error as e:
            logger.error("list_active_entities_failed", error=str(e))
            raise StorageError(f"Failed to list active clients: {e}") from e

    # =========================================================================
    # Clients
    # =========================================================================

    def get_entity(self, entity_id: str) -> Client:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE client_id = ?",
                    [entity_id],
                ).fetchone()
        except duckdb.Error as e:
            logger.error("read_client_failed", client_id=entity_id, error=str(e))
            raise StorageError(f"Failed to read client: {e}") from e

        if row is None:
            logger.warning("client_not_found", client_id=entity_id)
            raise EntityNotFoundError(entity_id)
        return self._row_to_client(row)

    def create_entity(self, client: Client) -> str:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    f"""
                    INSERT INTO clients ({_CLIENT_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        client.client_id,
                        client.name,
                        client.niche,
                        client.status.value,
                        client.margin_percent,
                        client.contract_value,
                        client.created_at,
                    ],
                )
            logger.info("client_written", client_id=client.client_id)
            return client.client_id

        except duckdb.Error as e:
            logger.error("write_client_failed", error=str(e))
            raise StorageError(f"Failed to write client: {e}") from e

    def set_entity_margin(self, entity_id: str, margin_percent: float) -> Client:
        self.get_entity(entity_id)
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "UPDATE clients SET margin_percent = ? WHERE client_id = ?",
                    [margin_percent, entity_id],
                )
        except duckdb.Error as e:
            logger.error("update_client_margin_failed", client_id=entity_id, error=str(e))
            raise StorageError(f"Failed to update client margin: {e}") from e

        logger.info("client_margin_updated", client_id=entity_id, margin_percent=margin_percent)
        return self.get_entity(entity_id)

    # =========================================================================
    # Daily funnel / cost data
    # =========================================================================

    def record_daily_entry(self, entry: DailyEntry) -> DailyEntryResult:
        self.get_entity(entry.client_id)
        cohort_name = entry.cohort_name or self.manual_cohort_name

        try:
            with self._transaction() as conn:
                replaced = self._delete_day(conn, entry.client_id, entry.entry_date)

                found = conn.execute(
                    "SELECT cohort_id FROM cohorts WHERE client_id = ? AND name = ? LIMIT 1",
                    [entry.client_id, cohort_name],
                ).fetchone()
                if found:
                    cohort_id = found[0]
                else:
                    cohort_id = str(uuid4())
                    conn.execute(
                        """
                        INSERT INTO cohorts (cohort_id, client_id, name, start_date)
                        VALUES (?, ?, ?, ?)
                        """,
                        [cohort_id, entry.client_id, cohort_name, entry.entry_date],
                    )

                conn.execute(
                    """
                    INSERT INTO marketing_costs (
                        record_id, client_id, cohort_id, entry_date, ad_spend,
                        creative_cost, agency_fee, software_cost, other_costs
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        str(uuid4()),
                        entry.client_id,
                        cohort_id,
                        entry.entry_date,
                        entry.ad_spend,
                        entry.creative_cost,
                        entry.agency_fee,
                        entry.software_cost,
                        entry.other_costs,
                    ],
                )

                conn.execute(
                    """
                    INSERT INTO funnel_data (
                        record_id, cohort_id, entry_date, impressions, clicks,
                        leads, appointments, sales, revenue
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        str(uuid4()),
                        cohort_id,
                        entry.entry_date,
                        entry.impressions,
                        entry.clicks,
                        entry.leads,
                        entry.appointments,
                        entry.sales,
                        entry.revenue,
                    ],
                )

            logger.info(
                "daily_entry_recorded",
                client_id=entry.client_id,
                entry_date=entry.entry_date.isoformat(),
                replaced_rows=replaced,
            )
            return DailyEntryResult(
                client_id=entry.client_id,
                entry_date=entry.entry_date,
                cohort_id=cohort_id,
                replaced_rows=replaced,
            )

        except duckdb.Error as e:
            logger.error("record_daily_entry_failed", client_id=entry.client_id, error=str(e))
            raise StorageError(f"Failed to record daily entry: {e}") from e

    def delete_daily_entry(self, entity_id: str, day: date) -> int:
        try:
            with self._transaction() as conn:
                removed = self._delete_day(conn, entity_id, day)
            logger.info(
                "daily_entry_deleted",
                client_id=entity_id,
                entry_date=day.isoformat(),
                removed_rows=removed,
            )
            return removed

        except duckdb.Error as e:
            logger.error("delete_daily_entry_failed", client_id=entity_id, error=str(e))
            raise StorageError(f"Failed to delete daily entry: {e}") from e

    def reset_entity_data(self, entity_id: str) -> int:
        try:
            with self._transaction() as conn:
                removed = self._delete_client_rows(conn, entity_id)

            logger.info("client_data_reset", client_id=entity_id, removed_rows=removed)
            return removed

        except duckdb.Error as e:
            logger.error("reset_client_data_failed", client_id=entity_id, error=str(e))
            raise StorageError(f"Failed to reset client data: {e}") from e

    def _delete_client_rows(self, conn, entity_id: str) -> int:
        cohort_scope = "cohort_id IN (SELECT cohort_id FROM cohorts WHERE client_id = ?)"
        removed = self._count(conn, "marketing_costs", "client_id = ?", [entity_id])
        removed += self._count(conn, "funnel_data", cohort_scope, [entity_id])
        conn.execute("DELETE FROM marketing_costs WHERE client_id = ?", [entity_id])
        conn.execute(f"DELETE FROM funnel_data WHERE {cohort_scope}", [entity_id])
        return removed

    def _delete_day(self, conn, entity_id: str, day: date) -> int:
        cost_scope = "client_id = ? AND entry_date = ?"
        funnel_scope = (
            "entry_date = ? AND cohort_id IN "
            "(SELECT cohort_id FROM cohorts WHERE client_id = ?)"
        )
        removed = self._count(conn, "marketing_costs", cost_scope, [entity_id, day])
        removed += self._count(conn, "funnel_data", funnel_scope, [day, entity_id])
        conn.execute(f"DELETE FROM marketing_costs WHERE {cost_scope}", [entity_id, day])
        conn.execute(f"DELETE FROM funnel_data WHERE {funnel_scope}", [day, entity_id])
        return removed

    @staticmethod
    def _count(conn, table: str, where: str, params: list) -> int:
        return int(conn.execute(f"SELECT COUNT(*) FROM {table} WHERE {where}", params).fetchone()[0])

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def ping(self) -> bool:
        try:
            with self._get_connection() as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except duckdb.Error as e:
            logger.error("duckdb_ping_failed", error=str(e))
            raise StorageError(f"DuckDB ping failed: {e}") from e
