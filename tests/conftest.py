"""
Pytest configuration and shared fixtures for the analytics test suite.

Provides model factories, an in-memory MockStorage, a DuckDB storage on a
temp file, and a FastAPI test client bound to an isolated database.
"""

import os
import tempfile
import uuid as _uuid
from datetime import date
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing the app. DuckDB creates the file,
# so the path must not exist yet.
_test_db_path = os.path.join(
    tempfile.gettempdir(), f"agency_test_{_uuid.uuid4().hex[:8]}.duckdb"
)
os.environ["TESTING"] = "true"
os.environ["DB_PATH"] = _test_db_path
os.environ["DEV_MODE"] = "true"


from agency_api.exceptions import EntityNotFoundError
from agency_api.models.analytics import DailyRevenueLeads, DateRange, RawPeriodTotals
from agency_api.models.clients import Client, DailyEntry, DailyEntryResult
from agency_api.models.enums import ClientStatus
from agency_api.storage.duckdb_storage import DuckDBStorage


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------

_FUNNEL_FIELDS = ("impressions", "clicks", "leads", "appointments", "sales", "revenue")
_COST_FIELDS = ("ad_spend", "creative_cost", "agency_fee", "software_cost", "other_costs")


def make_totals(**overrides) -> RawPeriodTotals:
    """RawPeriodTotals matching the reference example (ROI 100%, net profit -400)."""
    defaults = dict(
        ad_spend=1000.0,
        creative_cost=0.0,
        agency_fee=0.0,
        software_cost=0.0,
        other_costs=0.0,
        impressions=50000,
        clicks=500,
        leads=40,
        appointments=20,
        sales=4,
        revenue=2000.0,
        margin_percent=0.3,
    )
    defaults.update(overrides)
    return RawPeriodTotals(**defaults)


def make_client(
    name: str = "Acme Ltda",
    margin_percent: float = 0.3,
    contract_value: float = 0.0,
    status: ClientStatus = ClientStatus.ACTIVE,
    **overrides,
) -> Client:
    defaults = dict(
        name=name,
        niche="ECOMMERCE",
        status=status,
        margin_percent=margin_percent,
        contract_value=contract_value,
    )
    defaults.update(overrides)
    return Client(**defaults)


def make_entry(client_id: str, entry_date: date, **overrides) -> DailyEntry:
    defaults = dict(
        client_id=client_id,
        entry_date=entry_date,
        impressions=3000,
        clicks=200,
        leads=16,
        appointments=8,
        sales=2,
        revenue=300.0,
        ad_spend=250.0,
        agency_fee=0.0,
    )
    defaults.update(overrides)
    return DailyEntry(**defaults)


def date_range(start: str, end: str) -> DateRange:
    return DateRange(start=date.fromisoformat(start), end=date.fromisoformat(end))


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


class MockStorage:
    """
    In-memory stand-in for StorageBackend.

    Keeps funnel and cost rows as dicts and records every aggregate read in
    ``reads`` so tests can assert what was (or was not) queried.
    """

    def __init__(self):
        self._clients: dict[str, Client] = {}
        self._funnel: list[dict] = []
        self._costs: list[dict] = []
        self.reads: list[tuple] = []

    # --- Test helpers ---
    def add_client(self, client: Client) -> Client:
        self._clients[client.client_id] = client
        return client

    def add_day(self, client_id: str, day: date, **values) -> None:
        self._funnel.append(
            {"client_id": client_id, "day": day, **{f: values.get(f, 0) for f in _FUNNEL_FIELDS}}
        )
        self._costs.append(
            {"client_id": client_id, "day": day, **{f: values.get(f, 0) for f in _COST_FIELDS}}
        )

    def _in_scope(self, row: dict, entity_id: Optional[str], rng: DateRange) -> bool:
        if not rng.start <= row["day"] <= rng.end:
            return False
        if entity_id is None:
            client = self._clients.get(row["client_id"])
            return client is not None and client.status == ClientStatus.ACTIVE
        return row["client_id"] == entity_id

    # --- Aggregate reads ---
    def sum_funnel_and_costs(self, entity_id, date_range):
        self.reads.append(("sum_funnel_and_costs", entity_id, date_range))
        funnel = [r for r in self._funnel if self._in_scope(r, entity_id, date_range)]
        costs = [r for r in self._costs if self._in_scope(r, entity_id, date_range)]
        values = {f: sum(r[f] for r in funnel) for f in _FUNNEL_FIELDS}
        values.update({f: sum(r[f] for r in costs) for f in _COST_FIELDS})
        return RawPeriodTotals(**values)

    def get_entity_margin_percent(self, entity_id):
        self.reads.append(("get_entity_margin_percent", entity_id))
        return self.get_entity(entity_id).margin_percent

    def sum_daily_revenue_and_leads(self, entity_id, date_range):
        self.reads.append(("sum_daily_revenue_and_leads", entity_id, date_range))
        by_day: dict[date, list] = {}
        for r in self._funnel:
            if self._in_scope(r, entity_id, date_range):
                acc = by_day.setdefault(r["day"], [0.0, 0])
                acc[0] += r["revenue"]
                acc[1] += r["leads"]
        return [DailyRevenueLeads(day=d, revenue=v[0], leads=v[1]) for d, v in by_day.items()]

    def list_active_entities(self):
        self.reads.append(("list_active_entities",))
        return [c for c in self._clients.values() if c.status == ClientStatus.ACTIVE]

    # --- Clients ---
    def get_entity(self, entity_id):
        self.reads.append(("get_entity", entity_id))
        if entity_id not in self._clients:
            raise EntityNotFoundError(entity_id)
        return self._clients[entity_id]

    def create_entity(self, client):
        self._clients[client.client_id] = client
        return client.client_id

    def set_entity_margin(self, entity_id, margin_percent):
        client = self.get_entity(entity_id).model_copy(update={"margin_percent": margin_percent})
        self._clients[entity_id] = client
        return client

    # --- Daily data ---
    def record_daily_entry(self, entry):
        self.get_entity(entry.client_id)
        replaced = self.delete_daily_entry(entry.client_id, entry.entry_date)
        self.add_day(
            entry.client_id,
            entry.entry_date,
            **entry.model_dump(exclude={"client_id", "entry_date", "cohort_name"}),
        )
        return DailyEntryResult(
            client_id=entry.client_id,
            entry_date=entry.entry_date,
            cohort_id="manual",
            replaced_rows=replaced,
        )

    def delete_daily_entry(self, entity_id, day):
        before = len(self._funnel) + len(self._costs)
        target = (entity_id, day)
        self._funnel = [r for r in self._funnel if (r["client_id"], r["day"]) != target]
        self._costs = [r for r in self._costs if (r["client_id"], r["day"]) != target]
        return before - len(self._funnel) - len(self._costs)

    def reset_entity_data(self, entity_id):
        before = len(self._funnel) + len(self._costs)
        self._funnel = [r for r in self._funnel if r["client_id"] != entity_id]
        self._costs = [r for r in self._costs if r["client_id"] != entity_id]
        return before - len(self._funnel) - len(self._costs)

    def ping(self):
        return True


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_storage():
    """Fresh MockStorage instance for each test."""
    return MockStorage()


@pytest.fixture
def duckdb_storage(tmp_path):
    """DuckDB storage on a per-test database file."""
    return DuckDBStorage(db_path=str(tmp_path / "agency.duckdb"))


@pytest.fixture
def client():
    """FastAPI test client for integration tests."""
    from agency_api.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def request_headers():
    return {"X-Request-ID": str(_uuid.uuid4())}
