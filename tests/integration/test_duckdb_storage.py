"""
Integration tests for DuckDB storage on a real database file.
"""

from datetime import date

import duckdb
import pytest

from agency_api.engine.reporting import ReportingService
from agency_api.exceptions import EntityNotFoundError
from agency_api.models.enums import ClientStatus, GroupBy
from agency_api.storage.duckdb_storage import DuckDBStorage, StorageError
from tests.conftest import date_range, make_client, make_entry


@pytest.fixture
def acme(duckdb_storage):
    client = make_client("Acme", margin_percent=0.35, contract_value=1500)
    duckdb_storage.create_entity(client)
    return client


class TestClients:
    def test_create_and_read(self, duckdb_storage, acme):
        stored = duckdb_storage.get_entity(acme.client_id)
        assert stored.name == "Acme"
        assert stored.margin_percent == pytest.approx(0.35)
        assert stored.contract_value == pytest.approx(1500.0)
        assert stored.status == ClientStatus.ACTIVE

    def test_missing_client_raises(self, duckdb_storage):
        with pytest.raises(EntityNotFoundError):
            duckdb_storage.get_entity("nope")

    def test_margin_lookup(self, duckdb_storage, acme):
        assert duckdb_storage.get_entity_margin_percent(acme.client_id) == pytest.approx(0.35)

    def test_set_margin(self, duckdb_storage, acme):
        updated = duckdb_storage.set_entity_margin(acme.client_id, 0.5)
        assert updated.margin_percent == pytest.approx(0.5)
        assert duckdb_storage.get_entity_margin_percent(acme.client_id) == pytest.approx(0.5)

    def test_set_margin_missing_client(self, duckdb_storage):
        with pytest.raises(EntityNotFoundError):
            duckdb_storage.set_entity_margin("nope", 0.5)

    def test_list_active_only(self, duckdb_storage, acme):
        duckdb_storage.create_entity(make_client("Old", status=ClientStatus.INACTIVE))
        active = duckdb_storage.list_active_entities()
        assert [c.client_id for c in active] == [acme.client_id]


class TestDateRangeFiltering:
    @pytest.fixture
    def seeded(self, duckdb_storage, acme):
        for day, revenue in (
            (date(2024, 2, 29), 1000.0),
            (date(2024, 3, 1), 10.0),
            (date(2024, 3, 3), 20.0),
            (date(2024, 3, 5), 40.0),
            (date(2024, 3, 6), 5000.0),
        ):
            duckdb_storage.record_daily_entry(
                make_entry(acme.client_id, day, revenue=revenue, leads=1, ad_spend=1.0)
            )
        return duckdb_storage, acme

    def test_bounds_are_inclusive(self, seeded):
        storage, acme = seeded
        totals = storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-01", "2024-03-05"))
        assert totals.revenue == pytest.approx(70.0)
        assert totals.leads == 3
        assert totals.ad_spend == pytest.approx(3.0)

    def test_single_day_range(self, seeded):
        storage, acme = seeded
        totals = storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-05", "2024-03-05"))
        assert totals.revenue == pytest.approx(40.0)

    def test_empty_range_sums_to_zero(self, seeded):
        storage, acme = seeded
        totals = storage.sum_funnel_and_costs(acme.client_id, date_range("2023-01-01", "2023-01-31"))
        assert totals.revenue == 0
        assert totals.impressions == 0
        assert totals.total_marketing_cost == 0

    def test_daily_series_inside_range_and_sorted(self, seeded):
        storage, acme = seeded
        daily = storage.sum_daily_revenue_and_leads(acme.client_id, date_range("2024-03-01", "2024-03-05"))
        assert [d.day for d in daily] == [date(2024, 3, 1), date(2024, 3, 3), date(2024, 3, 5)]

    def test_no_leakage_between_clients(self, seeded):
        storage, acme = seeded
        other = make_client("Other")
        storage.create_entity(other)
        storage.record_daily_entry(make_entry(other.client_id, date(2024, 3, 3), revenue=999.0))

        totals = storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-01", "2024-03-05"))
        assert totals.revenue == pytest.approx(70.0)


class TestActiveFilter:
    def test_all_clients_means_active_only(self, duckdb_storage, acme):
        inactive = make_client("Paused", status=ClientStatus.INACTIVE)
        duckdb_storage.create_entity(inactive)
        day = date(2024, 3, 3)
        duckdb_storage.record_daily_entry(make_entry(acme.client_id, day, revenue=100.0, leads=2))
        duckdb_storage.record_daily_entry(make_entry(inactive.client_id, day, revenue=900.0, leads=9))

        rng = date_range("2024-03-01", "2024-03-31")
        totals = duckdb_storage.sum_funnel_and_costs(None, rng)
        daily = duckdb_storage.sum_daily_revenue_and_leads(None, rng)

        assert totals.revenue == pytest.approx(100.0)
        assert [(d.revenue, d.leads) for d in daily] == [(100.0, 2)]

    def test_inactive_client_still_reportable_directly(self, duckdb_storage):
        inactive = make_client("Paused", status=ClientStatus.INACTIVE)
        duckdb_storage.create_entity(inactive)
        duckdb_storage.record_daily_entry(make_entry(inactive.client_id, date(2024, 3, 3), revenue=900.0))
        totals = duckdb_storage.sum_funnel_and_costs(inactive.client_id, date_range("2024-03-01", "2024-03-31"))
        assert totals.revenue == pytest.approx(900.0)


class TestDailyEntries:
    def test_entry_replaces_same_day(self, duckdb_storage, acme):
        day = date(2024, 3, 3)
        first = duckdb_storage.record_daily_entry(make_entry(acme.client_id, day, revenue=100.0))
        second = duckdb_storage.record_daily_entry(make_entry(acme.client_id, day, revenue=250.0))

        assert first.replaced_rows == 0
        assert second.replaced_rows == 2
        totals = duckdb_storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-03", "2024-03-03"))
        assert totals.revenue == pytest.approx(250.0)

    def test_entries_share_manual_cohort(self, duckdb_storage, acme):
        a = duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 1)))
        b = duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 2)))
        assert a.cohort_id == b.cohort_id

    def test_named_cohort(self, duckdb_storage, acme):
        a = duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 1)))
        b = duckdb_storage.record_daily_entry(
            make_entry(acme.client_id, date(2024, 3, 2), cohort_name="Black Friday")
        )
        assert a.cohort_id != b.cohort_id

    def test_entry_for_missing_client(self, duckdb_storage):
        with pytest.raises(EntityNotFoundError):
            duckdb_storage.record_daily_entry(make_entry("nope", date(2024, 3, 1)))

    def test_all_cost_lines_stored(self, duckdb_storage, acme):
        duckdb_storage.record_daily_entry(
            make_entry(
                acme.client_id, date(2024, 3, 1),
                ad_spend=100.0, creative_cost=20.0, agency_fee=30.0, software_cost=5.0, other_costs=1.5,
            )
        )
        totals = duckdb_storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-01", "2024-03-01"))
        assert totals.total_marketing_cost == pytest.approx(156.5)

    def test_delete_day(self, duckdb_storage, acme):
        duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 1)))
        duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 2)))

        assert duckdb_storage.delete_daily_entry(acme.client_id, date(2024, 3, 1)) == 2
        assert duckdb_storage.delete_daily_entry(acme.client_id, date(2024, 3, 1)) == 0

        daily = duckdb_storage.sum_daily_revenue_and_leads(acme.client_id, date_range("2024-03-01", "2024-03-31"))
        assert [d.day for d in daily] == [date(2024, 3, 2)]

    def test_reset_removes_only_that_client(self, duckdb_storage, acme):
        other = make_client("Other")
        duckdb_storage.create_entity(other)
        for day in (date(2024, 3, 1), date(2024, 3, 2)):
            duckdb_storage.record_daily_entry(make_entry(acme.client_id, day))
            duckdb_storage.record_daily_entry(make_entry(other.client_id, day))

        assert duckdb_storage.reset_entity_data(acme.client_id) == 4

        rng = date_range("2024-03-01", "2024-03-31")
        assert duckdb_storage.sum_funnel_and_costs(acme.client_id, rng).revenue == 0
        assert duckdb_storage.sum_funnel_and_costs(other.client_id, rng).revenue == pytest.approx(600.0)
        # client configuration survives a data reset
        assert duckdb_storage.get_entity(acme.client_id).contract_value == pytest.approx(1500.0)


class TestDeleteAtomicity:
    """A failure between the cost and funnel deletes leaves both tables untouched."""

    @pytest.fixture
    def two_days(self, duckdb_storage, acme):
        for day in (date(2024, 3, 1), date(2024, 3, 2)):
            duckdb_storage.record_daily_entry(
                make_entry(acme.client_id, day, revenue=100.0, ad_spend=40.0)
            )
        return duckdb_storage, acme

    @staticmethod
    def _costs_then_fail(conn, entity_id, *args):
        conn.execute("DELETE FROM marketing_costs WHERE client_id = ?", [entity_id])
        raise duckdb.Error("interrupted")

    def test_failed_day_delete_rolls_back(self, two_days, monkeypatch):
        storage, acme = two_days
        monkeypatch.setattr(storage, "_delete_day", self._costs_then_fail)

        with pytest.raises(StorageError):
            storage.delete_daily_entry(acme.client_id, date(2024, 3, 1))

        totals = storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-01", "2024-03-02"))
        assert totals.ad_spend == pytest.approx(80.0)
        assert totals.revenue == pytest.approx(200.0)

    def test_failed_reset_rolls_back(self, two_days, monkeypatch):
        storage, acme = two_days
        monkeypatch.setattr(storage, "_delete_client_rows", self._costs_then_fail)

        with pytest.raises(StorageError):
            storage.reset_entity_data(acme.client_id)

        totals = storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-01", "2024-03-02"))
        assert totals.ad_spend == pytest.approx(80.0)
        assert totals.revenue == pytest.approx(200.0)

    def test_connection_usable_after_rollback(self, two_days, monkeypatch):
        storage, acme = two_days
        monkeypatch.setattr(storage, "_delete_day", self._costs_then_fail)
        with pytest.raises(StorageError):
            storage.delete_daily_entry(acme.client_id, date(2024, 3, 1))
        monkeypatch.undo()

        assert storage.delete_daily_entry(acme.client_id, date(2024, 3, 1)) == 2


class TestRepeatability:
    def test_currency_sums_are_exact(self, duckdb_storage, acme):
        duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 1), revenue=0.1))
        duckdb_storage.record_daily_entry(make_entry(acme.client_id, date(2024, 3, 2), revenue=0.2))
        totals = duckdb_storage.sum_funnel_and_costs(acme.client_id, date_range("2024-03-01", "2024-03-02"))
        assert totals.revenue == 0.3

    def test_repeated_reports_identical(self, duckdb_storage, acme):
        for d in range(1, 15):
            duckdb_storage.record_daily_entry(
                make_entry(acme.client_id, date(2024, 3, d), revenue=123.45 + d, ad_spend=67.89)
            )
        service = ReportingService(duckdb_storage)
        rng = date_range("2024-03-08", "2024-03-14")

        assert service.get_performance(acme.client_id, rng).model_dump() == (
            service.get_performance(acme.client_id, rng).model_dump()
        )
        assert service.get_agency_performance(rng).model_dump() == (
            service.get_agency_performance(rng).model_dump()
        )
        assert service.get_history(acme.client_id, rng, GroupBy.WEEK) == (
            service.get_history(acme.client_id, rng, GroupBy.WEEK)
        )

    def test_ping(self, duckdb_storage):
        assert duckdb_storage.ping() is True


class TestClearForTesting:
    def test_noop_without_allow_clear(self, duckdb_storage, acme):
        duckdb_storage.clear_for_testing()
        assert duckdb_storage.get_entity(acme.client_id).name == "Acme"

    def test_truncates_when_allowed(self, tmp_path):
        storage = DuckDBStorage(db_path=str(tmp_path / "clear.duckdb"), allow_clear=True)
        client = make_client()
        storage.create_entity(client)
        storage.record_daily_entry(make_entry(client.client_id, date(2024, 3, 1)))

        storage.clear_for_testing()

        assert storage.list_active_entities() == []
        with pytest.raises(EntityNotFoundError):
            storage.get_entity(client.client_id)
