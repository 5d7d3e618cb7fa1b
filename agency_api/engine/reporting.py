"""
Reporting aggregation service.

Fetches date-ranged sums from storage, runs the metrics engine on the
requested period and on the comparison period, derives growth, and buckets
daily revenue/leads into day, week or month chart series.

Comparison policy: the previous period is a sliding window of the same
length ending the day before the requested start (a 7-day range is compared
with the 7 days before it). It is NOT calendar aligned ("same days last
month"); changing that would change every reported growth number.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Optional, Union

import structlog

from agency_api.engine.metrics_engine import calculate_growth, calculate_metrics, safe_div
from agency_api.exceptions import InvalidDateRangeError
from agency_api.models.analytics import (
    AgencyFinancials,
    AgencyFunnel,
    AgencyPerformanceReport,
    CalculatedMetrics,
    DailyRevenueLeads,
    DateRange,
    GrowthReport,
    HistoryPoint,
    PerformanceReport,
    RawPeriodTotals,
)
from agency_api.models.enums import GroupBy
from agency_api.storage.base import StorageBackend

logger = structlog.get_logger()

# pt-BR month abbreviations used in chart labels ("Dez/24").
MONTH_LABELS = (
    "Jan", "Fev", "Mar", "Abr", "Mai", "Jun",
    "Jul", "Ago", "Set", "Out", "Nov", "Dez",
)


def ensure_valid_range(date_range: DateRange) -> None:
    if date_range.end < date_range.start:
        raise InvalidDateRangeError(date_range.start, date_range.end)


def comparison_period(date_range: DateRange) -> DateRange:
    """
    Equal-length window immediately preceding ``date_range``.

    prev_end = start - 1 day, prev_start = prev_end - (end - start).

    Raises:
        InvalidDateRangeError: If that window would start before ``date.min``
    """
    try:
        prev_end = date_range.start - timedelta(days=1)
        prev_start = prev_end - date_range.duration
    except OverflowError:
        raise InvalidDateRangeError(
            date_range.start,
            date_range.end,
            reason=f"no comparison period precedes start {date_range.start.isoformat()}",
        ) from None
    return DateRange(start=prev_start, end=prev_end)


def bucket_start(day: date, group_by: GroupBy) -> date:
    """Bucket key for a day: itself, its Monday, or the first of its month."""
    if group_by == GroupBy.WEEK:
        return day - timedelta(days=day.weekday())
    if group_by == GroupBy.MONTH:
        return day.replace(day=1)
    return day


def bucket_label(start: date, group_by: GroupBy) -> str:
    if group_by == GroupBy.MONTH:
        return f"{MONTH_LABELS[start.month - 1]}/{start.year % 100:02d}"
    return f"{start.day:02d}/{start.month:02d}"


def group_history(
    daily: list[DailyRevenueLeads],
    group_by: Union[GroupBy, str] = GroupBy.DAY,
) -> list[HistoryPoint]:
    """
    Bucket daily rows and sum revenue and leads per bucket.

    Buckets are keyed and ordered by their start date, never by label, so
    "Dez/24" always precedes "Jan/25".
    """
    group_by = GroupBy(group_by)

    revenue: dict[date, float] = defaultdict(float)
    leads: dict[date, int] = defaultdict(int)
    for row in daily:
        key = bucket_start(row.day, group_by)
        revenue[key] += row.revenue
        leads[key] += row.leads

    return [
        HistoryPoint(
            date=key,
            label=bucket_label(key, group_by),
            revenue=revenue[key],
            leads=leads[key],
        )
        for key in sorted(revenue)
    ]


def growth_between(
    current_raw: RawPeriodTotals,
    current: CalculatedMetrics,
    previous_raw: RawPeriodTotals,
    previous: CalculatedMetrics,
) -> GrowthReport:
    """Growth for the fixed list of metrics surfaced next to each KPI."""
    return GrowthReport(
        revenue=calculate_growth(current_raw.revenue, previous_raw.revenue),
        total_cost=calculate_growth(current.financial.total_cost, previous.financial.total_cost),
        leads=calculate_growth(current_raw.leads, previous_raw.leads),
        sales=calculate_growth(current_raw.sales, previous_raw.sales),
        roas=calculate_growth(current.financial.roas, previous.financial.roas),
        roi=calculate_growth(current.financial.roi, previous.financial.roi),
        cac=calculate_growth(current.financial.cac, previous.financial.cac),
        average_ticket=calculate_growth(
            current.financial.average_ticket, previous.financial.average_ticket
        ),
        impressions=calculate_growth(current_raw.impressions, previous_raw.impressions),
        clicks=calculate_growth(current_raw.clicks, previous_raw.clicks),
        ctr=calculate_growth(current.marketing.ctr, previous.marketing.ctr),
        cpc=calculate_growth(current.marketing.cpc, previous.marketing.cpc),
        cpl=calculate_growth(current.conversion.cpl, previous.conversion.cpl),
        lead_rate=calculate_growth(current.conversion.lead_rate, previous.conversion.lead_rate),
        close_rate=calculate_growth(
            current.conversion.close_rate, previous.conversion.close_rate
        ),
    )


class ReportingService:
    """
    Builds client and agency-wide reports from storage aggregates.

    Stateless apart from the storage handle: every call re-reads storage and
    recomputes, and any storage failure aborts the whole report.
    """

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        self.logger = structlog.get_logger()

    def get_performance(self, entity_id: str, date_range: DateRange) -> PerformanceReport:
        """
        Client KPIs for ``date_range`` with growth against the comparison period.

        The client is read once; its margin feeds both periods and its niche
        is echoed on the report.

        Raises:
            InvalidDateRangeError: If end is before start, or no comparison
                period fits before start (checked before any read)
            EntityNotFoundError: If the client does not exist; no default margin is used
        """
        ensure_valid_range(date_range)
        previous_range = comparison_period(date_range)

        client = self.storage.get_entity(entity_id)
        margin = client.margin_percent

        current_raw = self._fetch_totals(entity_id, date_range, margin)
        previous_raw = self._fetch_totals(entity_id, previous_range, margin)

        current = calculate_metrics(current_raw)
        previous = calculate_metrics(previous_raw)
        growth = growth_between(current_raw, current, previous_raw, previous)

        self.logger.info(
            "performance_report_computed",
            client_id=entity_id,
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
            previous_start=previous_range.start.isoformat(),
            revenue=current_raw.revenue,
            net_profit=current.financial.net_profit,
        )

        return PerformanceReport(
            client_id=entity_id,
            niche=client.niche,
            period=date_range,
            previous_period=previous_range,
            raw=current_raw,
            metrics=current,
            growth=growth,
        )

    def get_history(
        self,
        entity_id: Optional[str],
        date_range: DateRange,
        group_by: Union[GroupBy, str] = GroupBy.DAY,
    ) -> list[HistoryPoint]:
        """Chart series of revenue and leads for one client, or all active clients when None."""
        ensure_valid_range(date_range)
        group_by = GroupBy(group_by)

        daily = self.storage.sum_daily_revenue_and_leads(entity_id, date_range)
        points = group_history(daily, group_by)

        self.logger.info(
            "history_computed",
            client_id=entity_id,
            group_by=group_by.value,
            days_with_data=len(daily),
            points=len(points),
        )
        return points

    def get_agency_performance(self, date_range: DateRange) -> AgencyPerformanceReport:
        """
        Rollup across every active client.

        Investment is the ranged ad spend plus each client's flat fee taken as
        a current snapshot. Gross profit applies each client's own margin to
        that client's revenue before summing; margins are never averaged.
        No growth is computed for the rollup.
        """
        ensure_valid_range(date_range)
        clients = self.storage.list_active_entities()

        revenue = ad_spend = flat_fees = gross_profit = 0.0
        impressions = clicks = leads = sales = 0

        for client in clients:
            totals = self.storage.sum_funnel_and_costs(client.client_id, date_range)

            revenue += totals.revenue
            ad_spend += totals.ad_spend
            flat_fees += client.contract_value
            gross_profit += totals.revenue * client.margin_percent

            impressions += totals.impressions
            clicks += totals.clicks
            leads += totals.leads
            sales += totals.sales

        invested = ad_spend + flat_fees
        net_profit = gross_profit - invested

        report = AgencyPerformanceReport(
            period=date_range,
            entity_count=len(clients),
            financial=AgencyFinancials(
                revenue=revenue,
                ad_spend=ad_spend,
                flat_fees=flat_fees,
                invested=invested,
                gross_profit=gross_profit,
                net_profit=net_profit,
                roi=safe_div(net_profit, invested) * 100,
                roas=safe_div(revenue, invested),
                cac=safe_div(invested, sales),
                average_ticket=safe_div(revenue, sales),
            ),
            funnel=AgencyFunnel(
                impressions=impressions,
                clicks=clicks,
                leads=leads,
                sales=sales,
                cpl=safe_div(invested, leads),
                ctr=safe_div(clicks, impressions) * 100,
                lead_rate=safe_div(leads, clicks) * 100,
                close_rate=safe_div(sales, leads) * 100,
            ),
        )

        self.logger.info(
            "agency_report_computed",
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
            clients=len(clients),
            invested=invested,
            net_profit=net_profit,
        )
        return report

    def get_agency_history(
        self,
        date_range: DateRange,
        group_by: Union[GroupBy, str] = GroupBy.DAY,
    ) -> list[HistoryPoint]:
        return self.get_history(None, date_range, group_by)

    def _fetch_totals(
        self, entity_id: str, date_range: DateRange, margin: float
    ) -> RawPeriodTotals:
        totals = self.storage.sum_funnel_and_costs(entity_id, date_range)
        return totals.model_copy(update={"margin_percent": margin})
