"""
Marketing metrics engine.

Pure functions converting raw funnel and cost totals into KPIs. No I/O, no
state. Every ratio goes through ``safe_div`` so a zero denominator yields 0
instead of NaN, Infinity or an exception; no report can carry a NaN.

CPL and CAC are asymmetric:
- CPL uses ad spend only (media efficiency at the top of the funnel)
- CAC uses total marketing cost (full cost of acquiring a paying customer)
"""

from agency_api.models.analytics import (
    CalculatedMetrics,
    ConversionMetrics,
    FinancialMetrics,
    MarketingMetrics,
    RawPeriodTotals,
)


def safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def calculate_metrics(totals: RawPeriodTotals) -> CalculatedMetrics:
    """
    Compute derived KPIs from raw period totals.

    Args:
        totals: Summed funnel and cost figures plus the client margin

    Returns:
        CalculatedMetrics grouped into marketing, conversion and financial
    """
    total_cost = totals.total_marketing_cost

    # Traffic
    ctr = safe_div(totals.clicks, totals.impressions) * 100
    cpc = safe_div(totals.ad_spend, totals.clicks)
    cpm = safe_div(totals.ad_spend, totals.impressions) * 1000

    # Conversion
    cpl = safe_div(totals.ad_spend, totals.leads)
    lead_rate = safe_div(totals.leads, totals.clicks) * 100
    appointment_rate = safe_div(totals.appointments, totals.leads) * 100
    close_rate = safe_div(totals.sales, totals.leads) * 100

    # Financial
    average_ticket = safe_div(totals.revenue, totals.sales)
    cac = safe_div(total_cost, totals.sales)
    roas = safe_div(totals.revenue, totals.ad_spend)
    roi = safe_div(totals.revenue - total_cost, total_cost) * 100

    # Revenue 1000 at 30% margin leaves 300 to pay for marketing.
    gross_profit = totals.revenue * totals.margin_percent
    net_profit = gross_profit - total_cost

    return CalculatedMetrics(
        marketing=MarketingMetrics(ctr=ctr, cpc=cpc, cpm=cpm),
        conversion=ConversionMetrics(
            cpl=cpl,
            lead_rate=lead_rate,
            close_rate=close_rate,
            appointment_rate=appointment_rate,
        ),
        financial=FinancialMetrics(
            total_cost=total_cost,
            cac=cac,
            roas=roas,
            roi=roi,
            average_ticket=average_ticket,
            gross_profit=gross_profit,
            net_profit=net_profit,
        ),
    )


def calculate_growth(current: float, previous: float) -> float:
    """
    Percentage change from previous to current.

    A zero previous value cannot be divided by, so growth is reported as 100
    when something started from nothing (current > 0) and 0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100
