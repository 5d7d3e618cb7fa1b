"""
Projection simulator.

Three planning calculators over the same funnel arithmetic the metrics
engine uses, run in reverse where needed:

- revenue:    investment -> leads -> sales -> revenue
- investment: revenue target -> sales -> leads -> investment
- viability:  margin and target ROI -> highest affordable CAC and CPL
"""

import math

from agency_api.engine.metrics_engine import safe_div
from agency_api.models.projections import InvestmentPlan, RevenueProjection, ViabilityLimits


def project_revenue(
    investment: float,
    cpl: float,
    close_rate: float,
    average_ticket: float,
) -> RevenueProjection:
    """Revenue expected from an investment at a given CPL, close rate (%) and ticket."""
    leads = safe_div(investment, cpl)
    sales = leads * (close_rate / 100)
    revenue = sales * average_ticket
    return RevenueProjection(
        leads=leads,
        sales=sales,
        revenue=revenue,
        roas=safe_div(revenue, investment),
    )


def required_investment(
    target_revenue: float,
    average_ticket: float,
    close_rate: float,
    cpl: float,
) -> InvestmentPlan:
    """Investment needed to reach a revenue target."""
    sales_needed = safe_div(target_revenue, average_ticket)
    leads_needed = safe_div(sales_needed, close_rate / 100)
    return InvestmentPlan(
        sales_needed=sales_needed,
        leads_needed=leads_needed,
        investment_needed=leads_needed * cpl,
        whole_sales_needed=math.ceil(sales_needed),
        whole_leads_needed=math.ceil(leads_needed),
    )


def viability_limits(
    average_ticket: float,
    margin_percent: float,
    target_roi: float,
    close_rate: float,
) -> ViabilityLimits:
    """
    Highest CAC and CPL that still return ``target_roi`` percent.

    max_cac = margin_value / (roi + 1), with roi as a fraction; above it the
    ROI falls below target. max_cpl scales that by the close rate.
    """
    margin_value = average_ticket * margin_percent
    max_cac = safe_div(margin_value, target_roi / 100 + 1)
    return ViabilityLimits(
        margin_value=margin_value,
        max_cac=max_cac,
        max_cpl=max_cac * (close_rate / 100),
    )
