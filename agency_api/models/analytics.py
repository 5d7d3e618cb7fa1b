"""
Analytics models: raw period totals, derived KPIs, growth and chart history.

Everything here is an ephemeral per-request value. Nothing is persisted;
metrics are always recomputed from the raw totals read from storage.
"""

from datetime import date, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DateRange(BaseModel):
    """
    Closed day interval [start, end].

    Both ends are inclusive. An end supplied by a caller counts as end-of-day,
    so every record dated on ``end`` belongs to the range.
    """

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> int:
        """Number of calendar days covered, counting both ends."""
        return self.duration.days + 1


class RawPeriodTotals(BaseModel):
    """
    Sums of funnel and cost records over a date range for one client
    (or all active clients), plus the client's margin.

    The margin is configuration looked up once per report, never summed.

    Attributes:
        ad_spend: Paid media spend
        creative_cost: Design / video production cost
        agency_fee: Agency fee booked as a cost record
        software_cost: Tooling cost
        other_costs: Any remaining marketing cost
        impressions: Ad impressions
        clicks: Ad clicks
        leads: Captured leads
        appointments: Booked appointments
        sales: Closed sales
        revenue: Revenue attributed to the funnel
        margin_percent: Client contribution margin as a fraction (0.30 = 30%)
    """

    ad_spend: float = Field(default=0.0, ge=0)
    creative_cost: float = Field(default=0.0, ge=0)
    agency_fee: float = Field(default=0.0, ge=0)
    software_cost: float = Field(default=0.0, ge=0)
    other_costs: float = Field(default=0.0, ge=0)

    impressions: int = Field(default=0, ge=0)
    clicks: int = Field(default=0, ge=0)
    leads: int = Field(default=0, ge=0)
    appointments: int = Field(default=0, ge=0)
    sales: int = Field(default=0, ge=0)
    revenue: float = Field(default=0.0, ge=0)

    margin_percent: float = Field(default=0.0, ge=0, le=1)

    @property
    def total_marketing_cost(self) -> float:
        return (
            self.ad_spend
            + self.creative_cost
            + self.agency_fee
            + self.software_cost
            + self.other_costs
        )


class MarketingMetrics(BaseModel):
    """Top-of-funnel traffic metrics."""

    ctr: float = Field(description="Click-through rate (%)")
    cpc: float = Field(description="Cost per click")
    cpm: float = Field(description="Cost per thousand impressions")


class ConversionMetrics(BaseModel):
    """Mid/bottom-of-funnel conversion metrics."""

    cpl: float = Field(description="Cost per lead (ad spend only)")
    lead_rate: float = Field(description="Leads per click (%)")
    close_rate: float = Field(description="Sales per lead (%)")
    appointment_rate: float = Field(description="Appointments per lead (%)")


class FinancialMetrics(BaseModel):
    """Money metrics; net_profit is the bottom-line figure users act on."""

    total_cost: float = Field(description="All marketing costs")
    cac: float = Field(description="Customer acquisition cost (total cost per sale)")
    roas: float = Field(description="Revenue per unit of ad spend")
    roi: float = Field(description="Return on total cost (%)")
    average_ticket: float = Field(description="Revenue per sale")
    gross_profit: float = Field(description="Revenue times margin")
    net_profit: float = Field(description="Gross profit minus total cost")


class CalculatedMetrics(BaseModel):
    """Derived KPIs computed from RawPeriodTotals."""

    marketing: MarketingMetrics
    conversion: ConversionMetrics
    financial: FinancialMetrics


class GrowthReport(BaseModel):
    """
    Period-over-period growth (%) for the metrics shown to the user.

    See ``calculate_growth`` for the zero-previous rule.
    """

    revenue: float
    total_cost: float
    leads: float
    sales: float
    roas: float
    roi: float
    cac: float
    average_ticket: float
    impressions: float
    clicks: float
    ctr: float
    cpc: float
    cpl: float
    lead_rate: float
    close_rate: float


class PerformanceReport(BaseModel):
    """Single-client performance for a period, compared to the preceding window."""

    client_id: str
    niche: Optional[str] = None
    period: DateRange
    previous_period: DateRange
    raw: RawPeriodTotals
    metrics: CalculatedMetrics
    growth: GrowthReport


class DailyRevenueLeads(BaseModel):
    """Per-day sum of revenue and leads, as returned by storage."""

    day: date
    revenue: float = 0.0
    leads: int = 0


class HistoryPoint(BaseModel):
    """
    One chart bucket.

    ``date`` is the bucket key: the day itself, the Monday starting the week,
    or the first day of the month. ``label`` is the display string.
    """

    date: date
    label: str
    revenue: float
    leads: int


class AgencyFinancials(BaseModel):
    revenue: float
    ad_spend: float
    flat_fees: float
    invested: float
    gross_profit: float
    net_profit: float
    roi: float
    roas: float
    cac: float
    average_ticket: float


class AgencyFunnel(BaseModel):
    impressions: int
    clicks: int
    leads: int
    sales: int
    cpl: float
    ctr: float
    lead_rate: float
    close_rate: float


class AgencyPerformanceReport(BaseModel):
    """Rollup over every active client. Carries no growth block."""

    period: DateRange
    entity_count: int
    financial: AgencyFinancials
    funnel: AgencyFunnel
