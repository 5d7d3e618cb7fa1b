"""
Projection simulator models.

Rates (close_rate, target_roi) are percentages, matching the engine's
output units. margin_percent is a fraction, matching client configuration.
"""

from pydantic import BaseModel, Field


class RevenueProjectionRequest(BaseModel):
    """Given an investment, how much revenue can it produce?"""

    investment: float = Field(ge=0)
    cpl: float = Field(ge=0, description="Expected cost per lead")
    close_rate: float = Field(ge=0, le=100, description="Expected close rate (%)")
    average_ticket: float = Field(ge=0)


class RevenueProjection(BaseModel):
    leads: float
    sales: float
    revenue: float
    roas: float


class InvestmentPlanRequest(BaseModel):
    """To reach a revenue target, how much must be invested?"""

    target_revenue: float = Field(ge=0)
    average_ticket: float = Field(ge=0)
    close_rate: float = Field(ge=0, le=100, description="Expected close rate (%)")
    cpl: float = Field(ge=0, description="Expected cost per lead")


class InvestmentPlan(BaseModel):
    sales_needed: float
    leads_needed: float
    investment_needed: float
    whole_sales_needed: int
    whole_leads_needed: int


class ViabilityRequest(BaseModel):
    """What are the highest CAC and CPL that still deliver the target ROI?"""

    average_ticket: float = Field(ge=0)
    margin_percent: float = Field(ge=0, le=1)
    target_roi: float = Field(ge=0, description="Desired ROI (%)")
    close_rate: float = Field(ge=0, le=100, description="Expected close rate (%)")


class ViabilityLimits(BaseModel):
    margin_value: float
    max_cac: float
    max_cpl: float
