"""
Pydantic v2 data models for the analytics service.

Model Organization:
    - enums: Enumeration types (client status, history grouping, delete scope)
    - analytics: Raw totals, calculated metrics, growth, history and rollup reports
    - clients: Clients and manually entered daily funnel/cost data
    - projections: Projection simulator inputs and outputs
"""

from .analytics import (
    AgencyFinancials,
    AgencyFunnel,
    AgencyPerformanceReport,
    CalculatedMetrics,
    ConversionMetrics,
    DailyRevenueLeads,
    DateRange,
    FinancialMetrics,
    GrowthReport,
    HistoryPoint,
    MarketingMetrics,
    PerformanceReport,
    RawPeriodTotals,
)
from .clients import Client, DailyEntry, DailyEntryResult
from .enums import ClientStatus, DeleteAction, GroupBy
from .projections import (
    InvestmentPlan,
    InvestmentPlanRequest,
    RevenueProjection,
    RevenueProjectionRequest,
    ViabilityLimits,
    ViabilityRequest,
)

__all__ = [
    # Enums
    "ClientStatus",
    "DeleteAction",
    "GroupBy",
    # Analytics
    "AgencyFinancials",
    "AgencyFunnel",
    "AgencyPerformanceReport",
    "CalculatedMetrics",
    "ConversionMetrics",
    "DailyRevenueLeads",
    "DateRange",
    "FinancialMetrics",
    "GrowthReport",
    "HistoryPoint",
    "MarketingMetrics",
    "PerformanceReport",
    "RawPeriodTotals",
    # Clients
    "Client",
    "DailyEntry",
    "DailyEntryResult",
    # Projections
    "InvestmentPlan",
    "InvestmentPlanRequest",
    "RevenueProjection",
    "RevenueProjectionRequest",
    "ViabilityLimits",
    "ViabilityRequest",
]
