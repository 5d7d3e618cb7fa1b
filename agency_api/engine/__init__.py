"""
Analytics engine components.

- metrics_engine: pure KPI calculation with safe division and growth
- reporting: period comparison, agency rollup and chart history over storage
- projections: planning calculators (revenue, investment, viability)
"""

__all__ = [
    "ReportingService",
    "calculate_growth",
    "calculate_metrics",
    "safe_div",
]

from agency_api.engine.metrics_engine import calculate_growth, calculate_metrics, safe_div
from agency_api.engine.reporting import ReportingService
