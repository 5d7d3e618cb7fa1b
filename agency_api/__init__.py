"""
Agency analytics API.

Turns raw funnel and cost records of a marketing agency's clients into KPIs
(CTR, CPL, CAC, ROAS, ROI, net profit), period-over-period growth and
day/week/month chart history.
"""

__version__ = "0.1.0"
