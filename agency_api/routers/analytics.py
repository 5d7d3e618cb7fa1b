"""
Analytics report router.

Wired to:
- ReportingService for client and agency-wide performance
- StorageBackend for funnel, cost and client reads
"""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException

from agency_api.config import get_settings
from agency_api.engine.reporting import ReportingService
from agency_api.exceptions import EntityNotFoundError, InvalidDateRangeError
from agency_api.models.analytics import DateRange
from agency_api.models.enums import GroupBy
from agency_api.storage import get_storage
from agency_api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def resolve_range(start: Optional[date], end: Optional[date]) -> DateRange:
    """Default to the last ``default_report_days`` days ending today."""
    end = end or date.today()
    if start is None:
        try:
            start = end - timedelta(days=get_settings().default_report_days)
        except OverflowError:
            start = date.min
    return DateRange(start=start, end=end)


@router.get("/report")
async def get_client_report(
    client_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    group_by: GroupBy = GroupBy.DAY,
):
    """
    Client performance for a period plus its chart history.
    Growth compares against the equal-length window just before ``start``.
    """
    date_range = resolve_range(start, end)
    logger.info(
        "analytics_report",
        client_id=client_id,
        start=date_range.start.isoformat(),
        end=date_range.end.isoformat(),
        group_by=group_by.value,
    )

    service = ReportingService(storage=get_storage())

    try:
        report = service.get_performance(client_id, date_range)
        history = service.get_history(client_id, date_range, group_by)
    except InvalidDateRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "success": True,
        "data": {
            "report": report.model_dump(mode="json"),
            "history": [p.model_dump(mode="json") for p in history],
        },
    }


@router.get("/general")
async def get_agency_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    group_by: GroupBy = GroupBy.DAY,
):
    """Agency-wide rollup over active clients plus combined chart history."""
    date_range = resolve_range(start, end)
    logger.info(
        "analytics_general",
        start=date_range.start.isoformat(),
        end=date_range.end.isoformat(),
        group_by=group_by.value,
    )

    service = ReportingService(storage=get_storage())

    try:
        report = service.get_agency_performance(date_range)
        history = service.get_agency_history(date_range, group_by)
    except InvalidDateRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "data": {
            "report": report.model_dump(mode="json"),
            "history": [p.model_dump(mode="json") for p in history],
        },
    }
