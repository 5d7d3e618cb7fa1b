"""
Daily entry router.

Manual entry of one day of funnel and cost data per client, and deletion of
a single day or of a client's whole history.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException

from agency_api.exceptions import EntityNotFoundError
from agency_api.models.clients import DailyEntry
from agency_api.models.enums import DeleteAction
from agency_api.storage import get_storage
from agency_api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def record_entry(entry: DailyEntry):
    """Save a day of data; an existing entry for that client and date is replaced."""
    storage = get_storage()
    try:
        result = storage.record_daily_entry(entry)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "data": result.model_dump(mode="json")}


@router.delete("")
async def delete_entries(
    client_id: str,
    action: DeleteAction,
    day: Optional[date] = None,
):
    """
    Delete funnel and cost data.

    ``action=single`` removes one date (``day`` required);
    ``action=reset_all`` removes every row of the client.
    """
    logger.info(
        "entries_delete",
        client_id=client_id,
        action=action.value,
        day=day.isoformat() if day else None,
    )

    storage = get_storage()

    if action == DeleteAction.RESET_ALL:
        removed = storage.reset_entity_data(client_id)
        return {
            "success": True,
            "data": {"client_id": client_id, "removed_rows": removed, "message": "History cleared"},
        }

    if day is None:
        raise HTTPException(status_code=400, detail="day is required for action=single")

    removed = storage.delete_daily_entry(client_id, day)
    return {
        "success": True,
        "data": {"client_id": client_id, "removed_rows": removed, "message": "Day entry deleted"},
    }
