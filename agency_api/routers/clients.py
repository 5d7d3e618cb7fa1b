"""
Client router: create, read, and margin configuration.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator

from agency_api.exceptions import EntityNotFoundError
from agency_api.models.clients import Client
from agency_api.models.enums import ClientStatus
from agency_api.storage import get_storage
from agency_api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class ClientCreateRequest(BaseModel):
    """New client payload."""

    name: str = Field(min_length=1)
    niche: Optional[str] = None
    status: ClientStatus = ClientStatus.ACTIVE
    margin_percent: float = Field(default=0.0, ge=0, le=1)
    contract_value: float = Field(default=0.0, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Client name must not be blank")
        return v


class MarginUpdateRequest(BaseModel):
    """Margin as a fraction (0.30 for 30%)."""

    margin: float = Field(ge=0, le=1)


@router.post("", status_code=201)
async def create_client(request: ClientCreateRequest):
    client = Client(**request.model_dump())
    storage = get_storage()
    storage.create_entity(client)

    logger.info("client_created", client_id=client.client_id, status=client.status.value)
    return {"success": True, "data": client.model_dump(mode="json")}


@router.get("/{client_id}")
async def get_client(client_id: str):
    storage = get_storage()
    try:
        client = storage.get_entity(client_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "data": client.model_dump(mode="json")}


@router.post("/{client_id}/margin")
async def update_client_margin(client_id: str, request: MarginUpdateRequest):
    """Set the contribution margin used for gross and net profit."""
    logger.info("client_margin_update", client_id=client_id, margin=request.margin)

    storage = get_storage()
    try:
        client = storage.set_entity_margin(client_id, request.margin)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "data": {"client_id": client_id, "margin_percent": client.margin_percent}}
