"""
Client and daily-entry models.

A client is the reporting entity: its funnel and cost records are summed per
report, and its margin and flat recurring fee (contract value) are read as
point-in-time configuration.
"""

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from .enums import ClientStatus


class Client(BaseModel):
    """
    An agency client.

    Attributes:
        client_id: Unique identifier
        name: Display name
        niche: Market niche (e.g. "ECOMMERCE"), shown alongside reports
        status: Lifecycle status; only active clients join the agency rollup
        margin_percent: Contribution margin as a fraction in [0, 1]
        contract_value: Flat recurring fee the client pays the agency
        created_at: Creation timestamp
    """

    client_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=1)
    niche: Optional[str] = None
    status: ClientStatus = ClientStatus.ACTIVE
    margin_percent: float = Field(default=0.0, ge=0, le=1)
    contract_value: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Client name must not be blank")
        return v


class DailyEntry(BaseModel):
    """
    One day of manually entered funnel and cost data for a client.

    Saving an entry replaces whatever the client already had on that date.
    """

    client_id: str
    entry_date: date
    cohort_name: Optional[str] = None

    impressions: int = Field(default=0, ge=0)
    clicks: int = Field(default=0, ge=0)
    leads: int = Field(default=0, ge=0)
    appointments: int = Field(default=0, ge=0)
    sales: int = Field(default=0, ge=0)
    revenue: float = Field(default=0.0, ge=0)

    ad_spend: float = Field(default=0.0, ge=0)
    agency_fee: float = Field(default=0.0, ge=0)
    creative_cost: float = Field(default=0.0, ge=0)
    software_cost: float = Field(default=0.0, ge=0)
    other_costs: float = Field(default=0.0, ge=0)


class DailyEntryResult(BaseModel):
    client_id: str
    entry_date: date
    cohort_id: str
    replaced_rows: int
