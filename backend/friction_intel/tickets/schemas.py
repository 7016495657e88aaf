from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TicketLinkCreate(BaseModel):
    account_id: UUID
    theme_key: str = Field(min_length=1, max_length=50)
    issue_key: str = Field(min_length=1, max_length=50)
    summary: str | None = Field(None, max_length=500)
    status: str | None = Field(None, max_length=100)
    resolution_date: datetime | None = None


class TicketLinkResponse(BaseModel):
    id: UUID
    account_id: UUID
    theme_key: str
    issue_key: str
    summary: str | None
    status: str | None
    resolution_date: datetime | None
    ticket_status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketRefreshRequest(BaseModel):
    account_id: UUID


class TicketRefreshResponse(BaseModel):
    account_id: UUID
    updated_count: int
