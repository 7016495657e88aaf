from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

ACCOUNT_STATUS_PATTERN = "^(active|at_risk|churning|churned|cancelled)$"


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    external_id: str | None = Field(None, max_length=100)
    status: str = Field("active", pattern=ACCOUNT_STATUS_PATTERN)
    health_score: int | None = Field(None, ge=0, le=100)
    nps_score: int | None = Field(None, ge=0, le=10)


class AccountUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    status: str | None = Field(None, pattern=ACCOUNT_STATUS_PATTERN)
    health_score: int | None = Field(None, ge=0, le=100)
    nps_score: int | None = Field(None, ge=0, le=10)


class AccountResponse(BaseModel):
    id: UUID
    name: str
    external_id: str | None
    status: str | None
    health_score: int | None
    nps_score: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountListResponse(BaseModel):
    items: list[AccountResponse]
    total: int
