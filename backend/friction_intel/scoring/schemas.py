from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

OFI_CALCULATED = "calculated"
OFI_NO_DATA = "no_data"


class OfiCalculateRequest(BaseModel):
    account_id: UUID
    as_of: date | None = None


class TopTheme(BaseModel):
    theme_key: str
    count: int
    avg_severity: float


class OfiResult(BaseModel):
    status: str
    account_id: UUID
    snapshot_date: date
    ofi_score: int = 0
    friction_card_count: int = 0
    high_severity_count: int = 0
    case_volume: int = 0
    top_themes: list[TopTheme] = Field(default_factory=list)
    trend_vs_prior_period: int | None = None
    trend_direction: str = "stable"
    score_breakdown: dict = Field(default_factory=dict)


class SnapshotResponse(BaseModel):
    id: UUID
    account_id: UUID
    snapshot_date: date
    ofi_score: int
    friction_card_count: int
    high_severity_count: int
    case_volume: int
    top_themes: list[TopTheme]
    trend_vs_prior_period: int | None
    trend_direction: str
    score_breakdown: dict
    created_at: datetime

    model_config = {"from_attributes": True}


class SnapshotListResponse(BaseModel):
    items: list[SnapshotResponse]
    total: int
