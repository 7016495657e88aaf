from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from friction_intel.config import settings

# Batch statuses. needs_sync and caught_up are terminal, not errors.
BATCH_COMPLETED = "completed"
BATCH_NEEDS_SYNC = "needs_sync"
BATCH_CAUGHT_UP = "caught_up"


class AnalyzeRequest(BaseModel):
    account_id: UUID
    batch_size: int = Field(default_factory=lambda: settings.BATCH_SIZE, ge=1, le=200)


class BatchResult(BaseModel):
    status: str
    account_id: UUID
    analyzed: int = 0
    friction_count: int = 0
    normal_support_count: int = 0
    parse_errors: int = 0
    api_errors: int = 0
    first_error: str | None = None
    remaining: int = 0
    persistence_error: str | None = None


class BulkAnalysisResult(BaseModel):
    status: str
    account_id: UUID
    batches: int = 0
    analyzed: int = 0
    friction_count: int = 0
    normal_support_count: int = 0
    parse_errors: int = 0
    api_errors: int = 0
    first_error: str | None = None
    remaining: int = 0


class FrictionRecordResponse(BaseModel):
    id: UUID
    account_id: UUID
    raw_case_id: UUID
    is_friction: bool
    summary: str
    theme_key: str
    severity: int
    sentiment: str
    root_cause: str | None
    evidence: list[str] | None
    confidence_score: float
    reasoning: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class FrictionRecordListResponse(BaseModel):
    items: list[FrictionRecordResponse]
    total: int
