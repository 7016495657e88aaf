from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CaseIn(BaseModel):
    source_type: str = Field("salesforce", max_length=50)
    source_id: str | None = Field(None, max_length=255)
    text_content: str
    created_at: datetime | None = None


class CaseIngestRequest(BaseModel):
    cases: list[CaseIn] = Field(min_length=1, max_length=1000)


class CaseIngestResponse(BaseModel):
    account_id: UUID
    ingested_count: int
    skipped_count: int


class CaseStatsResponse(BaseModel):
    account_id: UUID
    total: int
    unprocessed: int
