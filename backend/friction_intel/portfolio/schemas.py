from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

OUTCOME_ANALYZED = "analyzed"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"


class AccountOutcome(BaseModel):
    account_id: UUID
    name: str
    outcome: str
    reason: str | None = None
    cases_analyzed: int = 0
    ofi_status: str | None = None
    ofi_score: int | None = None


class PortfolioRunResult(BaseModel):
    run_date: date
    accounts_considered: int = 0
    analyzed: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[AccountOutcome] = Field(default_factory=list)
