from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.accounts.service import get_account_or_404
from friction_intel.cases.schemas import CaseIngestRequest, CaseIngestResponse, CaseStatsResponse
from friction_intel.cases.service import count_cases, count_unprocessed_cases, ingest_cases
from friction_intel.database import get_db

router = APIRouter(prefix="/accounts/{account_id}/cases", tags=["cases"])


@router.post("", response_model=CaseIngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest(account_id: UUID, data: CaseIngestRequest, db: AsyncSession = Depends(get_db)):
    await get_account_or_404(db, account_id)
    ingested, skipped = await ingest_cases(db, account_id, data.cases)
    return CaseIngestResponse(account_id=account_id, ingested_count=ingested, skipped_count=skipped)


@router.get("/stats", response_model=CaseStatsResponse)
async def stats(account_id: UUID, db: AsyncSession = Depends(get_db)):
    await get_account_or_404(db, account_id)
    return CaseStatsResponse(
        account_id=account_id,
        total=await count_cases(db, account_id),
        unprocessed=await count_unprocessed_cases(db, account_id),
    )
