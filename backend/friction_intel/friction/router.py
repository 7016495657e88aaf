import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.accounts.service import get_account_or_404
from friction_intel.database import get_db
from friction_intel.dependencies import get_classifier, get_lock_registry, get_pacer
from friction_intel.friction.batch import BatchProcessor
from friction_intel.friction.classifier import Classifier
from friction_intel.friction.pacing import RequestPacer
from friction_intel.friction.schemas import (
    AnalyzeRequest,
    BatchResult,
    BulkAnalysisResult,
    FrictionRecordListResponse,
    FrictionRecordResponse,
)
from friction_intel.friction.service import get_friction_records
from friction_intel.locks import AccountLockRegistry

router = APIRouter(prefix="/friction", tags=["friction"])


def get_batch_processor(
    db: AsyncSession = Depends(get_db),
    classifier: Classifier = Depends(get_classifier),
    pacer: RequestPacer = Depends(get_pacer),
    locks: AccountLockRegistry = Depends(get_lock_registry),
) -> BatchProcessor:
    return BatchProcessor(db, classifier, pacer=pacer, locks=locks)


@router.post("/analyze", response_model=BatchResult)
async def analyze(
    data: AnalyzeRequest,
    processor: BatchProcessor = Depends(get_batch_processor),
):
    await get_account_or_404(processor.db, data.account_id)
    return await processor.process_account_batch(data.account_id, data.batch_size)


@router.post("/bulk-analyze", response_model=BulkAnalysisResult)
async def bulk_analyze(
    data: AnalyzeRequest,
    processor: BatchProcessor = Depends(get_batch_processor),
):
    await get_account_or_404(processor.db, data.account_id)
    return await processor.process_until_done(data.account_id, data.batch_size)


@router.get("/records", response_model=FrictionRecordListResponse)
async def list_records(
    account_id: uuid.UUID = Query(...),
    is_friction: bool | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    records, total = await get_friction_records(db, account_id, is_friction, page, per_page)
    return FrictionRecordListResponse(
        items=[FrictionRecordResponse.model_validate(r) for r in records],
        total=total,
    )
