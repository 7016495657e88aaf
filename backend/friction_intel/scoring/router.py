import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.database import get_db
from friction_intel.dependencies import get_lock_registry
from friction_intel.locks import AccountLockRegistry
from friction_intel.scoring.schemas import OfiCalculateRequest, OfiResult, SnapshotListResponse, SnapshotResponse
from friction_intel.scoring.service import OfiScorer, get_snapshots

router = APIRouter(prefix="/ofi", tags=["ofi"])


@router.post("/calculate", response_model=OfiResult)
async def calculate(
    data: OfiCalculateRequest,
    db: AsyncSession = Depends(get_db),
    locks: AccountLockRegistry = Depends(get_lock_registry),
):
    scorer = OfiScorer(db, locks=locks)
    return await scorer.compute_ofi(data.account_id, data.as_of)


@router.get("/snapshots", response_model=SnapshotListResponse)
async def list_snapshots(
    account_id: uuid.UUID = Query(...),
    limit: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    snapshots = await get_snapshots(db, account_id, limit)
    return SnapshotListResponse(
        items=[SnapshotResponse.model_validate(s) for s in snapshots],
        total=len(snapshots),
    )
