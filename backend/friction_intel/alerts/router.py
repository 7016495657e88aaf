import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.alerts.schemas import AlertResponse
from friction_intel.alerts.service import get_alerts
from friction_intel.database import get_db

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=list[AlertResponse])
async def list_alerts(
    account_id: uuid.UUID = Query(...),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    alerts = await get_alerts(db, account_id, limit)
    return [AlertResponse.model_validate(a) for a in alerts]
