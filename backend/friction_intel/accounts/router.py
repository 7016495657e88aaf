from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.accounts.models import Account
from friction_intel.accounts.schemas import AccountCreate, AccountListResponse, AccountResponse, AccountUpdate
from friction_intel.accounts.service import create_account, get_account_or_404, list_accounts, update_account
from friction_intel.database import get_db

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create(data: AccountCreate, db: AsyncSession = Depends(get_db)):
    if data.external_id:
        existing = await db.execute(select(Account.id).where(Account.external_id == data.external_id))
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this external_id already exists",
            )
    account = await create_account(db, data)
    return AccountResponse.model_validate(account)


@router.get("", response_model=AccountListResponse)
async def list_all(
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    accounts, total = await list_accounts(db, status_filter, page, per_page)
    return AccountListResponse(
        items=[AccountResponse.model_validate(a) for a in accounts],
        total=total,
    )


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: UUID, db: AsyncSession = Depends(get_db)):
    account = await get_account_or_404(db, account_id)
    return AccountResponse.model_validate(account)


@router.patch("/{account_id}", response_model=AccountResponse)
async def update(account_id: UUID, data: AccountUpdate, db: AsyncSession = Depends(get_db)):
    account = await get_account_or_404(db, account_id)
    updated = await update_account(db, account, data)
    return AccountResponse.model_validate(updated)
