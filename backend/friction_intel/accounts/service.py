import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.accounts.models import Account
from friction_intel.accounts.schemas import AccountCreate, AccountUpdate
from friction_intel.errors import AccountNotFoundError
from friction_intel.scoring.ofi import HealthSignal


async def create_account(db: AsyncSession, data: AccountCreate) -> Account:
    account = Account(**data.model_dump())
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


async def get_account_by_id(db: AsyncSession, account_id: uuid.UUID) -> Account | None:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def get_account_or_404(db: AsyncSession, account_id: uuid.UUID) -> Account:
    account = await get_account_by_id(db, account_id)
    if account is None:
        raise AccountNotFoundError("Account not found", {"account_id": str(account_id)})
    return account


async def list_accounts(
    db: AsyncSession,
    status: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Account], int]:
    query = select(Account)
    count_q = select(func.count()).select_from(Account)
    if status:
        query = query.where(Account.status == status)
        count_q = count_q.where(Account.status == status)

    query = query.order_by(Account.name, Account.id).offset((page - 1) * per_page).limit(per_page)
    result = await db.execute(query)
    count_result = await db.execute(count_q)
    return list(result.scalars().all()), count_result.scalar_one()


async def update_account(db: AsyncSession, account: Account, data: AccountUpdate) -> Account:
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(account, field, value)
    await db.commit()
    await db.refresh(account)
    return account


async def get_health_signal(db: AsyncSession, account_id: uuid.UUID) -> HealthSignal | None:
    """The account's health inputs for the OFI amplifier, or None when it has none."""
    account = await get_account_by_id(db, account_id)
    if account is None:
        return None
    if account.health_score is None and account.nps_score is None and account.status is None:
        return None
    return HealthSignal(
        health_score=account.health_score,
        nps_score=account.nps_score,
        status=account.status,
    )
