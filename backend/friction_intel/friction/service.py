import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.friction.models import FrictionRecord
from friction_intel.friction.verdict import FrictionVerdict


def build_friction_record(
    account_id: uuid.UUID,
    raw_case_id: uuid.UUID,
    verdict: FrictionVerdict,
) -> FrictionRecord:
    return FrictionRecord(
        account_id=account_id,
        raw_case_id=raw_case_id,
        is_friction=verdict.is_friction,
        summary=verdict.summary,
        theme_key=verdict.theme_key,
        severity=verdict.severity,
        sentiment=verdict.sentiment,
        root_cause=verdict.root_cause,
        evidence=list(verdict.evidence),
        confidence_score=verdict.confidence_score,
        reasoning=verdict.reasoning,
    )


async def insert_friction_records(db: AsyncSession, records: list[FrictionRecord]) -> None:
    """Append-only bulk insert in a single commit."""
    db.add_all(records)
    await db.commit()


async def get_friction_in_window(
    db: AsyncSession,
    account_id: uuid.UUID,
    start: datetime,
    end: datetime,
) -> list[FrictionRecord]:
    """Friction-only records created in [start, end)."""
    result = await db.execute(
        select(FrictionRecord).where(
            FrictionRecord.account_id == account_id,
            FrictionRecord.is_friction.is_(True),
            FrictionRecord.created_at >= start,
            FrictionRecord.created_at < end,
        ).order_by(FrictionRecord.created_at.desc())
    )
    return list(result.scalars().all())


async def get_friction_records(
    db: AsyncSession,
    account_id: uuid.UUID,
    is_friction: bool | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[FrictionRecord], int]:
    query = select(FrictionRecord).where(FrictionRecord.account_id == account_id)
    count_q = select(func.count()).select_from(FrictionRecord).where(FrictionRecord.account_id == account_id)

    if is_friction is not None:
        query = query.where(FrictionRecord.is_friction.is_(is_friction))
        count_q = count_q.where(FrictionRecord.is_friction.is_(is_friction))

    query = query.order_by(FrictionRecord.created_at.desc()).offset((page - 1) * per_page).limit(per_page)

    result = await db.execute(query)
    count_result = await db.execute(count_q)
    return list(result.scalars().all()), count_result.scalar_one()
