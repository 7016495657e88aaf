import uuid

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.cases.models import RawCase
from friction_intel.cases.schemas import CaseIn

logger = structlog.get_logger()


async def ingest_cases(db: AsyncSession, account_id: uuid.UUID, cases: list[CaseIn]) -> tuple[int, int]:
    """Store new raw cases, skipping ones already ingested from the same source.

    Returns (ingested, skipped).
    """
    source_ids = [c.source_id for c in cases if c.source_id]
    existing: set[tuple[str, str]] = set()
    if source_ids:
        result = await db.execute(
            select(RawCase.source_type, RawCase.source_id).where(
                RawCase.account_id == account_id,
                RawCase.source_id.in_(source_ids),
            )
        )
        existing = {(row.source_type, row.source_id) for row in result}

    ingested = 0
    skipped = 0
    for case in cases:
        key = (case.source_type, case.source_id)
        if case.source_id and key in existing:
            skipped += 1
            continue
        if case.source_id:
            existing.add(key)
        raw = RawCase(
            account_id=account_id,
            source_type=case.source_type,
            source_id=case.source_id,
            text_content=case.text_content,
        )
        if case.created_at is not None:
            raw.created_at = case.created_at
        db.add(raw)
        ingested += 1

    await db.commit()
    logger.info("cases_ingested", account_id=str(account_id), ingested=ingested, skipped=skipped)
    return ingested, skipped


async def fetch_unprocessed_cases(db: AsyncSession, account_id: uuid.UUID, limit: int) -> list[RawCase]:
    result = await db.execute(
        select(RawCase)
        .where(RawCase.account_id == account_id, RawCase.processed.is_(False))
        .order_by(RawCase.created_at.desc(), RawCase.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_cases_processed(db: AsyncSession, case_ids: list[uuid.UUID]) -> None:
    """Flip processed to true. Never unsets it."""
    if not case_ids:
        return
    await db.execute(
        update(RawCase)
        .where(RawCase.id.in_(case_ids))
        .values(processed=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def count_cases(db: AsyncSession, account_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(RawCase).where(RawCase.account_id == account_id)
    )
    return result.scalar_one()


async def count_unprocessed_cases(db: AsyncSession, account_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(RawCase).where(
            RawCase.account_id == account_id,
            RawCase.processed.is_(False),
        )
    )
    return result.scalar_one()
