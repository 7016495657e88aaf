"""OFI computation for one account and per-day snapshot persistence."""

import uuid
from datetime import date, datetime, time, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.accounts.service import get_account_or_404, get_health_signal
from friction_intel.cases.service import count_cases
from friction_intel.config import settings
from friction_intel.errors import PersistenceError
from friction_intel.friction.service import get_friction_in_window
from friction_intel.locks import AccountLockRegistry, default_registry
from friction_intel.models.base import utcnow
from friction_intel.scoring.models import AccountSnapshot
from friction_intel.scoring.ofi import ScoredFriction, compute_trend, rank_top_themes, score_friction
from friction_intel.scoring.schemas import OFI_CALCULATED, OFI_NO_DATA, OfiResult
from friction_intel.tickets.service import get_theme_ticket_statuses

logger = structlog.get_logger()


def scoring_window(as_of: date, window_days: int) -> tuple[datetime, datetime]:
    """The last ``window_days`` whole UTC days, ending with the as_of day."""
    start = datetime.combine(as_of - timedelta(days=window_days - 1), time.min, tzinfo=timezone.utc)
    end = datetime.combine(as_of + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return start, end


async def get_prior_snapshot(db: AsyncSession, account_id: uuid.UUID, before: date) -> AccountSnapshot | None:
    """Most recent snapshot strictly before ``before``, whatever its age."""
    result = await db.execute(
        select(AccountSnapshot)
        .where(AccountSnapshot.account_id == account_id, AccountSnapshot.snapshot_date < before)
        .order_by(AccountSnapshot.snapshot_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_snapshots(db: AsyncSession, account_id: uuid.UUID, limit: int = 30) -> list[AccountSnapshot]:
    result = await db.execute(
        select(AccountSnapshot)
        .where(AccountSnapshot.account_id == account_id)
        .order_by(AccountSnapshot.snapshot_date.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def save_snapshot(db: AsyncSession, account_id: uuid.UUID, snapshot_date: date, values: dict) -> AccountSnapshot:
    """Insert the day's snapshot or overwrite every scored column of the existing one, in one commit."""
    result = await db.execute(
        select(AccountSnapshot)
        .where(
            AccountSnapshot.account_id == account_id,
            AccountSnapshot.snapshot_date == snapshot_date,
        )
        .with_for_update()
    )
    snapshot = result.scalar_one_or_none()
    if snapshot is None:
        snapshot = AccountSnapshot(account_id=account_id, snapshot_date=snapshot_date)
        db.add(snapshot)
    for field, value in values.items():
        setattr(snapshot, field, value)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            "snapshot_save_failed",
            account_id=str(account_id),
            snapshot_date=snapshot_date.isoformat(),
            error=str(e),
        )
        raise PersistenceError("Failed to save account snapshot", {"account_id": str(account_id)}) from e
    await db.refresh(snapshot)
    return snapshot


class OfiScorer:
    def __init__(
        self,
        db: AsyncSession,
        locks: AccountLockRegistry | None = None,
        window_days: int | None = None,
    ):
        self.db = db
        self.locks = locks or default_registry
        self.window_days = settings.OFI_WINDOW_DAYS if window_days is None else window_days

    async def compute_ofi(self, account_id: uuid.UUID, as_of: date | None = None) -> OfiResult:
        as_of = as_of or utcnow().date()

        async with self.locks.hold("scoring", account_id):
            await get_account_or_404(self.db, account_id)

            start, end = scoring_window(as_of, self.window_days)
            records = await get_friction_in_window(self.db, account_id, start, end)
            if not records:
                logger.info("ofi_no_data", account_id=str(account_id), as_of=as_of.isoformat())
                return OfiResult(status=OFI_NO_DATA, account_id=account_id, snapshot_date=as_of)

            scored = [ScoredFriction(theme_key=r.theme_key, severity=r.severity) for r in records]
            case_volume = await count_cases(self.db, account_id)
            theme_statuses = await get_theme_ticket_statuses(
                self.db, account_id, {r.theme_key for r in scored},
            )
            health = await get_health_signal(self.db, account_id)

            breakdown = score_friction(scored, case_volume, theme_statuses, health)
            prior = await get_prior_snapshot(self.db, account_id, as_of)
            trend_pct, trend_direction = compute_trend(
                breakdown.ofi_score, prior.ofi_score if prior else None,
            )
            top_themes = rank_top_themes(scored)

            values = {
                "ofi_score": breakdown.ofi_score,
                "friction_card_count": breakdown.card_count,
                "high_severity_count": breakdown.high_severity_count,
                "case_volume": case_volume,
                "top_themes": top_themes,
                "trend_vs_prior_period": trend_pct,
                "trend_direction": trend_direction,
                "score_breakdown": breakdown.as_breakdown(),
            }
            await save_snapshot(self.db, account_id, as_of, values)

        logger.info(
            "ofi_calculated",
            account_id=str(account_id),
            as_of=as_of.isoformat(),
            ofi_score=breakdown.ofi_score,
            cards=breakdown.card_count,
            trend=trend_direction,
        )
        return OfiResult(status=OFI_CALCULATED, account_id=account_id, snapshot_date=as_of, **values)
