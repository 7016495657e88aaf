"""Account alerts raised from freshly classified friction."""

import uuid
from datetime import timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.alerts.models import Alert
from friction_intel.friction.models import FrictionRecord
from friction_intel.models.base import utcnow

logger = structlog.get_logger()

SPIKE_WINDOW_DAYS = 7
SPIKE_MIN_CARDS = 5
SPIKE_MIN_AVG_SEVERITY = 3.5
SPIKE_COOLDOWN = timedelta(hours=24)
CRITICAL_SEVERITY = 4


async def check_and_create_alerts(
    db: AsyncSession,
    account_id: uuid.UUID,
    new_records: list[FrictionRecord],
) -> list[Alert]:
    now = utcnow()
    alerts: list[Alert] = []

    result = await db.execute(
        select(func.count(FrictionRecord.id), func.avg(FrictionRecord.severity)).where(
            FrictionRecord.account_id == account_id,
            FrictionRecord.is_friction.is_(True),
            FrictionRecord.created_at >= now - timedelta(days=SPIKE_WINDOW_DAYS),
        )
    )
    card_count, avg_severity = result.one()
    avg_severity = float(avg_severity or 0)

    if card_count >= SPIKE_MIN_CARDS and avg_severity >= SPIKE_MIN_AVG_SEVERITY:
        recent = await db.execute(
            select(func.count()).select_from(Alert).where(
                Alert.account_id == account_id,
                Alert.alert_type == "friction_spike",
                Alert.created_at >= now - SPIKE_COOLDOWN,
            )
        )
        if recent.scalar_one() == 0:
            alerts.append(Alert(
                account_id=account_id,
                alert_type="friction_spike",
                severity="high",
                title="Friction Spike Detected",
                message=(
                    f"{card_count} friction signals in the last {SPIKE_WINDOW_DAYS} days "
                    f"with average severity {avg_severity:.1f}"
                ),
                evidence={
                    "card_count": card_count,
                    "avg_severity": round(avg_severity, 2),
                    "period_days": SPIKE_WINDOW_DAYS,
                },
                recommended_action="Review recent friction cards and schedule check-in call with customer",
            ))

    for record in new_records:
        if record.is_friction and record.severity >= CRITICAL_SEVERITY:
            alerts.append(Alert(
                account_id=account_id,
                alert_type="critical_severity",
                severity="critical",
                title="Critical Friction Detected",
                message=record.summary,
                evidence={"friction_record_id": str(record.id), "theme": record.theme_key},
                recommended_action="Immediate escalation recommended",
            ))

    if alerts:
        db.add_all(alerts)
        await db.commit()
        logger.info(
            "alerts_created",
            account_id=str(account_id),
            count=len(alerts),
            types=sorted({a.alert_type for a in alerts}),
        )
    return alerts


async def get_alerts(db: AsyncSession, account_id: uuid.UUID, limit: int = 50) -> list[Alert]:
    result = await db.execute(
        select(Alert)
        .where(Alert.account_id == account_id)
        .order_by(Alert.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
