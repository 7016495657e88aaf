import uuid
from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy import func, select

from friction_intel.accounts.models import Account
from friction_intel.cases.models import RawCase
from friction_intel.errors import AccountBusyError, AccountNotFoundError
from friction_intel.friction.models import FrictionRecord
from friction_intel.locks import AccountLockRegistry
from friction_intel.scoring.models import AccountSnapshot
from friction_intel.scoring.service import OfiScorer, get_snapshots, scoring_window
from friction_intel.tickets.models import ThemeTicketLink

AS_OF = date(2026, 3, 15)
MIDDAY = datetime.combine(AS_OF, time(12, 0), tzinfo=timezone.utc)


async def _add_friction(db, account, severities, theme="integration_failures", created_at=MIDDAY, is_friction=True):
    for severity in severities:
        case = RawCase(account_id=account.id, text_content="case", processed=True, created_at=created_at)
        db.add(case)
        await db.flush()
        db.add(FrictionRecord(
            account_id=account.id,
            raw_case_id=case.id,
            is_friction=is_friction,
            summary="friction",
            theme_key=theme if is_friction else "normal_support",
            severity=severity,
            sentiment="frustrated",
            created_at=created_at,
        ))
    await db.commit()


async def _snapshot_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(AccountSnapshot))).scalar_one()


def _scorer(db) -> OfiScorer:
    return OfiScorer(db, locks=AccountLockRegistry())


def test_scoring_window_spans_fourteen_whole_days_ending_on_as_of():
    start, end = scoring_window(AS_OF, 14)
    assert start == datetime(2026, 3, 2, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 16, tzinfo=timezone.utc)
    assert end - start == timedelta(days=14)


@pytest.mark.asyncio
async def test_only_records_inside_window_bounds_are_scored(db, account):
    start, end = scoring_window(AS_OF, 14)
    await _add_friction(db, account, [5], created_at=start - timedelta(minutes=1))
    await _add_friction(db, account, [5], created_at=end)
    await _add_friction(db, account, [2], created_at=start)

    result = await _scorer(db).compute_ofi(account.id, AS_OF)

    assert result.status == "calculated"
    assert result.friction_card_count == 1
    assert result.high_severity_count == 0


@pytest.mark.asyncio
async def test_no_friction_in_window_writes_no_snapshot(db, account):
    await _add_friction(db, account, [1, 2], is_friction=False)

    result = await _scorer(db).compute_ofi(account.id, AS_OF)

    assert result.status == "no_data"
    assert result.ofi_score == 0
    assert await _snapshot_count(db) == 0


@pytest.mark.asyncio
async def test_records_outside_window_are_ignored(db, account):
    await _add_friction(db, account, [5], created_at=MIDDAY - timedelta(days=20))
    await _add_friction(db, account, [5], created_at=MIDDAY + timedelta(days=2))

    result = await _scorer(db).compute_ofi(account.id, AS_OF)

    assert result.status == "no_data"


@pytest.mark.asyncio
async def test_five_minor_records_score_twelve(db, account, add_cases):
    await _add_friction(db, account, [1, 1, 1, 1, 1])
    await add_cases(account, ["routine"] * 95)

    result = await _scorer(db).compute_ofi(account.id, AS_OF)

    assert result.status == "calculated"
    assert result.ofi_score == 12
    assert result.friction_card_count == 5
    assert result.case_volume == 100
    assert result.trend_vs_prior_period is None
    assert result.trend_direction == "stable"
    assert result.top_themes[0].theme_key == "integration_failures"
    assert result.score_breakdown["density_multiplier"] == 1.0


@pytest.mark.asyncio
async def test_snapshot_persisted_with_breakdown(db, account):
    await _add_friction(db, account, [4, 2], theme="performance_issues")

    await _scorer(db).compute_ofi(account.id, AS_OF)

    snapshots = await get_snapshots(db, account.id)
    assert len(snapshots) == 1
    snapshot = snapshots[0]
    assert snapshot.snapshot_date == AS_OF
    assert snapshot.high_severity_count == 1
    assert snapshot.top_themes == [{"theme_key": "performance_issues", "count": 2, "avg_severity": 3.0}]
    assert snapshot.score_breakdown["theme_ticket_status"] == {"performance_issues": "open"}
    assert {"weighted_score", "base_score", "raw_score", "health_amplifier"} <= set(snapshot.score_breakdown)


@pytest.mark.asyncio
async def test_same_day_recalculation_replaces_snapshot(db, account):
    account_id = account.id
    await _add_friction(db, account, [2])
    first = await _scorer(db).compute_ofi(account.id, AS_OF)

    await _add_friction(db, account, [5, 5, 5])
    second = await _scorer(db).compute_ofi(account.id, AS_OF)

    assert second.ofi_score > first.ofi_score
    assert await _snapshot_count(db) == 1
    db.expire_all()
    snapshot = (await get_snapshots(db, account_id))[0]
    assert snapshot.ofi_score == second.ofi_score
    assert snapshot.friction_card_count == 4


@pytest.mark.asyncio
async def test_trend_compares_against_most_recent_prior_snapshot(db, account):
    db.add_all([
        AccountSnapshot(
            account_id=account.id, snapshot_date=AS_OF - timedelta(days=30), ofi_score=90,
            friction_card_count=1, high_severity_count=0, case_volume=1, top_themes=[], score_breakdown={},
        ),
        AccountSnapshot(
            account_id=account.id, snapshot_date=AS_OF - timedelta(days=4), ofi_score=5,
            friction_card_count=1, high_severity_count=0, case_volume=1, top_themes=[], score_breakdown={},
        ),
    ])
    await db.commit()
    await _add_friction(db, account, [5, 5, 4])

    result = await _scorer(db).compute_ofi(account.id, AS_OF)

    expected = round((result.ofi_score - 5) / 5 * 100)
    assert result.trend_vs_prior_period == expected
    assert result.trend_direction == "worsening"


@pytest.mark.asyncio
async def test_prior_score_of_zero_skips_trend(db, account):
    db.add(AccountSnapshot(
        account_id=account.id, snapshot_date=AS_OF - timedelta(days=1), ofi_score=0,
        friction_card_count=0, high_severity_count=0, case_volume=0, top_themes=[], score_breakdown={},
    ))
    await db.commit()
    await _add_friction(db, account, [3])

    result = await _scorer(db).compute_ofi(account.id, AS_OF)

    assert result.trend_vs_prior_period is None
    assert result.trend_direction == "stable"


@pytest.mark.asyncio
async def test_resolved_ticket_damps_score(db, account):
    other = Account(name="Globex", status="active")
    db.add(other)
    await db.commit()

    await _add_friction(db, account, [5, 5])
    await _add_friction(db, other, [5, 5])
    db.add(ThemeTicketLink(
        account_id=account.id, theme_key="integration_failures", issue_key="ENG-1",
        status="Done", resolution_date=MIDDAY,
    ))
    await db.commit()

    damped = await _scorer(db).compute_ofi(account.id, AS_OF)
    undamped = await _scorer(db).compute_ofi(other.id, AS_OF)

    assert damped.score_breakdown["theme_ticket_status"] == {"integration_failures": "resolved"}
    assert damped.ofi_score < undamped.ofi_score


@pytest.mark.asyncio
async def test_at_risk_account_is_amplified(db, account):
    churning = Account(name="Initech", status="churning", health_score=40, nps_score=4)
    db.add(churning)
    await db.commit()

    await _add_friction(db, account, [3, 3])
    await _add_friction(db, churning, [3, 3])

    healthy = await _scorer(db).compute_ofi(account.id, AS_OF)
    at_risk = await _scorer(db).compute_ofi(churning.id, AS_OF)

    assert at_risk.score_breakdown["health_amplifier"] == pytest.approx(1.3 * 1.15)
    assert at_risk.ofi_score > healthy.ofi_score


@pytest.mark.asyncio
async def test_unknown_account(db):
    with pytest.raises(AccountNotFoundError):
        await _scorer(db).compute_ofi(uuid.uuid4(), AS_OF)


@pytest.mark.asyncio
async def test_concurrent_scoring_for_same_account_is_rejected(db, account):
    locks = AccountLockRegistry()
    await _add_friction(db, account, [3])

    async with locks.hold("scoring", account.id):
        with pytest.raises(AccountBusyError):
            await OfiScorer(db, locks=locks).compute_ofi(account.id, AS_OF)
