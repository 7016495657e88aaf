import pytest
from sqlalchemy import select

from friction_intel.accounts.models import Account
from friction_intel.cases.models import RawCase
from friction_intel.locks import AccountLockRegistry
from friction_intel.models.base import utcnow
from friction_intel.portfolio.service import analyze_portfolio
from friction_intel.scoring.models import AccountSnapshot


async def _account(db, name: str, status: str = "active", cases: list[str] | None = None) -> Account:
    account = Account(name=name, status=status)
    db.add(account)
    await db.flush()
    db.add_all([RawCase(account_id=account.id, text_content=text) for text in cases or []])
    await db.commit()
    return account


def _outcomes(result) -> dict:
    return {o.name: o for o in result.outcomes}


@pytest.mark.asyncio
async def test_portfolio_analyzes_and_scores_live_accounts(db, session_factory, classifier_factory, pacer):
    await _account(db, "Alpha", cases=["checkout crash", "api error", "thanks"])
    await _account(db, "Bravo", cases=["please change my email"])
    await _account(db, "Churned Co", status="churned", cases=["crash"])
    await _account(db, "Cancelled Co", status="cancelled")

    result = await analyze_portfolio(
        session_factory,
        classifier_factory(),
        locks=AccountLockRegistry(),
        pacer_factory=lambda: pacer,
        concurrency=1,
    )

    outcomes = _outcomes(result)
    assert result.accounts_considered == 4
    assert result.analyzed == 2
    assert result.skipped == 2
    assert outcomes["Alpha"].cases_analyzed == 3
    assert outcomes["Alpha"].ofi_status == "calculated"
    assert outcomes["Bravo"].ofi_status == "no_data"
    assert outcomes["Churned Co"].reason == "account status is churned"

    snapshots = (await db.execute(select(AccountSnapshot))).scalars().all()
    assert len(snapshots) == 1


@pytest.mark.asyncio
async def test_portfolio_skips_accounts_scored_today(db, session_factory, classifier_factory, pacer):
    account = await _account(db, "Alpha", cases=["crash"])
    db.add(AccountSnapshot(
        account_id=account.id, snapshot_date=utcnow().date(), ofi_score=10,
        friction_card_count=1, high_severity_count=0, case_volume=1, top_themes=[], score_breakdown={},
    ))
    await db.commit()
    classifier = classifier_factory()

    result = await analyze_portfolio(
        session_factory, classifier, locks=AccountLockRegistry(), pacer_factory=lambda: pacer, concurrency=1,
    )

    assert _outcomes(result)["Alpha"].reason == "already scored today"
    assert classifier.calls == []


@pytest.mark.asyncio
async def test_portfolio_respects_per_run_limit(db, session_factory, classifier_factory, pacer):
    for name in ["A", "B", "C"]:
        await _account(db, name, cases=["error"])

    result = await analyze_portfolio(
        session_factory,
        classifier_factory(),
        locks=AccountLockRegistry(),
        pacer_factory=lambda: pacer,
        concurrency=1,
        max_accounts=2,
    )

    assert result.analyzed == 2
    assert _outcomes(result)["C"].reason == "per-run account limit reached"


@pytest.mark.asyncio
async def test_portfolio_records_account_failures(db, session_factory, classifier_factory, pacer):
    await _account(db, "Alpha", cases=["crash"])

    result = await analyze_portfolio(
        session_factory,
        classifier_factory(configured=False),
        locks=AccountLockRegistry(),
        pacer_factory=lambda: pacer,
        concurrency=1,
    )

    alpha = _outcomes(result)["Alpha"]
    assert result.failed == 1
    assert alpha.outcome == "failed"
    assert alpha.reason.startswith("service_misconfigured")
