"""Daily portfolio pass: analyze new cases and recompute the OFI for every live account."""

import asyncio
import uuid
from collections.abc import Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from friction_intel.accounts.models import Account
from friction_intel.config import settings
from friction_intel.errors import FrictionIntelError
from friction_intel.friction.batch import BatchProcessor
from friction_intel.friction.classifier import Classifier
from friction_intel.friction.pacing import RequestPacer
from friction_intel.locks import AccountLockRegistry, default_registry
from friction_intel.models.base import utcnow
from friction_intel.portfolio.schemas import (
    OUTCOME_ANALYZED,
    OUTCOME_FAILED,
    OUTCOME_SKIPPED,
    AccountOutcome,
    PortfolioRunResult,
)
from friction_intel.scoring.models import AccountSnapshot
from friction_intel.scoring.service import OfiScorer

logger = structlog.get_logger()

INACTIVE_STATUSES = {"churned", "cancelled"}


async def _select_accounts(
    db: AsyncSession,
    run_date,
    max_accounts: int,
    result: PortfolioRunResult,
) -> list[tuple[uuid.UUID, str]]:
    accounts = (await db.execute(select(Account).order_by(Account.name, Account.id))).scalars().all()
    scored_today = set((await db.execute(
        select(AccountSnapshot.account_id).where(AccountSnapshot.snapshot_date == run_date)
    )).scalars().all())

    selected: list[tuple[uuid.UUID, str]] = []
    for account in accounts:
        result.accounts_considered += 1
        reason = None
        if (account.status or "").lower() in INACTIVE_STATUSES:
            reason = f"account status is {account.status}"
        elif account.id in scored_today:
            reason = "already scored today"
        elif len(selected) >= max_accounts:
            reason = "per-run account limit reached"

        if reason:
            result.outcomes.append(AccountOutcome(
                account_id=account.id, name=account.name, outcome=OUTCOME_SKIPPED, reason=reason,
            ))
            continue
        selected.append((account.id, account.name))
    return selected


async def _analyze_account(
    session_factory: async_sessionmaker,
    classifier: Classifier,
    locks: AccountLockRegistry,
    pacer_factory: Callable[[], RequestPacer],
    account_id: uuid.UUID,
    name: str,
    run_date,
) -> AccountOutcome:
    outcome = AccountOutcome(account_id=account_id, name=name, outcome=OUTCOME_ANALYZED)
    async with session_factory() as db:
        try:
            processor = BatchProcessor(db, classifier, pacer=pacer_factory(), locks=locks)
            bulk = await processor.process_until_done(account_id)
            outcome.cases_analyzed = bulk.analyzed

            ofi = await OfiScorer(db, locks=locks).compute_ofi(account_id, run_date)
            outcome.ofi_status = ofi.status
            outcome.ofi_score = ofi.ofi_score
        except FrictionIntelError as e:
            logger.warning("portfolio_account_failed", account_id=str(account_id), error=e.code, detail=e.message)
            outcome.outcome = OUTCOME_FAILED
            outcome.reason = f"{e.code}: {e.message}"
        except Exception as e:
            logger.exception("portfolio_account_error", account_id=str(account_id))
            outcome.outcome = OUTCOME_FAILED
            outcome.reason = str(e)
    return outcome


async def analyze_portfolio(
    session_factory: async_sessionmaker,
    classifier: Classifier,
    locks: AccountLockRegistry | None = None,
    pacer_factory: Callable[[], RequestPacer] | None = None,
    max_accounts: int | None = None,
    concurrency: int | None = None,
) -> PortfolioRunResult:
    """Run bulk analysis then OFI scoring for each eligible account.

    Churned and cancelled accounts, and accounts that already have today's
    snapshot, are skipped. Per-account failures are recorded in the result.
    """
    locks = locks or default_registry
    pacer_factory = pacer_factory or RequestPacer.from_settings
    max_accounts = settings.PORTFOLIO_MAX_ACCOUNTS_PER_RUN if max_accounts is None else max_accounts
    semaphore = asyncio.Semaphore(concurrency or settings.PORTFOLIO_CONCURRENCY)

    run_date = utcnow().date()
    result = PortfolioRunResult(run_date=run_date)

    async with session_factory() as db:
        selected = await _select_accounts(db, run_date, max_accounts, result)

    async def _bounded(account_id: uuid.UUID, name: str) -> AccountOutcome:
        async with semaphore:
            return await _analyze_account(
                session_factory, classifier, locks, pacer_factory, account_id, name, run_date,
            )

    outcomes = await asyncio.gather(*(_bounded(account_id, name) for account_id, name in selected))
    result.outcomes.extend(outcomes)

    result.analyzed = sum(1 for o in result.outcomes if o.outcome == OUTCOME_ANALYZED)
    result.failed = sum(1 for o in result.outcomes if o.outcome == OUTCOME_FAILED)
    result.skipped = sum(1 for o in result.outcomes if o.outcome == OUTCOME_SKIPPED)

    logger.info(
        "portfolio_analysis_complete",
        considered=result.accounts_considered,
        analyzed=result.analyzed,
        skipped=result.skipped,
        failed=result.failed,
    )
    return result
