"""Batch friction analysis for one account.

Fetch up to ``batch_size`` unprocessed cases (newest first), classify them
one at a time through the pacer, then mark every fetched case processed and
bulk-insert the verdicts. Marking is at-most-once: a case that failed to
classify is still marked so it can never wedge later batches.
"""

import asyncio
import uuid
from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.alerts.service import check_and_create_alerts
from friction_intel.cases.models import RawCase
from friction_intel.cases.service import (
    count_cases,
    count_unprocessed_cases,
    fetch_unprocessed_cases,
    mark_cases_processed,
)
from friction_intel.config import settings
from friction_intel.errors import (
    BatchTimeoutError,
    ClassificationAPIError,
    ConfigurationError,
    ParseError,
    ServiceDegradedError,
    TransientServiceError,
)
from friction_intel.friction.classifier import Classifier
from friction_intel.friction.models import FrictionRecord
from friction_intel.friction.pacing import RequestPacer
from friction_intel.friction.schemas import (
    BATCH_CAUGHT_UP,
    BATCH_COMPLETED,
    BATCH_NEEDS_SYNC,
    BatchResult,
    BulkAnalysisResult,
)
from friction_intel.friction.service import build_friction_record, insert_friction_records
from friction_intel.locks import AccountLockRegistry, default_registry

logger = structlog.get_logger()

MAX_BATCHES_PER_BULK_RUN = 200


@dataclass
class _BatchRun:
    account_id: uuid.UUID
    cases: list[RawCase]
    fetched_ids: list[uuid.UUID] = field(default_factory=list)
    attempted_ids: list[uuid.UUID] = field(default_factory=list)
    records: list[FrictionRecord] = field(default_factory=list)
    parse_errors: int = 0
    api_errors: int = 0
    first_error: str | None = None
    service_responded: bool = False

    def note_error(self, message: str) -> None:
        if self.first_error is None:
            self.first_error = message


class BatchProcessor:
    def __init__(
        self,
        db: AsyncSession,
        classifier: Classifier,
        pacer: RequestPacer | None = None,
        locks: AccountLockRegistry | None = None,
        timeout_seconds: float | None = None,
    ):
        self.db = db
        self.classifier = classifier
        self.pacer = pacer or RequestPacer.from_settings()
        self.locks = locks or default_registry
        self.timeout_seconds = settings.BATCH_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    async def process_account_batch(self, account_id: uuid.UUID, batch_size: int | None = None) -> BatchResult:
        batch_size = batch_size or settings.BATCH_SIZE
        self.classifier.ensure_configured()

        async with self.locks.hold("batch", account_id):
            cases = await fetch_unprocessed_cases(self.db, account_id, batch_size)
            if not cases:
                total = await count_cases(self.db, account_id)
                status = BATCH_NEEDS_SYNC if total == 0 else BATCH_CAUGHT_UP
                logger.info("friction_batch_nothing_to_do", account_id=str(account_id), status=status)
                return BatchResult(status=status, account_id=account_id, remaining=0)

            logger.info("friction_batch_started", account_id=str(account_id), cases=len(cases))
            # Plain ids survive the rollback that expires the fetched rows
            run = _BatchRun(account_id=account_id, cases=cases, fetched_ids=[c.id for c in cases])

            try:
                async with asyncio.timeout(self.timeout_seconds):
                    await self._classify_all(run)
            except TimeoutError:
                logger.error(
                    "friction_batch_timeout",
                    account_id=str(account_id),
                    attempted=len(run.attempted_ids),
                    fetched=len(cases),
                )
                await self._finalize_interrupted(run)
                raise BatchTimeoutError(
                    f"Batch did not finish within {self.timeout_seconds:.0f}s; safe to retry",
                    {"account_id": str(account_id), "attempted": len(run.attempted_ids)},
                ) from None
            except asyncio.CancelledError:
                logger.warning("friction_batch_cancelled", account_id=str(account_id))
                await asyncio.shield(self._finalize_interrupted(run))
                raise
            except (ServiceDegradedError, ConfigurationError) as e:
                logger.error("friction_batch_aborted", account_id=str(account_id), error=e.message)
                await self._finalize(run, run.attempted_ids)
                raise

            return await self._finalize(run, run.fetched_ids)

    async def _classify_all(self, run: _BatchRun) -> None:
        for case in run.cases:
            await self.pacer.wait()
            run.attempted_ids.append(case.id)
            try:
                verdict = await self.classifier.classify(case.text_content)
            except ParseError as e:
                run.service_responded = True
                run.parse_errors += 1
                run.note_error(f"Parse error for case {case.id}: {e.message}")
                logger.warning("friction_parse_failed", case_id=str(case.id), error=e.message)
            except (TransientServiceError, ClassificationAPIError) as e:
                run.api_errors += 1
                run.note_error(e.message)
                logger.warning("friction_api_failed", case_id=str(case.id), error=e.message)
                if not run.service_responded:
                    raise ServiceDegradedError(
                        f"Classification service call failed: {e.message}",
                        {"account_id": str(run.account_id), "case_id": str(case.id), "api_errors": run.api_errors},
                    ) from e
            else:
                run.service_responded = True
                run.records.append(build_friction_record(run.account_id, case.id, verdict))
            finally:
                self.pacer.mark()

    async def _finalize(self, run: _BatchRun, mark_ids: list[uuid.UUID]) -> BatchResult:
        account_id = run.account_id
        persistence_error: str | None = None

        try:
            await mark_cases_processed(self.db, mark_ids)
        except SQLAlchemyError as e:
            await self.db.rollback()
            persistence_error = f"Failed to mark cases processed: {e}"
            logger.critical(
                "mark_processed_failed",
                account_id=str(account_id),
                case_count=len(mark_ids),
                error=str(e),
            )

        persisted: list[FrictionRecord] = []
        if run.records:
            try:
                await insert_friction_records(self.db, run.records)
                persisted = run.records
            except SQLAlchemyError as e:
                await self.db.rollback()
                persistence_error = persistence_error or f"Failed to insert friction records: {e}"
                logger.error(
                    "friction_record_insert_failed",
                    account_id=str(account_id),
                    record_count=len(run.records),
                    error=str(e),
                )

        if persisted:
            try:
                await check_and_create_alerts(self.db, account_id, persisted)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error("alert_check_failed", account_id=str(account_id), error=str(e))

        friction_count = sum(1 for r in persisted if r.is_friction)
        remaining = await count_unprocessed_cases(self.db, account_id)

        result = BatchResult(
            status=BATCH_COMPLETED,
            account_id=account_id,
            analyzed=len(persisted),
            friction_count=friction_count,
            normal_support_count=len(persisted) - friction_count,
            parse_errors=run.parse_errors,
            api_errors=run.api_errors,
            first_error=run.first_error,
            remaining=remaining,
            persistence_error=persistence_error,
        )
        logger.info(
            "friction_batch_completed",
            account_id=str(account_id),
            analyzed=result.analyzed,
            friction=result.friction_count,
            normal_support=result.normal_support_count,
            parse_errors=result.parse_errors,
            api_errors=result.api_errors,
            remaining=remaining,
        )
        return result

    async def _finalize_interrupted(self, run: _BatchRun) -> None:
        """Best effort after a timeout or cancellation: mark every fetched case."""
        try:
            await self.db.rollback()
            await self._finalize(run, run.fetched_ids)
        except Exception as e:
            # Cases left unmarked are picked up again by the next batch
            logger.critical(
                "interrupted_batch_finalize_failed",
                account_id=str(run.account_id),
                error=str(e),
            )

    async def process_until_done(self, account_id: uuid.UUID, batch_size: int | None = None) -> BulkAnalysisResult:
        """Run batches until the account has no unprocessed cases left."""
        total = BulkAnalysisResult(status=BATCH_COMPLETED, account_id=account_id)

        for _ in range(MAX_BATCHES_PER_BULK_RUN):
            result = await self.process_account_batch(account_id, batch_size)
            if result.status != BATCH_COMPLETED:
                if total.batches == 0:
                    total.status = result.status
                break

            total.batches += 1
            total.analyzed += result.analyzed
            total.friction_count += result.friction_count
            total.normal_support_count += result.normal_support_count
            total.parse_errors += result.parse_errors
            total.api_errors += result.api_errors
            total.first_error = total.first_error or result.first_error
            total.remaining = result.remaining

            if result.remaining == 0 or result.persistence_error:
                break

        logger.info(
            "friction_bulk_analysis_completed",
            account_id=str(account_id),
            batches=total.batches,
            analyzed=total.analyzed,
            remaining=total.remaining,
        )
        return total
