"""Single-flight advisory locks keyed by account id.

Batch runs and scoring passes for the same account must not overlap: the
mark-then-insert sequence and the per-day snapshot replace are not safe
under concurrent mutation. A second caller is rejected rather than queued.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager

import structlog

from friction_intel.errors import AccountBusyError

logger = structlog.get_logger()


class AccountLockRegistry:
    def __init__(self):
        self._locks: dict[tuple[str, uuid.UUID], asyncio.Lock] = {}

    def is_held(self, scope: str, account_id: uuid.UUID) -> bool:
        lock = self._locks.get((scope, account_id))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, scope: str, account_id: uuid.UUID):
        key = (scope, account_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            logger.warning("account_lock_busy", scope=scope, account_id=str(account_id))
            raise AccountBusyError(
                f"A {scope} run is already in progress for this account",
                {"account_id": str(account_id), "scope": scope},
            )
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            if not lock.locked() and self._locks.get(key) is lock:
                del self._locks[key]


default_registry = AccountLockRegistry()
