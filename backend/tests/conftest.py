import re

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from friction_intel.accounts.models import Account
from friction_intel.cases.models import RawCase
from friction_intel.config import settings
from friction_intel.database import get_db
from friction_intel.dependencies import get_classifier, get_lock_registry, get_pacer_factory, get_session_factory
from friction_intel.errors import ConfigurationError
from friction_intel.friction.pacing import RequestPacer
from friction_intel.friction.verdict import FrictionVerdict, decode_verdict
from friction_intel.locks import AccountLockRegistry
from friction_intel.main import create_app
from friction_intel.models.base import Base

TEST_DATABASE_URL = settings.TEST_DATABASE_URL

engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

FRICTION_PATTERN = re.compile(r"error|broken|crash|fail|slow|timeout|500", re.IGNORECASE)


class FakeClassifier:
    """Stands in for the LLM.

    Scripted outcomes in ``script`` are used first, one per call: a dict is
    decoded like a real classifier payload and an exception is raised.
    After that, text matching FRICTION_PATTERN is friction with
    ``default_severity``, anything else is normal support.
    """

    def __init__(self, script: list | None = None, default_severity: int = 3, configured: bool = True):
        self.script = list(script or [])
        self.default_severity = default_severity
        self.configured = configured
        self.calls: list[str] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("Classification service is not configured. Set ANTHROPIC_API_KEY.")

    async def classify(self, case_text: str) -> FrictionVerdict:
        self.calls.append(case_text)
        if self.script:
            outcome = self.script.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return decode_verdict(outcome)

        if FRICTION_PATTERN.search(case_text or ""):
            return decode_verdict({
                "is_friction": True,
                "summary": case_text[:80],
                "theme_key": "integration_failures",
                "severity": self.default_severity,
                "sentiment": "frustrated",
                "root_cause": "Service failure",
                "evidence": [case_text[:40]],
            })
        return decode_verdict({"is_friction": False, "summary": "Routine request", "reason": "Account admin"})


def no_wait_pacer() -> RequestPacer:
    return RequestPacer(min_interval=0)


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db():
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def db():
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def fake_classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def lock_registry() -> AccountLockRegistry:
    return AccountLockRegistry()


@pytest.fixture
def app(fake_classifier: FakeClassifier, lock_registry: AccountLockRegistry):
    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classifier] = lambda: fake_classifier
    app.dependency_overrides[get_pacer_factory] = lambda: no_wait_pacer
    app.dependency_overrides[get_lock_registry] = lambda: lock_registry
    app.dependency_overrides[get_session_factory] = lambda: test_session_factory
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def account(db: AsyncSession) -> Account:
    account = Account(name="Acme Logistics", external_id="001ACME", status="active", health_score=80, nps_score=8)
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


@pytest.fixture
def classifier_factory():
    """FakeClassifier itself, for tests that need scripted outcomes."""
    return FakeClassifier


@pytest.fixture
def pacer() -> RequestPacer:
    return no_wait_pacer()


@pytest.fixture
def session_factory() -> async_sessionmaker:
    return test_session_factory


@pytest_asyncio.fixture
async def add_cases(db: AsyncSession):
    """Insert raw cases for an account: ``await add_cases(account, ["text", ...])``."""
    async def _add(account: Account, texts: list[str], **fields) -> list[RawCase]:
        cases = [RawCase(account_id=account.id, text_content=text, **fields) for text in texts]
        db.add_all(cases)
        await db.commit()
        return cases

    return _add
