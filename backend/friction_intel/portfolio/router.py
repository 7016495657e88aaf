from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from friction_intel.dependencies import get_classifier, get_lock_registry, get_pacer_factory, get_session_factory
from friction_intel.friction.classifier import Classifier
from friction_intel.locks import AccountLockRegistry
from friction_intel.portfolio.schemas import PortfolioRunResult
from friction_intel.portfolio.service import analyze_portfolio

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.post("/analyze", response_model=PortfolioRunResult)
async def analyze(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    classifier: Classifier = Depends(get_classifier),
    locks: AccountLockRegistry = Depends(get_lock_registry),
    pacer_factory=Depends(get_pacer_factory),
):
    return await analyze_portfolio(session_factory, classifier, locks=locks, pacer_factory=pacer_factory)
