"""Background loop that runs the portfolio pass on a fixed interval."""

import asyncio

import structlog

from friction_intel.config import settings
from friction_intel.database import async_session_factory
from friction_intel.friction.classifier import FrictionClassifier
from friction_intel.portfolio.service import analyze_portfolio

logger = structlog.get_logger()


async def portfolio_analysis_loop(interval_seconds: int | None = None) -> None:
    """Run analyze_portfolio every PORTFOLIO_INTERVAL_SECONDS indefinitely."""
    interval = interval_seconds or settings.PORTFOLIO_INTERVAL_SECONDS
    logger.info("portfolio_loop_started", interval=interval)
    while True:
        try:
            await analyze_portfolio(async_session_factory, FrictionClassifier())
        except Exception:
            logger.exception("portfolio_loop_error")
        await asyncio.sleep(interval)
