import asyncio
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from friction_intel.accounts.router import router as accounts_router
from friction_intel.alerts.router import router as alerts_router
from friction_intel.cases.router import router as cases_router
from friction_intel.config import settings
from friction_intel.friction.router import router as friction_router
from friction_intel.middleware.error_handler import ErrorHandlerMiddleware
from friction_intel.middleware.logging import RequestLoggingMiddleware
from friction_intel.portfolio.router import router as portfolio_router
from friction_intel.scoring.router import router as scoring_router
from friction_intel.tickets.router import router as tickets_router

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL.upper()),
    ),
    logger_factory=structlog.PrintLoggerFactory(),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from friction_intel.portfolio.scheduler import portfolio_analysis_loop

    portfolio_task = None
    if settings.PORTFOLIO_SCHEDULE_ENABLED:
        portfolio_task = asyncio.create_task(portfolio_analysis_loop())
    yield
    if portfolio_task is not None:
        portfolio_task.cancel()
        try:
            await portfolio_task
        except asyncio.CancelledError:
            pass


def create_app() -> FastAPI:
    app = FastAPI(
        title="Friction Intelligence",
        version="0.1.0",
        docs_url="/docs",
        lifespan=lifespan,
    )

    cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    app.include_router(accounts_router, prefix="/api/v1")
    app.include_router(cases_router, prefix="/api/v1")
    app.include_router(friction_router, prefix="/api/v1")
    app.include_router(scoring_router, prefix="/api/v1")
    app.include_router(tickets_router, prefix="/api/v1")
    app.include_router(alerts_router, prefix="/api/v1")
    app.include_router(portfolio_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
