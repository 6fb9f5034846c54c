"""FastAPI application entry point for GigTrust."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gigtrust.api.middleware.error_handler import global_exception_handler
from gigtrust.api.middleware.logging import StructuredLoggingMiddleware
from gigtrust.api.routes.fraud import router as fraud_router
from gigtrust.api.routes.health import router as health_router
from gigtrust.api.routes.orders import router as orders_router
from gigtrust.api.routes.reports import router as reports_router
from gigtrust.api.routes.users import router as users_router
from gigtrust.config import settings
from gigtrust.shared.errors import GigTrustError
from gigtrust.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown logic."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level)

    logger.info(
        "gigtrust_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        screen_new_orders=settings.screen_new_orders,
    )

    from gigtrust.db.database import init_db

    await init_db()

    yield

    logger.info("gigtrust_shutting_down")


app = FastAPI(
    title="GigTrust",
    description="Fraud and trust engine for a freelance marketplace",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

# Domain errors are answered by the exception middleware; anything else
# reaches the server error handler as a generic 500.
app.add_exception_handler(GigTrustError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(users_router)
app.include_router(orders_router)
app.include_router(reports_router)
app.include_router(fraud_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
