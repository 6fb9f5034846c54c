"""Health and readiness endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from gigtrust.config import settings
from gigtrust.db.database import check_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    from gigtrust.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }


@router.get("/ready")
async def ready() -> JSONResponse:
    db_ok = await check_db()
    return JSONResponse(
        status_code=200 if db_ok else 503,
        content={"status": "ready" if db_ok else "degraded", "database": db_ok},
    )
