"""Health check endpoint."""
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.config import Settings
from survey_backend.database import get_db
from survey_backend.dependencies import get_app_settings
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    db: AsyncSession = Depends(get_db),
):
    """Health check endpoint for monitoring."""
    host = request.headers.get("host", "")
    logger.info(f"Health check from: {host}")

    if settings.rate_limit_disabled:
        response.headers["X-Environment"] = "preview"

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "host": host, "detail": "Database connection failed"},
        )

    return {
        "status": "healthy",
        "host": host,
        "database": "connected",
    }
