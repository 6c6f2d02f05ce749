"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from verifyauth.api.deps import SessionDep
from verifyauth.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


async def _database_reachable(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database check failed: {e!r}")
        return False
    return True


@router.get("")
async def health_check():
    """The process is up and serving requests."""
    return {"status": "ok"}


@router.get("/db")
async def health_check_db(session: SessionDep):
    if await _database_reachable(session):
        return {"status": "ok", "database": "connected"}
    return JSONResponse(
        status_code=503,
        content={"status": "error", "database": "disconnected"},
    )


@router.get("/ready")
async def readiness_check(session: SessionDep):
    """Ready to register users: database reachable and mail backend configured.

    Registration and resend need both, so either one missing is a 503.
    """
    database_ok = await _database_reachable(session)
    mail_ok = settings.mail_configured

    content = {
        "status": "ok" if database_ok and mail_ok else "degraded",
        "database": "connected" if database_ok else "disconnected",
        "email_backend": settings.email_backend,
        "email_configured": mail_ok,
    }
    if not (database_ok and mail_ok):
        return JSONResponse(status_code=503, content=content)
    return content
