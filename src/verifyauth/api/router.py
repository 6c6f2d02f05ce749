"""Top-level router that aggregates the page and health routes."""

from fastapi import APIRouter

from verifyauth.api import health, sessions, users

app_router = APIRouter()

app_router.include_router(health.router, prefix="/health", tags=["health"])
app_router.include_router(users.router, tags=["users"])
app_router.include_router(sessions.router, tags=["sessions"])
