"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from verifyauth import __version__
from verifyauth.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from verifyauth.api.router import app_router
from verifyauth.api.templating import render
from verifyauth.config import settings
from verifyauth.database import close_db
from verifyauth.logging import setup_logging
from verifyauth.services.email import email_service

logger = logging.getLogger(__name__)


def init_sentry() -> None:
    if not settings.sentry_dsn:
        return
    import sentry_sdk

    # Password and code form fields must never reach Sentry
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


init_sentry()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Schema is managed by Alembic, nothing to create here
    if not settings.is_test:
        setup_logging()
    logger.info(f"Email backend: {type(email_service.backend).__name__}")
    if not settings.mail_configured:
        logger.warning(
            f"Email backend '{settings.email_backend}' is missing credentials; "
            "verification codes will not be delivered"
        )
    yield
    await close_db()


app = FastAPI(
    title="Verify Auth",
    description="User registration with emailed verification codes and session login",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug_enabled else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug_enabled else None,
)

app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
# Added last so it wraps the logging middleware and the ID is set first
app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

app.include_router(app_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTML error pages for browsers, JSON for everything else."""
    if request.url.path.startswith("/health") or "text/html" not in request.headers.get("accept", ""):
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)
    return render(
        request,
        "error.html",
        {"status_code": exc.status_code, "detail": exc.detail},
        status_code=exc.status_code,
    )


if __name__ == "__main__":
    import uvicorn

    from verifyauth.logging import get_uvicorn_log_config

    uvicorn.run(
        "verifyauth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
