"""Logging setup shared by the app and the uvicorn server."""

import logging.config

from verifyauth.config import settings

DEV_FORMAT = "%(levelname)-8s [%(request_id)s] %(name)s: %(message)s"
PROD_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

# Libraries that log every request or connection at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "aiosmtplib")


def build_log_config(*, with_uvicorn: bool = False) -> dict:
    """dictConfig for app logs, optionally taking over uvicorn's loggers too.

    Every app record goes through ``RequestContextFilter`` so the format can
    include the request ID. Uvicorn's access log is turned down to WARNING
    because ``RequestLoggingMiddleware`` already logs each request.
    """
    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {"()": "verifyauth.api.middleware.RequestContextFilter"},
        },
        "formatters": {
            "app": {"format": DEV_FORMAT if settings.is_development else PROD_FORMAT},
        },
        "handlers": {
            "app": {
                "class": "logging.StreamHandler",
                "formatter": "app",
                "filters": ["request_context"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"handlers": ["app"], "level": settings.log_level},
    }

    if with_uvicorn:
        config["formatters"]["uvicorn"] = {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(message)s",
        }
        config["handlers"]["uvicorn"] = {
            "class": "logging.StreamHandler",
            "formatter": "uvicorn",
            "stream": "ext://sys.stdout",
        }
        config["loggers"]["uvicorn.error"] = {
            "handlers": ["uvicorn"],
            "level": "INFO",
            "propagate": False,
        }
        config["loggers"]["uvicorn.access"] = {
            "handlers": ["uvicorn"],
            "level": "WARNING",
            "propagate": False,
        }

    return config


def get_uvicorn_log_config() -> dict:
    """Log config to pass to ``uvicorn.run(log_config=...)``."""
    return build_log_config(with_uvicorn=True)


def setup_logging() -> None:
    """Configure app logging when not running under ``verifyauth serve``."""
    logging.config.dictConfig(build_log_config())
