from __future__ import annotations

import logging.config

from eventdesk.core.config import settings


def configure_logging(level: str | None = None) -> None:
    resolved = str(level or settings.log_level or "INFO").upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": resolved},
            "loggers": {
                # httpx logs every request at INFO.
                "httpx": {"level": "WARNING"},
                "uvicorn.access": {"level": resolved},
            },
        }
    )
