"""Logging setup shared by the API process and maintenance scripts."""

from __future__ import annotations

import logging.config

from coinpay.core.config import Settings


def configure_logging(settings: Settings) -> None:
    level = "DEBUG" if settings.debug else settings.logging.level.upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": settings.logging.format},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
            "loggers": {
                "coinpay": {"level": level},
                # keep the aiohttp/sqlalchemy chatter out of INFO output
                "sqlalchemy.engine": {"level": "WARNING"},
                "aiohttp": {"level": "WARNING"},
            },
        }
    )


__all__ = ["configure_logging"]
