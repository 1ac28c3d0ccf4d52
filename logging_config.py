from __future__ import annotations

import logging
from datetime import datetime
from logging.config import dictConfig
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "node_id",
    "node_type",
    "rate",
    "window",
    "status_code",
    "reason",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
        timezone: str | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)
        self._zone = ZoneInfo(timezone) if timezone else None

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        if self._zone is None:
            return super().formatTime(record, datefmt)
        stamp = datetime.fromtimestamp(record.created, tz=self._zone)
        return stamp.strftime(datefmt or "%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def configure_logging(level: str | int | None = None, timezone: str | None = None) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level
    zone = timezone if timezone is not None else settings.timezone

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "[%(asctime)s] [%(levelname)s] %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                    "timezone": zone,
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
