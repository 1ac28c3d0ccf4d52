from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_CONFIG_PATH_ENV = "DYNAMIC_RATE_CONFIG_PATH"
_TIMEZONE_ENV = "DYNAMIC_RATE_TIMEZONE"
_REQUEST_TIMEOUT_ENV = "DYNAMIC_RATE_REQUEST_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_TIMEZONE = "Asia/Shanghai"
DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    config_path: str
    timezone: str
    request_timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_timeout(default: float) -> float:
    value = os.getenv(_REQUEST_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        config_path=_read_str_env(_CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH),
        timezone=_read_str_env(_TIMEZONE_ENV, DEFAULT_TIMEZONE),
        request_timeout=_read_timeout(DEFAULT_REQUEST_TIMEOUT),
        log_level=_read_log_level("INFO"),
    )
