from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from settings import get_settings


@dataclass(frozen=True)
class CLIConfig:
    config_path: Path
    timezone: str
    request_timeout: float


def load_cli_config(
    config_path: Optional[Path] = None,
    timezone: Optional[str] = None,
    request_timeout: Optional[float] = None,
) -> CLIConfig:
    """Merge command-line overrides on top of environment settings."""
    settings = get_settings()
    path = config_path or Path(settings.config_path)
    zone = (timezone or "").strip() or settings.timezone
    if request_timeout is None or request_timeout <= 0:
        request_timeout = settings.request_timeout
    return CLIConfig(
        config_path=path,
        timezone=zone,
        request_timeout=request_timeout,
    )
