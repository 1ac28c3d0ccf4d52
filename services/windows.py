"""Time-of-day window matching in a fixed reference timezone."""

from __future__ import annotations

from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from exceptions import ConfigError
from models.config import TimeWindow


def resolve_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone {name!r}") from exc


def current_time(zone: ZoneInfo) -> time:
    """Wall-clock time of day in ``zone``, truncated to whole seconds."""
    return datetime.now(zone).time().replace(microsecond=0)


def is_active(window: TimeWindow, now: time) -> bool:
    """Return True when ``now`` falls inside the window, bounds inclusive.

    A window whose start is after its end crosses midnight, so ``22:00-02:00``
    covers both late evening and early morning.
    """
    moment = now.replace(microsecond=0, tzinfo=None)
    if window.start > window.end:
        return moment >= window.start or moment <= window.end
    return window.start <= moment <= window.end
