"""Typed configuration document and its YAML loader."""

from __future__ import annotations

import re
from datetime import datetime, time
from pathlib import Path
from typing import Any, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from exceptions import ConfigError

REQUIRED_KEYS = ("host", "admin_path", "admin_account", "admin_password", "nodes")

_TIME_FORMATS = ("%H:%M:%S", "%H:%M")


class _ConfigLoader(yaml.SafeLoader):
    """SafeLoader that keeps ``18:00:00`` a string instead of a base-60 integer."""


_ConfigLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:int"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_ConfigLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(
        r"""^(?:[-+]?0b[0-1_]+
        |[-+]?0[0-7_]+
        |[-+]?(?:0|[1-9][0-9_]*)
        |[-+]?0x[0-9a-fA-F_]+)$""",
        re.X,
    ),
    list("-+0123456789"),
)


def parse_time_of_day(value: Any) -> time:
    """Parse ``HH:MM:SS`` (or ``HH:MM``) into a naive, second-granular time."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"expected a time of day like '18:00:00', got {value!r}")
    candidate = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"invalid time of day {value!r}, expected HH:MM:SS")


class TimeWindow(BaseModel):
    """A time-of-day interval carrying the rate to apply while it is active."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: time = Field(..., alias="start_time")
    end: time = Field(..., alias="end_time")
    rate: float

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_bounds(cls, value: Any) -> time:
        return parse_time_of_day(value)

    @property
    def wraps_midnight(self) -> bool:
        return self.start > self.end

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()}-{self.end.isoformat()}"


class NodeRule(BaseModel):
    """Rate windows declared for one panel node, keyed by (id, type)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    type: str = Field(..., min_length=1)
    windows: List[TimeWindow] = Field(default_factory=list, alias="rate_config")

    @property
    def key(self) -> tuple[int, str]:
        return (self.id, self.type)


class PanelConfig(BaseModel):
    """Everything read from the YAML configuration file."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    host: str = Field(..., min_length=1)
    admin_path: str = Field(..., min_length=1)
    admin_account: str = Field(..., min_length=1)
    admin_password: str = Field(..., min_length=1)
    nodes: List[NodeRule]

    @field_validator("admin_path")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    return f"invalid value at {location}: {error['msg']}"


def parse_config(raw: Any, source: str = "config") -> PanelConfig:
    """Validate an already-parsed document, failing on the first missing key."""
    if not isinstance(raw, dict):
        raise ConfigError(f"{source} must contain a mapping at the top level")
    for key in REQUIRED_KEYS:
        if raw.get(key) in (None, ""):
            raise ConfigError(f"{source} is missing required key: {key}")
    try:
        return PanelConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"{source} has an {_first_error(exc)}") from exc


def load_config(path: str | Path) -> PanelConfig:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {config_path}: {exc}") from exc
    try:
        raw = yaml.load(text, Loader=_ConfigLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{config_path.name} is not valid YAML: {exc}") from exc
    return parse_config(raw, source=config_path.name)
