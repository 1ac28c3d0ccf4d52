"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from models.config import TimeWindow

RemoteNode = Mapping[str, Any]


@dataclass(slots=True)
class UpdateRecord:
    """A panel node's full field set with ``rate`` replaced by the active window's rate."""

    fields: Dict[str, Any]
    window: Optional[TimeWindow] = None

    @classmethod
    def from_remote(cls, node: RemoteNode, window: TimeWindow) -> "UpdateRecord":
        fields = dict(node)
        fields["rate"] = window.rate
        return cls(fields=fields, window=window)

    @property
    def node_id(self) -> Any:
        return self.fields.get("id")

    @property
    def node_type(self) -> Any:
        return self.fields.get("type")

    @property
    def rate(self) -> Any:
        return self.fields.get("rate")


@dataclass
class RunSummary:
    """Outcome counts for one reconciliation run."""

    planned: int = 0
    applied: int = 0
    failed: int = 0

    @property
    def succeeded(self) -> bool:
        return self.failed == 0
