"""Reconciliation of configured rate windows against the panel's node list."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import time
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from models.config import NodeRule
from models.records import RemoteNode, UpdateRecord
from services.windows import current_time, is_active

logger = logging.getLogger(__name__)


class RateReconciler:
    """Pure planning component: no I/O, deterministic for a fixed ``now``."""

    def __init__(self, zone: ZoneInfo) -> None:
        self.zone = zone

    def reconcile(
        self,
        config_nodes: Iterable[NodeRule],
        remote_nodes: Sequence[RemoteNode],
        now: Optional[time] = None,
    ) -> List[UpdateRecord]:
        moment = now if now is not None else current_time(self.zone)
        records: List[UpdateRecord] = []

        for rule in config_nodes:
            for remote in remote_nodes:
                if remote.get("id") != rule.id or remote.get("type") != rule.type:
                    continue
                for window in rule.windows:
                    if is_active(window, moment):
                        records.append(UpdateRecord.from_remote(remote, window))

        self._warn_on_overlaps(records)
        return records

    @staticmethod
    def _warn_on_overlaps(records: Sequence[UpdateRecord]) -> None:
        counts = Counter((record.node_id, record.node_type) for record in records)
        for (node_id, node_type), count in counts.items():
            if count < 2:
                continue
            logger.warning(
                "Node has more than one planned update; they are applied in order and the last one wins",
                extra={"node_id": node_id, "node_type": node_type, "reason": f"{count} records"},
            )
