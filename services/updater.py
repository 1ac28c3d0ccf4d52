"""One reconciliation run against the panel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from typing import List, Optional

from models.config import PanelConfig
from models.records import RunSummary, UpdateRecord
from panel.client import PanelClient, PanelSession
from services.reconciler import RateReconciler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatePlan:
    session: PanelSession
    records: List[UpdateRecord]


class RateUpdater:
    """Coordinates login, node fetch, reconciliation and the apply step.

    Login and fetch failures propagate as ``AuthError`` / ``FetchError``; per-node
    failures are absorbed by ``PanelClient.batch_change`` and only counted here.
    """

    def __init__(
        self,
        config: PanelConfig,
        client: PanelClient,
        reconciler: RateReconciler,
    ) -> None:
        self.config = config
        self.client = client
        self.reconciler = reconciler

    def plan(self, now: Optional[time] = None) -> RatePlan:
        session = self.client.login()
        remote_nodes = self.client.list_nodes(session)
        records = self.reconciler.reconcile(self.config.nodes, remote_nodes, now=now)
        return RatePlan(session=session, records=records)

    def run(self, now: Optional[time] = None) -> RunSummary:
        plan = self.plan(now=now)
        summary = RunSummary(planned=len(plan.records))
        if not plan.records:
            logger.info("No nodes need updating")
            return summary

        result = self.client.batch_change(plan.session, plan.records)
        summary.applied = len(result.applied)
        summary.failed = len(result.failed)
        log = logger.warning if summary.failed else logger.info
        log(
            "Rate run finished: %d applied, %d failed",
            summary.applied,
            summary.failed,
        )
        return summary
