from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from exceptions import AuthError, FetchError, UpdateError, require
from models.config import PanelConfig
from models.records import RemoteNode, UpdateRecord
from panel.encoding import encode_save_payload

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v2/passport/auth/login"

_DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "zh-CN,zh;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "User-Agent": "dynamic-rate/0.1.0",
}


@dataclass(frozen=True)
class PanelSession:
    """Authorization obtained by one login, valid for the rest of the run."""

    token: str

    def headers(self) -> Dict[str, str]:
        return {"authorization": self.token}


@dataclass
class BatchResult:
    applied: List[UpdateRecord] = field(default_factory=list)
    failed: List[Tuple[UpdateRecord, UpdateError]] = field(default_factory=list)


class PanelClient:
    """HTTP client for the panel's admin API."""

    def __init__(
        self,
        config: PanelConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=f"https://{config.host}",
            timeout=timeout,
            headers=_DEFAULT_HEADERS,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PanelClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def _admin_prefix(self) -> str:
        return f"/api/v2/{self._config.admin_path}/server/manage"

    def login(self) -> PanelSession:
        credentials = {
            "email": self._config.admin_account,
            "password": self._config.admin_password,
        }
        try:
            response = self._client.post(LOGIN_PATH, json=credentials)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise AuthError(f"Login failed: {self._describe_http_error(exc)}") from exc
        except httpx.HTTPError as exc:
            raise AuthError(f"Login failed: {exc}") from exc
        except ValueError as exc:
            raise AuthError("Login response was not valid JSON") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data.get("auth_data"):
            raise AuthError("Login response did not include authorization data")
        require(
            data.get("is_admin") == 1,
            f"Account {self._config.admin_account} is not a panel administrator",
            AuthError,
        )

        logger.info("Logged in to panel")
        return PanelSession(token=str(data["auth_data"]))

    def list_nodes(self, session: PanelSession) -> List[RemoteNode]:
        try:
            response = self._client.get(
                f"{self._admin_prefix}/getNodes", headers=session.headers()
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"Fetching nodes failed: {self._describe_http_error(exc)}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Fetching nodes failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError("Node list response was not valid JSON") from exc

        nodes = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(nodes, list) or not all(isinstance(node, dict) for node in nodes):
            raise FetchError("Node list response did not contain a list of nodes")

        logger.info("Fetched %d nodes from panel", len(nodes))
        return nodes

    def save_node(self, session: PanelSession, record: UpdateRecord) -> None:
        payload = encode_save_payload(record)
        context = {"node_id": record.node_id, "node_type": record.node_type, "rate": record.rate}
        try:
            response = self._client.post(
                f"{self._admin_prefix}/save", json=payload, headers=session.headers()
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpdateError(
                f"Panel rejected the update: {self._describe_http_error(exc)}",
                node_id=record.node_id,
                node_type=record.node_type,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpdateError(
                f"Update request failed: {exc!r}",
                node_id=record.node_id,
                node_type=record.node_type,
            ) from exc
        logger.info("Updated node rate", extra=context)

    def batch_change(self, session: PanelSession, records: Iterable[UpdateRecord]) -> BatchResult:
        """Save each record in order; a failed record is logged and skipped."""
        result = BatchResult()
        for record in records:
            try:
                self.save_node(session, record)
            except UpdateError as exc:
                logger.error(
                    "Skipping node update",
                    extra={
                        "node_id": record.node_id,
                        "node_type": record.node_type,
                        "rate": record.rate,
                        "reason": str(exc),
                    },
                )
                result.failed.append((record, exc))
                continue
            result.applied.append(record)
        return result

    @staticmethod
    def _describe_http_error(exc: httpx.HTTPStatusError) -> str:
        detail: Any = None
        try:
            data = exc.response.json()
            if isinstance(data, dict):
                detail = data.get("message") or data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        return f"status {exc.response.status_code}: {detail or 'no detail provided.'}"
