"""Request payload encoding for the panel's node save endpoint."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

from exceptions import UpdateError
from models.records import UpdateRecord


def encode_group_ids(group_ids: Iterable[Any], field: str = "group_id") -> List[Tuple[str, Any]]:
    """Turn ``[3, 5]`` into ``[("group_id[0]", 3), ("group_id[1]", 5)]``."""
    return [(f"{field}[{index}]", value) for index, value in enumerate(group_ids)]


def encode_save_payload(record: UpdateRecord) -> Dict[str, Any]:
    payload = dict(record.fields)
    group_ids = payload.get("group_id")
    if isinstance(group_ids, (list, tuple)):
        payload["group_id"] = encode_group_ids(group_ids)
    if not payload.get("type"):
        raise UpdateError(
            f"Node {payload.get('id')} is missing its type",
            node_id=payload.get("id"),
        )
    return payload
