# src/basitkargo_bridge/api/client.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Any, List, Sequence
import json

from .errors import UpstreamTransportError


class OrderDetailSource(Protocol):
    """What the webhook handler and backfill driver need from BasitKargo."""

    def get_order(self, order_id: str) -> dict[str, Any]:
        ...

    def filter_orders(self, *, start_date: str, end_date: str, status_list: Sequence[str],
                      page: int = 0, size: int = 50) -> list[dict[str, Any]]:
        ...


@dataclass
class ReplayClient:
    """Offline BasitKargo stand-in backed by a single JSON file of order details.

    The file may contain a single JSON object or a JSON array. Entries are
    indexed by their BasitKargo id (top-level `id`, else `content.id`).
    `filter_orders` pages through the entries in file order and ignores the
    date/status filter, which is enough to rehearse a backfill.
    """

    replay_file: Path
    _index: dict[str, Any] | None = None
    _entries: List[dict[str, Any]] | None = None

    def __post_init__(self) -> None:
        self.replay_file = Path(self.replay_file)
        if not self.replay_file.exists():
            raise ValueError(f"Replay file does not exist: {self.replay_file}")
        if not self.replay_file.is_file():
            raise ValueError(
                "ReplayClient requires a single JSON file containing one or more order details."
            )

        raw = json.loads(self.replay_file.read_text(encoding="utf-8"))
        entries = raw if isinstance(raw, list) else [raw]

        idx: dict[str, Any] = {}
        kept: List[dict[str, Any]] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            oid = self._extract_id(entry)
            if oid:
                idx[oid] = entry
                kept.append(entry)

        self._index = idx
        self._entries = kept

    @staticmethod
    def _extract_id(entry: dict[str, Any]) -> Optional[str]:
        oid = entry.get("id")
        if oid in (None, ""):
            content = entry.get("content")
            if isinstance(content, dict):
                oid = content.get("id")
        return str(oid) if oid not in (None, "") else None

    def get_order(self, order_id: str) -> dict[str, Any]:
        entry = self._index.get(str(order_id))
        if entry is None:
            raise UpstreamTransportError(
                "BasitKargo", 404, f"order {order_id} not in {self.replay_file.name}")
        return entry

    def filter_orders(self, *, start_date: str, end_date: str, status_list: Sequence[str],
                      page: int = 0, size: int = 50) -> list[dict[str, Any]]:
        start = page * size
        return list(self._entries[start:start + size])
