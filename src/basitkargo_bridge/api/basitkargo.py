from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote
import logging

import requests

from basitkargo_bridge.config.env import ConfigurationError
from basitkargo_bridge.config.logging_config import clip
from .errors import UpstreamTransportError
from .transport import RequestsTransport, read_json

SERVICE = "BasitKargo"

# Keys under which the filter endpoint has been seen to return its page items
_PAGE_ITEM_KEYS = ("content", "items", "orders", "data", "result")


@dataclass
class BasitKargoConfig:
    token: str
    base_url: str = "https://basitkargo.com/api"


class BasitKargoClient:
    """Minimal BasitKargo REST client.

    Responsibilities:
    - get_order(id): GET /v2/order/{id}, the detail a webhook only points at.
    - filter_orders(...): POST /v2/order/filter, one page of orders for a
      date range and status set (used by the backfill driver).

    Credentials are checked when a request is made, so a process without a
    token still starts and answers its liveness probe.
    """

    def __init__(
        self,
        cfg: BasitKargoConfig,
        transport: Optional[RequestsTransport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self.logger: logging.Logger = logger or logging.getLogger(
            "basitkargo_bridge.api.basitkargo"
        )

    @classmethod
    def from_env_cfg(cls, env_cfg, transport: Optional[RequestsTransport] = None) -> "BasitKargoClient":
        cfg = BasitKargoConfig(token=env_cfg.BASITKARGO_TOKEN, base_url=env_cfg.BASITKARGO_BASE_URL)
        return cls(cfg, transport=transport or RequestsTransport(timeout=env_cfg.HTTP_TIMEOUT))

    def _headers(self) -> Dict[str, str]:
        if not self.cfg.token:
            raise ConfigurationError("Missing BASITKARGO_TOKEN")
        return {"Authorization": f"Bearer {self.cfg.token}"}

    def _url(self, path: str) -> str:
        return self.cfg.base_url.rstrip("/") + path

    def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch the order detail for a BasitKargo id."""
        headers = self._headers()
        url = self._url(f"/v2/order/{quote(str(order_id), safe='')}")
        self.logger.debug("BasitKargo GET %s", url)
        try:
            resp = self.transport.get(url, headers=headers)
        except requests.RequestException as ex:
            raise UpstreamTransportError(SERVICE, None, str(ex)) from ex

        body = read_json(resp, SERVICE)
        self.logger.debug("BasitKargo order %s status=%s body=%s",
                          order_id, resp.status_code, clip(body))
        return body if isinstance(body, dict) else {"content": body}

    def filter_orders(
        self,
        *,
        start_date: str,
        end_date: str,
        status_list: Sequence[str],
        page: int = 0,
        size: int = 50,
    ) -> list[Dict[str, Any]]:
        """POST one page of the order filter and return its items (possibly empty)."""
        headers = {**self._headers(), "Content-Type": "application/json"}
        url = self._url("/v2/order/filter")
        body = {
            "startDate": start_date,
            "endDate": end_date,
            "statusList": list(status_list),
            "page": page,
            "size": size,
        }
        self.logger.debug("BasitKargo POST %s body=%s", url, body)
        try:
            resp = self.transport.post(url, headers=headers, json=body)
        except requests.RequestException as ex:
            raise UpstreamTransportError(SERVICE, None, str(ex)) from ex

        return page_items(read_json(resp, SERVICE))


def page_items(payload: Any) -> list[Dict[str, Any]]:
    """Items of a filter page: either a bare list or a list under a known key."""
    if isinstance(payload, list):
        return [x for x in payload if isinstance(x, dict)]
    if isinstance(payload, dict):
        for key in _PAGE_ITEM_KEYS:
            items = payload.get(key)
            if isinstance(items, list):
                return [x for x in items if isinstance(x, dict)]
            if isinstance(items, dict):
                nested = page_items(items)
                if nested:
                    return nested
    return []
