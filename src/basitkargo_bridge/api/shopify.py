from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import json
import logging

import requests

from basitkargo_bridge.config.env import ConfigurationError
from basitkargo_bridge.config.logging_config import clip
from .errors import UpstreamTransportError
from .transport import RequestsTransport, read_json

SERVICE = "Shopify"


@dataclass
class ShopifyConfig:
    store: str
    token: str
    api_version: str = "2024-10"


class ShopifyClient:
    """Thin wrapper around the Shopify Admin GraphQL endpoint."""

    def __init__(
        self,
        cfg: ShopifyConfig,
        transport: Optional[RequestsTransport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self.logger: logging.Logger = logger or logging.getLogger(
            "basitkargo_bridge.api.shopify"
        )

    @classmethod
    def from_env_cfg(cls, env_cfg, transport: Optional[RequestsTransport] = None) -> "ShopifyClient":
        cfg = ShopifyConfig(
            store=env_cfg.SHOPIFY_STORE,
            token=env_cfg.SHOPIFY_TOKEN,
            api_version=env_cfg.SHOPIFY_API_VERSION,
        )
        return cls(cfg, transport=transport or RequestsTransport(timeout=env_cfg.HTTP_TIMEOUT))

    def _headers(self) -> Dict[str, str]:
        if not self.cfg.store or not self.cfg.token:
            raise ConfigurationError("Missing SHOPIFY_STORE or SHOPIFY_TOKEN")
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.cfg.token,
        }

    def _url(self) -> str:
        return f"https://{self.cfg.store}/admin/api/{self.cfg.api_version}/graphql.json"

    def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute one GraphQL document and return the full JSON body.

        Top-level `errors` are raised as UpstreamTransportError; `userErrors`
        inside a mutation payload are left for the caller to interpret.
        """
        headers = self._headers()
        url = self._url()
        self.logger.debug("Shopify GraphQL variables=%s", clip(json.dumps(variables or {})))
        try:
            resp = self.transport.post(url, headers=headers, json={"query": query, "variables": variables or {}})
        except requests.RequestException as ex:
            raise UpstreamTransportError(SERVICE, None, str(ex)) from ex

        body = read_json(resp, SERVICE)
        if not isinstance(body, dict):
            raise UpstreamTransportError(SERVICE, resp.status_code, resp.text,
                                         detail="unexpected GraphQL body")
        errors = body.get("errors")
        if errors:
            raise UpstreamTransportError(
                SERVICE, resp.status_code, json.dumps(errors, ensure_ascii=False),
                detail="GraphQL errors",
            )
        self.logger.debug("Shopify GraphQL status=%s body=%s", resp.status_code, clip(body))
        return body
