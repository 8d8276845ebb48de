from __future__ import annotations

import logging
from typing import Any, Optional

from basitkargo_bridge.api.errors import ResolutionError
from basitkargo_bridge.models import FulfillmentUnit, OrderIdentifier, ResolvedOrder

# Both lookups select the same order shape so one parser serves them.
_ORDER_FIELDS = """
        id
        name
        fulfillmentOrders(first: 20) {
          edges { node { id status } }
        }
"""

FIND_ORDER_BY_NAME = """
query ($q: String!) {
  orders(first: 1, query: $q) {
    edges {
      node {%s      }
    }
  }
}
""" % _ORDER_FIELDS

FIND_ORDER_BY_ID = """
query ($id: ID!) {
  order(id: $id) {%s  }
}
""" % _ORDER_FIELDS


def build_order_query(order_name: str) -> Optional[str]:
    """
    Shopify search expression matching the order name with and without '#'.
    Values are always quoted; '#' and '-' break unquoted search terms.
    """
    raw = (order_name or "").strip()
    if not raw:
        return None
    with_hash = raw if raw.startswith("#") else f"#{raw}"
    no_hash = with_hash[1:]
    return f'name:"{with_hash}" OR name:"{no_hash}"'


def parse_order(node: Any) -> ResolvedOrder:
    edges = ((node.get("fulfillmentOrders") or {}).get("edges") or [])
    units = []
    for edge in edges:
        fo = (edge or {}).get("node") or {}
        if fo.get("id"):
            units.append(FulfillmentUnit(id=str(fo["id"]), status=str(fo.get("status") or "")))
    return ResolvedOrder(id=str(node.get("id") or ""), name=str(node.get("name") or ""), units=tuple(units))


class OrderLocator:
    """Turns an OrderIdentifier into the Shopify order and its fulfillment orders."""

    def __init__(self, shopify, *, logger: Optional[logging.Logger] = None) -> None:
        self.shopify = shopify
        self.logger = logger or logging.getLogger("basitkargo_bridge.pipelines.order_locator")

    def locate(self, identifier: OrderIdentifier) -> ResolvedOrder:
        """Raises ResolutionError when no order matches."""
        if identifier.is_reference:
            return self._by_reference(identifier.value)
        return self._by_name(identifier.value)

    def _by_name(self, order_name: str) -> ResolvedOrder:
        q = build_order_query(order_name)
        if not q:
            raise ResolutionError("Invalid Shopify order name")

        self.logger.debug("Searching Shopify order: %s", q)
        resp = self.shopify.graphql(FIND_ORDER_BY_NAME, {"q": q})
        edges = (((resp.get("data") or {}).get("orders") or {}).get("edges") or [])
        if not edges or not (edges[0] or {}).get("node"):
            raise ResolutionError(f"Order not found (query: {q})")
        return parse_order(edges[0]["node"])

    def _by_reference(self, gid: str) -> ResolvedOrder:
        self.logger.debug("Fetching Shopify order by id: %s", gid)
        resp = self.shopify.graphql(FIND_ORDER_BY_ID, {"id": gid})
        node = (resp.get("data") or {}).get("order")
        if not node:
            raise ResolutionError(f"Order not found by id ({gid})")
        return parse_order(node)
