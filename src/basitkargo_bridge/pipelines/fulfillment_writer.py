from __future__ import annotations

import logging
from typing import Iterable, Optional

from basitkargo_bridge.api.errors import UpstreamValidationError
from basitkargo_bridge.models import FulfillmentUnit, ResolvedOrder, TrackingWrite, WriteResult

FULFILL_MUTATION = """
mutation ($fulfillment: FulfillmentV2Input!) {
  fulfillmentCreateV2(fulfillment: $fulfillment) {
    fulfillment {
      id
      status
      trackingInfo { company number url }
    }
    userErrors { field message }
  }
}
"""


def fulfillment_input(unit_id: str, tracking: TrackingWrite) -> dict:
    """Variables for one fulfillment: always scoped to a single fulfillment order."""
    return {
        "fulfillment": {
            "notifyCustomer": True,
            "trackingInfo": tracking.to_graphql(),
            "lineItemsByFulfillmentOrder": [{"fulfillmentOrderId": unit_id}],
        }
    }


def success_message(order: ResolvedOrder, tracking: TrackingWrite, results: Iterable[WriteResult]) -> str:
    ids = ",".join(r.fulfillment_id or "" for r in results)
    return f"OK: {order.name} tracking={tracking.number} fulfillments={ids}"


class FulfillmentWriter:
    """Creates Shopify fulfillments carrying tracking info, one unit at a time."""

    def __init__(self, shopify, *, logger: Optional[logging.Logger] = None) -> None:
        self.shopify = shopify
        self.logger = logger or logging.getLogger("basitkargo_bridge.pipelines.fulfillment_writer")

    def write(self, unit_id: str, tracking: TrackingWrite) -> WriteResult:
        """Raises UpstreamValidationError with Shopify's userErrors verbatim."""
        resp = self.shopify.graphql(FULFILL_MUTATION, fulfillment_input(unit_id, tracking))
        payload = ((resp.get("data") or {}).get("fulfillmentCreateV2") or {})
        user_errors = payload.get("userErrors") or []
        if user_errors:
            self.logger.warning("Fulfillment rejected for %s: %s", unit_id, user_errors)
            raise UpstreamValidationError(user_errors)

        f = payload.get("fulfillment") or {}
        result = WriteResult(unit_id=unit_id, fulfillment_id=f.get("id"), status=f.get("status"))
        self.logger.info("Fulfilled %s -> %s (%s)", unit_id, result.fulfillment_id, result.status)
        return result

    def write_all(
        self,
        units: Iterable[FulfillmentUnit],
        tracking: TrackingWrite,
        *,
        written: Optional[list[WriteResult]] = None,
    ) -> list[WriteResult]:
        """
        Write sequentially; the first validation error stops the loop.

        Results are appended to `written` as they succeed, so a caller that
        catches the error still knows which units were already fulfilled.
        """
        results = written if written is not None else []
        for unit in units:
            results.append(self.write(unit.id, tracking))
        return results
