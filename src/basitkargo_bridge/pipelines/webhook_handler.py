from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from basitkargo_bridge.api.basitkargo import BasitKargoClient
from basitkargo_bridge.api.client import OrderDetailSource
from basitkargo_bridge.api.errors import ResolutionError, UpstreamValidationError
from basitkargo_bridge.api.extract import (
    extract_order_identifier,
    extract_tracking_write,
    normalize_order_hint,
)
from basitkargo_bridge.api.shopify import ShopifyClient
from basitkargo_bridge.models import EnvCfg, HandlerResult, HandlerState, ShipmentEvent, WriteResult
from basitkargo_bridge.pipelines.fulfillment_writer import FulfillmentWriter, success_message
from basitkargo_bridge.pipelines.order_locator import OrderLocator
from basitkargo_bridge.rules.carrier import CarrierPolicy
from basitkargo_bridge.rules.statuses import DEFAULT_ACTIONABLE_STATUSES, is_actionable, open_units

MISSING_ID_MSG = "Webhook payload missing id; cannot fetch BasitKargo order detail"
MISSING_TRACKING_MSG = "Missing tracking number (handlerShipmentCode)"
UNRESOLVED_ORDER_MSG = (
    "Shopify order code not found in BasitKargo order detail. "
    "Put the order name (e.g. '#LP-1009') into the BasitKargo content.code field "
    "when creating the shipment."
)


class WebhookHandler:
    """
    One synchronous pass from a BasitKargo shipment event to Shopify fulfillments.

    Flow: status check -> order detail (when only an id is given) -> tracking +
    order identifier -> Shopify order lookup -> one fulfillment per open
    fulfillment order. Handled failures come back as HandlerResult(ok=False);
    transport and configuration errors propagate to the caller.
    """

    def __init__(
        self,
        logger,
        *,
        basitkargo: OrderDetailSource,
        shopify,
        actionable_statuses: Iterable[str] = DEFAULT_ACTIONABLE_STATUSES,
        carrier_policy: Optional[CarrierPolicy] = None,
    ) -> None:
        self.logger = logger
        self.basitkargo = basitkargo
        self.locator = OrderLocator(shopify)
        self.writer = FulfillmentWriter(shopify)
        self.actionable_statuses = tuple(actionable_statuses)
        self.carrier_policy = carrier_policy or CarrierPolicy()

    @classmethod
    def from_env_cfg(cls, env_cfg: EnvCfg, logger=None, *, basitkargo=None) -> "WebhookHandler":
        return cls(
            logger or logging.getLogger("basitkargo_bridge.pipelines.webhook_handler"),
            basitkargo=basitkargo or BasitKargoClient.from_env_cfg(env_cfg),
            shopify=ShopifyClient.from_env_cfg(env_cfg),
            actionable_statuses=env_cfg.ACTIONABLE_STATUSES,
            carrier_policy=CarrierPolicy.from_env_cfg(env_cfg),
        )

    def handle(self, payload: Any) -> HandlerResult:
        event = ShipmentEvent.from_payload(payload)

        if not is_actionable(event.status, self.actionable_statuses):
            self.logger.info("Ignoring event status=%r id=%s", event.status, event.remote_order_id)
            return HandlerResult(True, "Ignored", HandlerState.IGNORED)

        if self._is_connectivity_test(event):
            self.logger.info("Connectivity test payload acknowledged")
            return HandlerResult(True, "Test payload received", HandlerState.TEST_PAYLOAD)

        if event.remote_order_id:
            detail = self.basitkargo.get_order(event.remote_order_id)
            identifier = extract_order_identifier(detail, event.raw)
        elif event.order_hint:
            detail = {}
            identifier = normalize_order_hint(event.order_hint)
        else:
            return self._fail(MISSING_ID_MSG)

        tracking = extract_tracking_write(detail, event.raw, self.carrier_policy)
        if tracking is None:
            return self._fail(MISSING_TRACKING_MSG)

        if identifier is None:
            return self._fail(UNRESOLVED_ORDER_MSG)

        try:
            order = self.locator.locate(identifier)
        except ResolutionError as e:
            return self._fail(str(e))

        units = open_units(order)
        if not units:
            msg = f"No OPEN/IN_PROGRESS fulfillmentOrder for {order.name} (already fulfilled/closed)"
            self.logger.info(msg)
            return HandlerResult(True, msg, HandlerState.NO_OPEN_UNITS)

        self.logger.info("Writing tracking %s (%s) to %d fulfillment order(s) of %s",
                         tracking.number, tracking.company, len(units), order.name)
        written: list[WriteResult] = []
        try:
            self.writer.write_all(units, tracking, written=written)
        except UpstreamValidationError as e:
            self.logger.warning("Stopped after %d of %d writes for %s: %s",
                                len(written), len(units), order.name, e)
            return HandlerResult(False, str(e), HandlerState.PARTIAL_FAILURE, written)

        return HandlerResult(True, success_message(order, tracking, written), HandlerState.DONE, written)

    def _is_connectivity_test(self, event: ShipmentEvent) -> bool:
        """BasitKargo's "test webhook" button posts a body with nothing to act on."""
        if event.remote_order_id or event.order_hint:
            return False
        return extract_tracking_write({}, event.raw) is None

    def _fail(self, msg: str) -> HandlerResult:
        self.logger.warning("Event failed: %s", msg)
        return HandlerResult(False, msg, HandlerState.FAILED)
