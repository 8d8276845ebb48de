# src/basitkargo_bridge/rules/statuses.py
from __future__ import annotations

from typing import Iterable

from basitkargo_bridge.models import FulfillmentUnit, ResolvedOrder

# BasitKargo statuses that mean the parcel has left (or is about to leave) the warehouse.
DEFAULT_ACTIONABLE_STATUSES = ("SHIPPED", "READY_TO_SHIP")

# Shopify fulfillment order statuses that still accept a fulfillment.
OPEN_UNIT_STATUSES = frozenset({"OPEN", "IN_PROGRESS"})


def is_actionable(status: str, actionable: Iterable[str] = DEFAULT_ACTIONABLE_STATUSES) -> bool:
    """Exact, case-sensitive match against the configured set."""
    return status in set(actionable)


def open_units(order: ResolvedOrder) -> list[FulfillmentUnit]:
    """Units that can still be fulfilled, in Shopify's order. Anything else is never written."""
    return [u for u in order.units if (u.status or "").upper() in OPEN_UNIT_STATUSES]
