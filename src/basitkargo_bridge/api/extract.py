# src/basitkargo_bridge/api/extract.py
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Optional, Tuple

from basitkargo_bridge.models import OrderIdentifier, TrackingWrite
from basitkargo_bridge.rules.carrier import CarrierPolicy

# An accessor attempt: which payload to read ("detail" or "event") and the key path into it.
Candidate = Tuple[str, Tuple[str, ...]]

# Fields that may carry the Shopify order name. Detail before event, nested before flat.
ORDER_NAME_CANDIDATES: Tuple[Candidate, ...] = (
    ("detail", ("content", "code")),
    ("detail", ("content", "orderCode")),
    ("detail", ("content", "reference")),
    ("detail", ("content", "ref")),
    ("detail", ("source", "orderCode")),
    ("detail", ("source", "code")),
    ("detail", ("code",)),
    ("detail", ("orderCode",)),
    ("detail", ("reference",)),
    ("detail", ("ref",)),
    ("detail", ("sourceOrderCode",)),
    ("event", ("shopify_order",)),
    ("event", ("orderNumber",)),
    ("event", ("order_no",)),
    ("event", ("code",)),
    ("event", ("order",)),
)

# Fields that may hold Shopify's numeric order id; checked before the name fields.
ORDER_ID_CANDIDATES: Tuple[Candidate, ...] = (
    ("detail", ("content", "shopifyOrderId")),
    ("detail", ("content", "foreignId")),
    ("detail", ("shopifyOrderId",)),
    ("detail", ("foreignId",)),
    ("detail", ("source", "orderId")),
    ("detail", ("source", "id")),
    ("event", ("shopifyOrderId",)),
) + ORDER_NAME_CANDIDATES

TRACKING_NUMBER_CANDIDATES: Tuple[Candidate, ...] = (
    ("detail", ("shipmentInfo", "handlerShipmentCode")),
    ("detail", ("shipmentInfo", "trackingNumber")),
    ("detail", ("content", "shipmentInfo", "handlerShipmentCode")),
    ("event", ("shipmentInfo", "handlerShipmentCode")),
    ("event", ("shipmentInfo", "trackingNumber")),
    ("detail", ("handlerShipmentCode",)),
    ("detail", ("trackingNumber",)),
    ("detail", ("trackingCode",)),
    ("event", ("handlerShipmentCode",)),
    ("event", ("trackingNumber",)),
    ("event", ("trackingCode",)),
    ("event", ("tracking_number",)),
)

TRACKING_URL_CANDIDATES: Tuple[Candidate, ...] = (
    ("detail", ("shipmentInfo", "handlerShipmentTrackingLink")),
    ("detail", ("shipmentInfo", "trackingLink")),
    ("detail", ("shipmentInfo", "trackingUrl")),
    ("detail", ("trackingLink",)),
    ("detail", ("trackingUrl",)),
    ("event", ("shipmentInfo", "handlerShipmentTrackingLink")),
    ("event", ("shipmentInfo", "trackingLink")),
    ("event", ("trackingLink",)),
    ("event", ("trackingUrl",)),
)

# Carrier names first, then carrier codes.
CARRIER_CANDIDATES: Tuple[Candidate, ...] = (
    ("detail", ("shipmentInfo", "handler", "name")),
    ("detail", ("handler", "name")),
    ("event", ("shipmentInfo", "handler", "name")),
    ("event", ("handler", "name")),
    ("detail", ("shipmentInfo", "handler", "code")),
    ("detail", ("handler", "code")),
    ("event", ("shipmentInfo", "handler", "code")),
    ("event", ("handler", "code")),
    ("event", ("carrier",)),
)

_EXACT_LP = re.compile(r"^#?LP-(\d+)$", re.IGNORECASE)
_EMBEDDED_LP = re.compile(r"LP-(\d+)", re.IGNORECASE)
_BARE_NUMBER = re.compile(r"\b(\d{3,8})\b")
_SHOPIFY_NUMERIC_ID = re.compile(r"^\d{10,16}$")


def _dig(obj: Any, path: Tuple[str, ...]) -> Any:
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _as_text(value: Any) -> Optional[str]:
    """Stripped string form of a scalar; None for missing, empty or structured values."""
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return None
    s = str(value).strip()
    return s or None


def candidate_values(
    detail: Optional[Dict[str, Any]],
    event: Optional[Dict[str, Any]],
    candidates: Iterable[Candidate],
) -> list[str]:
    """All non-empty candidate values, in candidate order."""
    sources = {"detail": detail or {}, "event": event or {}}
    out: list[str] = []
    for source, path in candidates:
        v = _as_text(_dig(sources[source], path))
        if v is not None:
            out.append(v)
    return out


def first_present(detail, event, candidates: Iterable[Candidate]) -> Optional[str]:
    values = candidate_values(detail, event, candidates)
    return values[0] if values else None


def lp_order_name(digits: str) -> str:
    return f"#LP-{digits}"


def extract_order_identifier(
    detail: Optional[Dict[str, Any]],
    event: Optional[Dict[str, Any]] = None,
) -> Optional[OrderIdentifier]:
    """
    Work out which Shopify order a shipment belongs to.

    Precedence:
      1. a candidate that is exactly "LP-<digits>" (optional '#', any case)
      2. "LP-<digits>" embedded anywhere in the joined candidates
      3. a bare 3-8 digit run, read as the LP order number
      4. a 10-16 digit Shopify order id -> direct reference lookup
    Returns None when nothing usable is present.
    """
    names = candidate_values(detail, event, ORDER_NAME_CANDIDATES)

    for s in names:
        m = _EXACT_LP.match(s)
        if m:
            return OrderIdentifier.order_name(lp_order_name(m.group(1)))

    joined = " | ".join(names)
    m = _EMBEDDED_LP.search(joined)
    if m:
        return OrderIdentifier.order_name(lp_order_name(m.group(1)))

    m = _BARE_NUMBER.search(joined)
    if m:
        return OrderIdentifier.order_name(lp_order_name(m.group(1)))

    for s in candidate_values(detail, event, ORDER_ID_CANDIDATES):
        if _SHOPIFY_NUMERIC_ID.match(s):
            return OrderIdentifier.reference(s)

    return None


def normalize_order_hint(hint: Any) -> Optional[OrderIdentifier]:
    """
    Normalize an order name given directly on the event (no BasitKargo lookup).

    LP-1009 / #lp-1009 -> #LP-1009, 1009 -> #LP-1009, 10-16 digits -> reference,
    anything else is taken as an order name with a leading '#'.
    """
    s = _as_text(hint)
    if s is None:
        return None
    m = _EXACT_LP.match(s)
    if m:
        return OrderIdentifier.order_name(lp_order_name(m.group(1)))
    if re.fullmatch(r"\d{3,8}", s):
        return OrderIdentifier.order_name(lp_order_name(s))
    if _SHOPIFY_NUMERIC_ID.match(s):
        return OrderIdentifier.reference(s)
    return OrderIdentifier.order_name(s if s.startswith("#") else f"#{s}")


def extract_tracking_number(detail, event=None) -> Optional[str]:
    return first_present(detail, event, TRACKING_NUMBER_CANDIDATES)


def extract_tracking_url(detail, event=None) -> Optional[str]:
    return first_present(detail, event, TRACKING_URL_CANDIDATES)


def extract_carrier(detail, event=None, policy: Optional[CarrierPolicy] = None) -> str:
    return (policy or CarrierPolicy()).choose(first_present(detail, event, CARRIER_CANDIDATES))


def extract_tracking_write(detail, event=None, policy: Optional[CarrierPolicy] = None) -> Optional[TrackingWrite]:
    """Everything written to a fulfillment, or None when no tracking number is present."""
    number = extract_tracking_number(detail, event)
    if not number:
        return None
    return TrackingWrite(
        number=number,
        company=extract_carrier(detail, event, policy),
        url=extract_tracking_url(detail, event),
    )
