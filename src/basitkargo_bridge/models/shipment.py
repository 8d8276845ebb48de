from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

ORDER_GID_PREFIX = "gid://shopify/Order/"

# Event fields that may carry the Shopify order name directly, in priority order.
ORDER_HINT_FIELDS = ("shopify_order", "orderNumber", "order_no", "code", "order")


@dataclass(frozen=True)
class ShipmentEvent:
    """Typed view over a BasitKargo webhook body.

    The raw dict is kept because field extraction probes many optional keys
    that have no fixed place in the payload.
    """
    status: str
    remote_order_id: Optional[str]
    order_hint: Optional[str]
    raw: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Any) -> "ShipmentEvent":
        raw = payload if isinstance(payload, dict) else {}
        rid = raw.get("id")
        rid = str(rid).strip() if rid not in (None, "") else None
        hint = None
        for name in ORDER_HINT_FIELDS:
            v = raw.get(name)
            if v is None or isinstance(v, (dict, list)):
                continue
            s = str(v).strip()
            if s:
                hint = s
                break
        return cls(
            status=str(raw.get("status") or ""),
            remote_order_id=rid or None,
            order_hint=hint,
            raw=raw,
        )


@dataclass(frozen=True)
class OrderIdentifier:
    """Either a Shopify global id ("reference") or an order name ("searchQuery")."""
    kind: str
    value: str

    REFERENCE = "reference"
    SEARCH_QUERY = "searchQuery"

    @classmethod
    def reference(cls, numeric_id: str) -> "OrderIdentifier":
        return cls(cls.REFERENCE, f"{ORDER_GID_PREFIX}{numeric_id}")

    @classmethod
    def order_name(cls, name: str) -> "OrderIdentifier":
        return cls(cls.SEARCH_QUERY, name)

    @property
    def is_reference(self) -> bool:
        return self.kind == self.REFERENCE


@dataclass(frozen=True)
class FulfillmentUnit:
    id: str
    status: str


@dataclass(frozen=True)
class ResolvedOrder:
    id: str
    name: str
    units: tuple[FulfillmentUnit, ...] = ()


@dataclass(frozen=True)
class TrackingWrite:
    number: str
    company: str = "Other"
    url: Optional[str] = None

    def to_graphql(self) -> dict[str, str]:
        info = {"company": self.company, "number": self.number}
        if self.url:
            info["url"] = self.url
        return info


@dataclass(frozen=True)
class WriteResult:
    unit_id: str
    fulfillment_id: Optional[str]
    status: Optional[str]


class HandlerState(str, Enum):
    IGNORED = "IGNORED"
    TEST_PAYLOAD = "TEST_PAYLOAD"
    FAILED = "FAILED"
    NO_OPEN_UNITS = "NO_OPEN_UNITS"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    DONE = "DONE"


@dataclass
class HandlerResult:
    ok: bool
    msg: str
    state: HandlerState
    writes: list[WriteResult] = field(default_factory=list)

    @property
    def http_status(self) -> int:
        return 200 if self.ok else 400

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["state"] = self.state.value
        return d
