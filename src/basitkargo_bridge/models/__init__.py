from .env_cfg import EnvCfg
from .shipment import (
    FulfillmentUnit,
    HandlerResult,
    HandlerState,
    OrderIdentifier,
    ResolvedOrder,
    ShipmentEvent,
    TrackingWrite,
    WriteResult,
)

__all__ = [
    "EnvCfg",
    "FulfillmentUnit",
    "HandlerResult",
    "HandlerState",
    "OrderIdentifier",
    "ResolvedOrder",
    "ShipmentEvent",
    "TrackingWrite",
    "WriteResult",
]
