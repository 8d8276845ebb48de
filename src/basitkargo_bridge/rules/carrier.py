# src/basitkargo_bridge/rules/carrier.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PASSTHROUGH = "passthrough"
FIXED = "fixed"
DEFAULT_CARRIER = "Other"


@dataclass(frozen=True)
class CarrierPolicy:
    """
    Decides the tracking company written to Shopify.

    - passthrough: use the carrier found in the shipment data, else `default`.
    - fixed: always write `default`, whatever the shipment says.
    """
    mode: str = PASSTHROUGH
    default: str = DEFAULT_CARRIER

    @classmethod
    def from_env_cfg(cls, env_cfg) -> "CarrierPolicy":
        return cls(mode=env_cfg.CARRIER_MODE, default=env_cfg.CARRIER_DEFAULT or DEFAULT_CARRIER)

    def choose(self, extracted: Optional[str]) -> str:
        if self.mode == FIXED:
            return self.default
        return extracted or self.default
