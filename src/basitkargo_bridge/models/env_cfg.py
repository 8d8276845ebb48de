from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class EnvCfg:
    """Everything the bridge reads from the environment (see get_app_env())."""
    BASITKARGO_TOKEN: str = ""
    BASITKARGO_BASE_URL: str = "https://basitkargo.com/api"
    SHOPIFY_STORE: str = ""
    SHOPIFY_TOKEN: str = ""
    SHOPIFY_API_VERSION: str = "2024-10"
    WEBHOOK_KEY: str = ""
    REQUIRE_WEBHOOK_KEY: bool = False
    ACTIONABLE_STATUSES: tuple[str, ...] = ("SHIPPED", "READY_TO_SHIP")
    CARRIER_MODE: str = "passthrough"   # "passthrough" | "fixed"
    CARRIER_DEFAULT: str = "Other"
    HTTP_TIMEOUT: int = 30
    PORT: int = 3000
