from __future__ import annotations

import json
from typing import Any, Optional


class UpstreamTransportError(RuntimeError):
    """A remote API answered with a non-2xx status, a non-JSON body or top-level errors."""

    def __init__(self, service: str, status: Optional[int], body: str, *, detail: str = "") -> None:
        self.service = service
        self.status = status
        self.body = body
        prefix = detail or (f"HTTP {status}" if status is not None else "request failed")
        super().__init__(f"{service} {prefix}: {body}")


class UpstreamValidationError(RuntimeError):
    """Field-level userErrors returned by the fulfillment mutation."""

    def __init__(self, user_errors: list[Any]) -> None:
        self.user_errors = list(user_errors)
        super().__init__(f"Shopify userErrors: {json.dumps(self.user_errors, ensure_ascii=False)}")


class ResolutionError(LookupError):
    """The Shopify order behind a shipment could not be identified or found."""
