from __future__ import annotations

from typing import Any, Dict, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import UpstreamTransportError


def read_json(resp, service: str) -> Any:
    """Return the parsed body of a 2xx response, raising UpstreamTransportError otherwise."""
    text = resp.text
    if not resp.ok:
        raise UpstreamTransportError(service, resp.status_code, text)
    try:
        return resp.json()
    except ValueError:
        raise UpstreamTransportError(
            service, resp.status_code, text, detail=f"non-JSON response HTTP {resp.status_code}"
        ) from None


class RequestsTransport:
    """Requests session wrapper shared by the BasitKargo and Shopify clients.

    No retries by default: a failed pass is re-delivered by the caller. When
    `max_retries` is raised, only GETs are retried, so a fulfillment mutation
    is never sent twice. Non-2xx responses are returned, not raised; the
    clients decide what an error is.
    """

    def __init__(self, timeout: int = 30, max_retries: int = 0, backoff_factor: float = 0.3) -> None:
        self.session = requests.Session()
        self.timeout = timeout

        if max_retries > 0:
            retry = Retry(
                total=max_retries,
                read=max_retries,
                connect=max_retries,
                backoff_factor=backoff_factor,
                status_forcelist=(429, 500, 502, 503, 504),
                allowed_methods=("GET",),
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry)
        else:
            adapter = HTTPAdapter(max_retries=0)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, json: Any = None, params: Optional[Dict[str, Any]] = None):
        return self.session.post(url, headers=headers, json=json, params=params, timeout=self.timeout)

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None):
        return self.session.get(url, headers=headers, params=params, timeout=self.timeout)
