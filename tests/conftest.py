import json
import logging

import pytest
import requests

from basitkargo_bridge.api.errors import UpstreamTransportError


def make_response(status: int, body, *, url: str = "https://example.test/") -> requests.Response:
    """A real requests.Response with a canned body (dict/list -> JSON, str -> raw text)."""
    r = requests.Response()
    r.status_code = status
    r.url = url
    text = body if isinstance(body, str) else json.dumps(body)
    r._content = text.encode("utf-8")
    r.encoding = "utf-8"
    return r


class FakeTransport:
    """Records requests and replays queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)


def order_node(name="#LP-1009", gid="gid://shopify/Order/1", units=(("fo_1", "OPEN"),)):
    return {
        "id": gid,
        "name": name,
        "fulfillmentOrders": {
            "edges": [{"node": {"id": uid, "status": st}} for uid, st in units]
        },
    }


class FakeShopify:
    """Stands in for ShopifyClient.graphql, routing on the GraphQL document."""

    def __init__(self, *, search=None, by_id=None, fulfill=None):
        # search: list of order nodes returned by the name search
        # by_id: dict gid -> order node
        # fulfill: list of mutation payloads, consumed one per write
        self.search = list(search or [])
        self.by_id = dict(by_id or {})
        self.fulfill = list(fulfill or [])
        self.calls = []

    @property
    def write_calls(self):
        return [v for q, v in self.calls if "fulfillmentCreateV2" in q]

    @property
    def lookup_calls(self):
        return [v for q, v in self.calls if "fulfillmentCreateV2" not in q]

    def graphql(self, query, variables=None):
        self.calls.append((query, variables))
        if "fulfillmentCreateV2" in query:
            if not self.fulfill:
                raise AssertionError("unexpected fulfillment write")
            return {"data": {"fulfillmentCreateV2": self.fulfill.pop(0)}}
        if "orders(first" in query:
            return {"data": {"orders": {"edges": [{"node": n} for n in self.search]}}}
        if "order(id" in query:
            return {"data": {"order": self.by_id.get(variables["id"])}}
        raise AssertionError(f"unexpected query: {query}")


def fulfilled(fid, status="SUCCESS"):
    return {"fulfillment": {"id": fid, "status": status, "trackingInfo": []}, "userErrors": []}


def rejected(*messages):
    return {"fulfillment": None, "userErrors": [{"field": ["fulfillment"], "message": m} for m in messages]}


class FakeBasitKargo:
    def __init__(self, details=None, pages=None, fail_ids=()):
        self.details = dict(details or {})
        self.pages = list(pages or [])
        self.fail_ids = set(fail_ids)
        self.get_calls = []
        self.filter_calls = []

    def get_order(self, order_id):
        self.get_calls.append(order_id)
        if order_id in self.fail_ids:
            raise UpstreamTransportError("BasitKargo", 404, '{"message":"not found"}')
        return self.details.get(order_id, {})

    def filter_orders(self, *, start_date, end_date, status_list, page=0, size=50):
        self.filter_calls.append({"start_date": start_date, "end_date": end_date,
                                  "status_list": status_list, "page": page, "size": size})
        return self.pages[page] if page < len(self.pages) else []


@pytest.fixture
def quiet_logger():
    lg = logging.getLogger("basitkargo_bridge.tests")
    lg.addHandler(logging.NullHandler())
    return lg
