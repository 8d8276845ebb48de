import pytest

from basitkargo_bridge.api.errors import UpstreamTransportError
from basitkargo_bridge.models import HandlerState
from basitkargo_bridge.pipelines.webhook_handler import WebhookHandler
from basitkargo_bridge.rules.carrier import CarrierPolicy

from conftest import FakeBasitKargo, FakeShopify, fulfilled, order_node, rejected

SHIPPED_DETAIL = {
    "content": {"code": "LP-1009"},
    "shipmentInfo": {"handlerShipmentCode": "AR123", "handler": {"name": "Aras Kargo"}},
}


def _handler(logger, bk, shop, **kw):
    return WebhookHandler(logger, basitkargo=bk, shopify=shop, **kw)


def test_shipped_event_writes_one_fulfillment(quiet_logger):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify(search=[order_node("#LP-1009", units=(("fo_1", "OPEN"),))],
                       fulfill=[fulfilled("gid://shopify/Fulfillment/55")])

    result = _handler(quiet_logger, bk, shop).handle({"status": "SHIPPED", "id": "BK-1"})

    assert result.ok and result.state is HandlerState.DONE
    assert "#LP-1009" in result.msg and "gid://shopify/Fulfillment/55" in result.msg
    assert bk.get_calls == ["BK-1"]
    (write,) = shop.write_calls
    assert write["fulfillment"]["lineItemsByFulfillmentOrder"] == [{"fulfillmentOrderId": "fo_1"}]
    assert write["fulfillment"]["trackingInfo"]["company"] == "Aras Kargo"
    assert result.http_status == 200


def test_long_numeric_code_takes_reference_path(quiet_logger):
    gid = "gid://shopify/Order/7708726460709"
    bk = FakeBasitKargo({"BK-2": {"content": {"code": "7708726460709"}, "handlerShipmentCode": "YK1"}})
    shop = FakeShopify(by_id={gid: order_node("#LP-2", gid=gid)}, fulfill=[fulfilled("f1")])

    result = _handler(quiet_logger, bk, shop).handle({"status": "READY_TO_SHIP", "id": "BK-2"})

    assert result.ok
    assert shop.lookup_calls == [{"id": gid}]


@pytest.mark.parametrize("status", ["CANCELLED", "DELIVERED", "shipped", "", None])
def test_non_actionable_status_is_ignored_without_remote_calls(quiet_logger, status):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify()
    result = _handler(quiet_logger, bk, shop).handle({"status": status, "id": "BK-1"})

    assert result.ok and result.msg == "Ignored" and result.state is HandlerState.IGNORED
    assert bk.get_calls == [] and shop.calls == []


def test_ready_to_ship_can_be_excluded_by_configuration(quiet_logger):
    shop = FakeShopify()
    handler = _handler(quiet_logger, FakeBasitKargo(), shop, actionable_statuses=("SHIPPED",))
    assert handler.handle({"status": "READY_TO_SHIP", "id": "BK-1"}).state is HandlerState.IGNORED


@pytest.mark.parametrize("payload", [{"status": "SHIPPED"}, {"status": "SHIPPED", "test": True}])
def test_connectivity_test_payload_is_acknowledged(quiet_logger, payload):
    bk, shop = FakeBasitKargo(), FakeShopify()
    result = _handler(quiet_logger, bk, shop).handle(payload)
    assert result.ok and result.state is HandlerState.TEST_PAYLOAD
    assert bk.get_calls == [] and shop.calls == []


def test_missing_id_with_tracking_fails(quiet_logger):
    result = _handler(quiet_logger, FakeBasitKargo(), FakeShopify()).handle(
        {"status": "SHIPPED", "handlerShipmentCode": "AR1"})
    assert not result.ok and result.state is HandlerState.FAILED
    assert "missing id" in result.msg
    assert result.http_status == 400


def test_missing_tracking_number_is_a_hard_failure(quiet_logger):
    bk = FakeBasitKargo({"BK-1": {"content": {"code": "LP-1009"}}})
    shop = FakeShopify(search=[order_node()])
    result = _handler(quiet_logger, bk, shop).handle({"status": "SHIPPED", "id": "BK-1"})
    assert not result.ok and "tracking" in result.msg.lower()
    assert shop.calls == []


def test_unresolvable_identifier_fails_without_throwing(quiet_logger):
    bk = FakeBasitKargo({"BK-1": {"shipmentInfo": {"handlerShipmentCode": "AR1"}}})
    shop = FakeShopify()
    result = _handler(quiet_logger, bk, shop).handle({"status": "SHIPPED", "id": "BK-1"})
    assert not result.ok and result.state is HandlerState.FAILED
    assert "content.code" in result.msg
    assert shop.calls == []


def test_order_not_found_reports_query(quiet_logger):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    result = _handler(quiet_logger, bk, FakeShopify(search=[])).handle({"status": "SHIPPED", "id": "BK-1"})
    assert not result.ok
    assert result.msg == 'Order not found (query: name:"#LP-1009" OR name:"LP-1009")'


@pytest.mark.parametrize("statuses", [("CLOSED",), ("FULFILLED", "CLOSED"), ()])
def test_no_open_units_is_successful_noop(quiet_logger, statuses):
    units = tuple((f"fo_{i}", s) for i, s in enumerate(statuses))
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify(search=[order_node("#LP-1009", units=units)])

    result = _handler(quiet_logger, bk, shop).handle({"status": "SHIPPED", "id": "BK-1"})

    assert result.ok and result.state is HandlerState.NO_OPEN_UNITS
    assert "already fulfilled/closed" in result.msg
    assert shop.write_calls == []


def test_only_open_units_are_written(quiet_logger):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify(
        search=[order_node(units=(("fo_1", "OPEN"), ("fo_2", "CLOSED"), ("fo_3", "IN_PROGRESS")))],
        fulfill=[fulfilled("f1"), fulfilled("f3")],
    )
    result = _handler(quiet_logger, bk, shop).handle({"status": "SHIPPED", "id": "BK-1"})

    written = [c["fulfillment"]["lineItemsByFulfillmentOrder"][0]["fulfillmentOrderId"] for c in shop.write_calls]
    assert written == ["fo_1", "fo_3"]
    assert result.msg.endswith("fulfillments=f1,f3")


def test_validation_error_on_second_unit_is_partial_failure(quiet_logger):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify(
        search=[order_node(units=(("fo_1", "OPEN"), ("fo_2", "OPEN"), ("fo_3", "OPEN")))],
        fulfill=[fulfilled("f1"), rejected("Invalid tracking"), fulfilled("f3")],
    )
    result = _handler(quiet_logger, bk, shop).handle({"status": "SHIPPED", "id": "BK-1"})

    assert not result.ok and result.state is HandlerState.PARTIAL_FAILURE
    assert len(shop.write_calls) == 2
    assert [w.unit_id for w in result.writes] == ["fo_1"]
    assert "Invalid tracking" in result.msg


def test_replay_after_done_writes_nothing(quiet_logger):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify(search=[order_node(units=(("fo_1", "CLOSED"),))])
    handler = _handler(quiet_logger, bk, shop)
    first = handler.handle({"status": "SHIPPED", "id": "BK-1"})
    second = handler.handle({"status": "SHIPPED", "id": "BK-1"})
    assert first.state is second.state is HandlerState.NO_OPEN_UNITS
    assert shop.write_calls == []


def test_direct_order_hint_skips_basitkargo(quiet_logger):
    bk = FakeBasitKargo()
    shop = FakeShopify(search=[order_node("#LP-1009")], fulfill=[fulfilled("f1")])
    payload = {"status": "SHIPPED", "shopify_order": "lp-1009",
               "handlerShipmentCode": "AR9", "handler": {"code": "ARAS"}}

    result = _handler(quiet_logger, bk, shop).handle(payload)

    assert result.ok and bk.get_calls == []
    assert shop.lookup_calls == [{"q": 'name:"#LP-1009" OR name:"LP-1009"'}]
    assert shop.write_calls[0]["fulfillment"]["trackingInfo"] == {"company": "ARAS", "number": "AR9"}


def test_fixed_carrier_policy(quiet_logger):
    bk = FakeBasitKargo({"BK-1": SHIPPED_DETAIL})
    shop = FakeShopify(search=[order_node()], fulfill=[fulfilled("f1")])
    handler = _handler(quiet_logger, bk, shop, carrier_policy=CarrierPolicy(mode="fixed", default="Other"))
    handler.handle({"status": "SHIPPED", "id": "BK-1"})
    assert shop.write_calls[0]["fulfillment"]["trackingInfo"]["company"] == "Other"


def test_transport_errors_propagate(quiet_logger):
    bk = FakeBasitKargo(fail_ids={"BK-1"})
    with pytest.raises(UpstreamTransportError):
        _handler(quiet_logger, bk, FakeShopify()).handle({"status": "SHIPPED", "id": "BK-1"})


def test_non_dict_payload_is_ignored(quiet_logger):
    result = _handler(quiet_logger, FakeBasitKargo(), FakeShopify()).handle(["not", "an", "object"])
    assert result.ok and result.state is HandlerState.IGNORED
