import pytest

from basitkargo_bridge.api.errors import ResolutionError
from basitkargo_bridge.models import FulfillmentUnit, OrderIdentifier, ResolvedOrder
from basitkargo_bridge.pipelines.order_locator import OrderLocator, build_order_query, parse_order
from basitkargo_bridge.rules.statuses import open_units

from conftest import FakeShopify, order_node


@pytest.mark.parametrize("name", ["#LP-1009", "LP-1009", "  #LP-1009 "])
def test_build_order_query_quotes_both_forms(name):
    assert build_order_query(name) == 'name:"#LP-1009" OR name:"LP-1009"'


def test_build_order_query_empty():
    assert build_order_query("") is None
    assert build_order_query(None) is None


def test_search_strategy_returns_order_with_units():
    shop = FakeShopify(search=[order_node(units=(("fo_1", "OPEN"), ("fo_2", "CLOSED")))])
    order = OrderLocator(shop).locate(OrderIdentifier.order_name("#LP-1009"))

    assert order.name == "#LP-1009"
    assert [u.id for u in order.units] == ["fo_1", "fo_2"]
    (query, variables), = shop.calls
    assert "orders(first: 1" in query
    assert variables == {"q": 'name:"#LP-1009" OR name:"LP-1009"'}


def test_search_strategy_not_found_includes_query():
    shop = FakeShopify(search=[])
    with pytest.raises(ResolutionError) as e:
        OrderLocator(shop).locate(OrderIdentifier.order_name("#LP-404"))
    assert str(e.value) == 'Order not found (query: name:"#LP-404" OR name:"LP-404")'


def test_reference_strategy_fetches_by_gid_without_search():
    gid = "gid://shopify/Order/7708726460709"
    shop = FakeShopify(by_id={gid: order_node(name="#LP-5", gid=gid)})
    order = OrderLocator(shop).locate(OrderIdentifier.reference("7708726460709"))

    assert order.id == gid and order.name == "#LP-5"
    (query, variables), = shop.calls
    assert "order(id: $id)" in query and "orders(first" not in query
    assert variables == {"id": gid}


def test_reference_strategy_not_found_by_id():
    shop = FakeShopify(by_id={})
    with pytest.raises(ResolutionError) as e:
        OrderLocator(shop).locate(OrderIdentifier.reference("1234567890"))
    assert "not found by id" in str(e.value)
    assert "gid://shopify/Order/1234567890" in str(e.value)


def test_parse_order_tolerates_missing_fulfillment_orders():
    order = parse_order({"id": "gid://shopify/Order/1", "name": "#LP-1"})
    assert order.units == ()


def test_open_units_keeps_only_open_and_in_progress():
    order = ResolvedOrder("o", "#LP-1", (
        FulfillmentUnit("a", "OPEN"),
        FulfillmentUnit("b", "CLOSED"),
        FulfillmentUnit("c", "IN_PROGRESS"),
        FulfillmentUnit("d", "CANCELLED"),
        FulfillmentUnit("e", "ON_HOLD"),
    ))
    assert [u.id for u in open_units(order)] == ["a", "c"]
