"""Shared BDD fixtures and step definitions for the Marketplace domain."""

import json

import pytest
from protean import current_domain
from pytest_bdd import given, parsers

from marketplace.earning.commission import SetCommissionRate
from marketplace.order.placement import PlaceOrder


@pytest.fixture()
def order_items():
    return []


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the commission rate is {rate:g} percent"))
def _(rate):
    current_domain.process(SetCommissionRate(rate_percent=rate, set_by="admin-1"), asynchronous=False)


@given(parsers.cfparse('a {price:d} item from "{seller_id}"'))
def _(order_items, price, seller_id):
    order_items.append(
        {
            "product_id": f"prod-{len(order_items) + 1}",
            "seller_id": seller_id,
            "title": f"Item {len(order_items) + 1}",
            "quantity": 1,
            "unit_price": price,
        }
    )


@given(parsers.cfparse('a pending order for "{customer_id}"'), target_fixture="order_id")
def _(customer_id):
    items = [{"product_id": "prod-1", "seller_id": "seller-a", "title": "Mug", "quantity": 1, "unit_price": 1000}]
    return current_domain.process(
        PlaceOrder(customer_id=customer_id, items=json.dumps(items)),
        asynchronous=False,
    )
