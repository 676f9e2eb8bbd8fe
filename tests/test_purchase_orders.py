from datetime import datetime

import pytest
from pydantic import ValidationError

from stockapp.core.errors import (
    ConstraintViolationError,
    InvalidInputError,
    NotFoundError,
    OrderStateError,
)
from stockapp.core.schemas import PurchaseOrderStatus


@pytest.fixture
def gadget_id(app):
    return app.products.add({"name": "Gadget", "quantity": 0, "price": 9})


@pytest.fixture
def order_id(app, supplier_id, widget_id, gadget_id):
    return app.purchase_orders.create({
        "supplier_id": supplier_id,
        "expected_date": datetime(2024, 9, 1),
        "items": [
            {"product_id": widget_id, "quantity": 5, "cost_price": 3.10},
            {"product_id": gadget_id, "quantity": 2, "cost_price": 6},
        ],
    })


def test_create_and_read(app, clock, order_id, widget_id):
    order = app.purchase_orders.get_by_id(order_id)
    assert order.supplier_name == "Acme Parts"
    assert order.status == PurchaseOrderStatus.PENDING
    assert order.order_date == clock.now
    assert order.expected_date == datetime(2024, 9, 1)
    assert order.received_date is None
    assert order.total_cost == 27.5
    assert [(i.product_name, i.quantity, i.cost_price) for i in order.items] == [
        ("Widget", 5, 3.10),
        ("Gadget", 2, 6.0),
    ]
    # nothing enters stock before receiving
    assert app.products.get_by_id(widget_id).quantity == 10


def test_get_all_newest_first(app, clock, supplier_id, widget_id, order_id):
    clock.advance(days=1)
    newer = app.purchase_orders.create({
        "supplier_id": supplier_id,
        "status": "Ordered",
        "items": [{"product_id": widget_id, "quantity": 1, "cost_price": 1}],
    })
    orders = app.purchase_orders.get_all()
    assert [o.id for o in orders] == [newer, order_id]
    assert orders[0].status == PurchaseOrderStatus.ORDERED
    assert orders[0].items == []


def test_receive_adds_stock_once(app, clock, order_id, widget_id, gadget_id):
    clock.advance(days=3)
    order = app.purchase_orders.receive(order_id)

    assert order.status == PurchaseOrderStatus.RECEIVED
    assert order.received_date == clock.now
    assert app.products.get_by_id(widget_id).quantity == 15
    assert app.products.get_by_id(gadget_id).quantity == 2

    with pytest.raises(OrderStateError):
        app.purchase_orders.receive(order_id)
    assert app.products.get_by_id(widget_id).quantity == 15


def test_receive_skips_deleted_products(app, order_id, widget_id, gadget_id):
    app.products.delete(gadget_id)
    order = app.purchase_orders.receive(order_id)
    assert order.items[1].product_id is None
    assert app.products.get_by_id(widget_id).quantity == 15


def test_cancelled_order_cannot_be_received(app, order_id, widget_id):
    app.purchase_orders.cancel(order_id)
    assert app.purchase_orders.get_by_id(order_id).status == PurchaseOrderStatus.CANCELLED
    with pytest.raises(OrderStateError):
        app.purchase_orders.receive(order_id)
    assert app.products.get_by_id(widget_id).quantity == 10


def test_received_order_cannot_be_cancelled(app, order_id):
    app.purchase_orders.receive(order_id)
    with pytest.raises(OrderStateError):
        app.purchase_orders.cancel(order_id)


def test_invalid_orders(app, supplier_id, widget_id):
    with pytest.raises(InvalidInputError):
        app.purchase_orders.create({"supplier_id": supplier_id, "items": []})
    with pytest.raises(ValidationError):
        app.purchase_orders.create({
            "supplier_id": supplier_id,
            "status": "Received",
            "items": [{"product_id": widget_id, "quantity": 1, "cost_price": 1}],
        })
    with pytest.raises(NotFoundError):
        app.purchase_orders.create({
            "supplier_id": supplier_id,
            "items": [{"product_id": 404, "quantity": 1, "cost_price": 1}],
        })
    with pytest.raises(ConstraintViolationError) as exc:
        app.purchase_orders.create({
            "supplier_id": 404,
            "items": [{"product_id": widget_id, "quantity": 1, "cost_price": 1}],
        })
    assert exc.value.field == "supplier_id"
    assert app.purchase_orders.get_all() == []


def test_missing_order(app):
    with pytest.raises(NotFoundError):
        app.purchase_orders.get_by_id(1)
    with pytest.raises(NotFoundError):
        app.purchase_orders.receive(1)
