"""Checkout transaction: pre-flight validation, stock decrement and batch atomicity."""

import pytest
from sqlalchemy.exc import OperationalError

from database import SessionLocal
from models.order import Order
from models.product import Product
from schemas.order import OrderLineItem
from utils.order_processing import (
    InsufficientStock,
    OrderValidationError,
    OrderWriteFailure,
    ProductNotFound,
    ProductSoldOut,
    commit_order,
    process_order,
    validate_order_items,
)


def item(product, quantity, price=None):
    return OrderLineItem(product_id=product.id, quantity=quantity, price=product.price if price is None else price)


def fresh(product_id):
    session = SessionLocal()
    try:
        return session.query(Product).filter(Product.id == product_id).one()
    finally:
        session.close()


def order_count():
    session = SessionLocal()
    try:
        return session.query(Order).count()
    finally:
        session.close()


def test_happy_path_decrements_stock_and_creates_order(db, make_product, shopper):
    a = make_product("A", price=12.5, quantity=5)

    orders = process_order(db, [item(a, 2)], "Alice", shopper.id)

    assert len(orders) == 1
    assert orders[0].total_price == 25.0
    assert orders[0].status == "pending"
    assert orders[0].user_id == shopper.id
    stored = fresh(a.id)
    assert stored.quantity == 3
    assert stored.is_sold_out is False


def test_exact_depletion_marks_sold_out(db, make_product, shopper):
    b = make_product("B", quantity=1)

    process_order(db, [item(b, 1)], "Bob", shopper.id)

    stored = fresh(b.id)
    assert stored.quantity == 0
    assert stored.is_sold_out is True


def test_oversell_is_rejected_without_side_effects(db, make_product, shopper):
    c = make_product("C", quantity=1)

    with pytest.raises(InsufficientStock) as exc:
        process_order(db, [item(c, 2)], "Carol", shopper.id)

    assert exc.value.product_id == c.id
    assert "Available: 1, Requested: 2" in exc.value.message
    assert fresh(c.id).quantity == 1
    assert order_count() == 0


def test_sold_out_product_is_rejected(db, make_product, shopper):
    d = make_product("D", quantity=0)

    with pytest.raises(ProductSoldOut) as exc:
        process_order(db, [item(d, 1)], "Dan", shopper.id)

    assert exc.value.kind == "SoldOut"
    assert exc.value.status_code == 409


def test_manually_flagged_sold_out_is_rejected_even_with_stock(db, make_product, shopper):
    e = make_product("E", quantity=4, is_sold_out=True)

    with pytest.raises(ProductSoldOut):
        process_order(db, [item(e, 1)], "Eve", shopper.id)
    assert fresh(e.id).quantity == 4


def test_batch_fails_as_a_whole_when_second_item_is_sold_out(db, make_product, shopper):
    first = make_product("First", quantity=5)
    second = make_product("Second", quantity=0)

    with pytest.raises(ProductSoldOut):
        process_order(db, [item(first, 1), item(second, 1)], "Frank", shopper.id)

    assert fresh(first.id).quantity == 5
    assert order_count() == 0


def test_unknown_product(db, make_product, shopper):
    with pytest.raises(ProductNotFound) as exc:
        process_order(db, [OrderLineItem(product_id=999, quantity=1, price=1.0)], "Gina", shopper.id)
    assert exc.value.status_code == 404
    assert exc.value.message == "Product 999 not found"


@pytest.mark.parametrize("quantity", [0, -3])
def test_non_positive_quantity_is_a_validation_error(db, make_product, shopper, quantity):
    a = make_product("A", quantity=5)
    with pytest.raises(OrderValidationError):
        process_order(db, [item(a, quantity)], "Hank", shopper.id)


@pytest.mark.parametrize("price", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_price_is_a_validation_error(db, make_product, shopper, price):
    a = make_product("A", quantity=5)
    with pytest.raises(OrderValidationError) as exc:
        process_order(db, [item(a, 1, price=price)], "Hank", shopper.id)
    assert exc.value.product_id == a.id
    assert fresh(a.id).quantity == 5
    assert order_count() == 0


def test_empty_batch_is_a_validation_error(db, shopper):
    with pytest.raises(OrderValidationError) as exc:
        process_order(db, [], "Ivy", shopper.id)
    assert exc.value.message == "Items array is required and cannot be empty"


@pytest.mark.parametrize("customer_name, user_id", [("", "u-1"), ("   ", "u-1"), ("Jack", "")])
def test_customer_and_user_are_required(db, make_product, customer_name, user_id):
    a = make_product("A", quantity=5)
    with pytest.raises(OrderValidationError):
        process_order(db, [item(a, 1)], customer_name, user_id)
    assert fresh(a.id).quantity == 5


def test_repeated_product_is_checked_against_summed_quantity(db, make_product, shopper):
    a = make_product("A", quantity=3)

    with pytest.raises(InsufficientStock):
        process_order(db, [item(a, 2), item(a, 2)], "Kim", shopper.id)
    assert fresh(a.id).quantity == 3

    orders = process_order(db, [item(a, 1), item(a, 2)], "Kim", shopper.id)
    assert [o.quantity for o in orders] == [1, 2]
    stored = fresh(a.id)
    assert stored.quantity == 0
    assert stored.is_sold_out is True


def test_validation_is_repeatable_and_read_only(db, make_product):
    a = make_product("A", quantity=2)
    b = make_product("B", quantity=0)

    ok_first = validate_order_items(db, [item(a, 2)])
    ok_second = validate_order_items(db, [item(a, 2)])
    assert [(l.product_id, l.quantity) for l in ok_first] == [(l.product_id, l.quantity) for l in ok_second]

    for _ in range(2):
        with pytest.raises(ProductSoldOut):
            validate_order_items(db, [item(a, 1), item(b, 1)])

    assert fresh(a.id).quantity == 2
    assert order_count() == 0


def test_total_price_uses_price_at_purchase_time(db, make_product, shopper):
    a = make_product("A", price=10.0, quantity=5)
    orders = process_order(db, [item(a, 2, price=10.0)], "Lea", shopper.id)

    a.price = 99.0
    db.commit()

    stored = db.query(Order).filter(Order.id == orders[0].id).one()
    assert stored.total_price == 20.0


def test_client_price_policy_keeps_cart_price(db, make_product, shopper):
    a = make_product("A", price=10.0, quantity=5)
    orders = process_order(db, [item(a, 3, price=8.0)], "Max", shopper.id, price_policy="client")
    assert orders[0].total_price == 24.0


def test_catalog_price_policy_uses_discounted_catalog_price(db, make_product, shopper):
    a = make_product("A", price=10.0, quantity=5, discount_percentage=20, is_on_sale=True)
    orders = process_order(db, [item(a, 3, price=0.01)], "Nia", shopper.id, price_policy="catalog")
    assert orders[0].total_price == 24.0


def test_concurrent_checkouts_for_last_unit_only_one_wins(make_product, shopper):
    last = make_product("Last one", quantity=1)
    session_a, session_b = SessionLocal(), SessionLocal()
    try:
        # Both checkouts pass pre-flight against the same stock level
        plan_a = validate_order_items(session_a, [item(last, 1)])
        plan_b = validate_order_items(session_b, [item(last, 1)])

        orders_b = commit_order(session_b, plan_b, "Winner", shopper.id)
        with pytest.raises(InsufficientStock):
            commit_order(session_a, plan_a, "Loser", shopper.id)
    finally:
        session_a.close()
        session_b.close()

    assert len(orders_b) == 1
    stored = fresh(last.id)
    assert stored.quantity == 0
    assert stored.is_sold_out is True
    assert order_count() == 1


def test_write_failure_rolls_back_whole_batch(db, make_product, shopper, monkeypatch):
    first = make_product("First", quantity=5)
    second = make_product("Second", quantity=5)

    real_flush = db.flush
    calls = {"n": 0}

    def flaky_flush(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))
        return real_flush(*args, **kwargs)

    monkeypatch.setattr(db, "flush", flaky_flush)

    with pytest.raises(OrderWriteFailure) as exc:
        process_order(db, [item(first, 1), item(second, 1)], "Otto", shopper.id)

    assert exc.value.status_code == 500
    assert exc.value.product_id == second.id
    assert fresh(first.id).quantity == 5
    assert fresh(second.id).quantity == 5
    assert order_count() == 0
