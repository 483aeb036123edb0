from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from config import settings
from models.order import Order, OrderItem, OrderStatus
from services.cart import Cart
from services.errors import NotFound, PersistenceError, Unauthorized, ValidationError
from services.ledger import OrderLedger


def _snapshot(*lines):
    cart = Cart()
    for product, qty in lines:
        cart.add(product, qty)
    return cart.snapshot()


def _place(db, user, shipping, *lines, key=None):
    return OrderLedger(db).create(user, _snapshot(*lines), shipping, "cash", idempotency_key=key)


def test_create_persists_header_and_lines(db, customer, products, shipping):
    p1, p2, _ = products
    order_id = _place(db, customer, shipping, (p1, 2), (p2, 1))

    order = db.query(Order).filter(Order.id == order_id).one()
    assert order.user_id == customer.id
    assert Decimal(order.total_amount) == Decimal("250")
    assert order.customer_name == "Sara Ali"
    assert order.city == "Riyadh"
    assert order.postal_code == "11564"
    assert sorted((i.product_id, i.quantity, Decimal(i.unit_price)) for i in order.items) == sorted([
        (p1.id, 2, Decimal("100")), (p2.id, 1, Decimal("50")),
    ])


def test_total_equals_sum_of_lines(db, customer, products, shipping):
    p1, p2, _ = products
    order_id = _place(db, customer, shipping, (p1, 3), (p2, 7))
    order = db.query(Order).filter(Order.id == order_id).one()
    assert Decimal(order.total_amount) == sum(
        (Decimal(i.unit_price) * i.quantity for i in order.items), Decimal("0")
    )


def test_empty_snapshot_is_rejected(db, customer, shipping):
    with pytest.raises(ValidationError):
        OrderLedger(db).create(customer, Cart().snapshot(), shipping, "cash")


def test_unknown_payment_kind_is_rejected(db, customer, products, shipping):
    with pytest.raises(ValidationError) as exc:
        OrderLedger(db).create(customer, _snapshot((products[0], 1)), shipping, "bitcoin")
    assert "payment_method" in exc.value.errors


def test_create_requires_user(db, products, shipping):
    with pytest.raises(Unauthorized):
        OrderLedger(db).create(None, _snapshot((products[0], 1)), shipping, "cash")


def test_line_failure_leaves_no_header(db, customer, products, shipping):
    p1, p2, _ = products

    def fail_insert(mapper, connection, target):
        raise OperationalError("INSERT INTO order_items", {}, Exception("disk I/O error"))

    event.listen(OrderItem, "before_insert", fail_insert)
    try:
        with pytest.raises(PersistenceError) as exc:
            _place(db, customer, shipping, (p1, 1), (p2, 1))
    finally:
        event.remove(OrderItem, "before_insert", fail_insert)

    assert "disk I/O error" in exc.value.message
    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0

    # retrying after the failure works
    order_id = _place(db, customer, shipping, (p1, 1), (p2, 1))
    assert [o.id for o in OrderLedger(db).list_for(customer)] == [order_id]


def test_header_without_lines_is_not_listed(db, customer, shipping):
    db.add(Order(user_id=customer.id, total_amount=Decimal("10"), customer_name="x",
                 customer_email="x@mail.com", customer_phone="1", shipping_address="a", city="c"))
    db.commit()
    assert OrderLedger(db).list_for(customer) == []


def test_idempotency_key_returns_existing_order(db, customer, products, shipping):
    p1 = products[0]
    first = _place(db, customer, shipping, (p1, 1), key="checkout-7f3a")
    second = _place(db, customer, shipping, (p1, 1), key="checkout-7f3a")

    assert first == second
    assert db.query(Order).count() == 1


def test_idempotency_key_is_scoped_per_user(db, customer, other_customer, products, shipping):
    p1 = products[0]
    mine = _place(db, customer, shipping, (p1, 1), key="k1")
    theirs = _place(db, other_customer, shipping, (p1, 1), key="k1")

    assert mine != theirs
    assert db.query(Order).filter(Order.user_id == other_customer.id).one().id == theirs
    assert _place(db, other_customer, shipping, (p1, 1), key="k1") == theirs
    assert db.query(Order).count() == 2


def test_list_for_customer_only_shows_own_orders_newest_first(db, customer, other_customer, products, shipping):
    p1, p2, _ = products
    first = _place(db, customer, shipping, (p1, 1))
    _place(db, other_customer, shipping, (p2, 1))
    second = _place(db, customer, shipping, (p2, 2))

    assert [o.id for o in OrderLedger(db).list_for(customer)] == [second, first]


def test_admin_sees_every_order(db, admin, customer, other_customer, products, shipping):
    p1, p2, _ = products
    ids = [
        _place(db, customer, shipping, (p1, 1)),
        _place(db, other_customer, shipping, (p2, 1)),
    ]
    assert [o.id for o in OrderLedger(db).list_for(admin)] == list(reversed(ids))


def test_list_for_requires_user(db):
    with pytest.raises(Unauthorized):
        OrderLedger(db).list_for(None)


def test_order_lines_show_catalog_data(db, customer, products, shipping):
    p1 = products[0]
    _place(db, customer, shipping, (p1, 2))

    line = OrderLedger(db).list_for(customer)[0].items[0]
    assert line.product_name == "P1"
    assert line.category == "Men"
    assert line.unit_price == 100
    assert line.line_total == 200


def test_deleted_product_falls_back_to_placeholder(db, catalog, customer, products, shipping):
    p1 = products[0]
    _place(db, customer, shipping, (p1, 2))
    catalog.delete_product(p1.id)

    order = OrderLedger(db).list_for(customer)[0]
    line = order.items[0]
    assert line.product_id == p1.id
    assert line.product_name == settings.PLACEHOLDER_PRODUCT_NAME
    assert line.category == settings.PLACEHOLDER_CATEGORY_NAME
    assert line.image_url == settings.PLACEHOLDER_IMAGE_URL
    assert order.total_amount == 200


@pytest.mark.parametrize("start", ["pending", "processing", "shipped", "delivered"])
def test_cancel_from_every_status(db, customer, products, shipping, start):
    ledger = OrderLedger(db)
    order_id = _place(db, customer, shipping, (products[0], 1))
    ledger.update_status(order_id, start)

    old = ledger.update_status(order_id, "cancelled")

    assert old == start
    assert ledger.list_for(customer)[0].status == "cancelled"


def test_any_status_may_follow_any_other(db, customer, products, shipping):
    ledger = OrderLedger(db)
    order_id = _place(db, customer, shipping, (products[0], 1))
    for status in ["delivered", "pending", "cancelled", "shipped", OrderStatus.PROCESSING]:
        ledger.update_status(order_id, status)
    assert ledger.get(order_id, customer).status == "processing"


def test_update_status_unknown_order(db):
    with pytest.raises(NotFound):
        OrderLedger(db).update_status(999, "shipped")


def test_update_status_rejects_unknown_value(db, customer, products, shipping):
    order_id = _place(db, customer, shipping, (products[0], 1))
    with pytest.raises(ValidationError):
        OrderLedger(db).update_status(order_id, "lost")


def test_get_hides_other_users_orders(db, customer, other_customer, admin, products, shipping):
    order_id = _place(db, customer, shipping, (products[0], 1))
    ledger = OrderLedger(db)

    with pytest.raises(NotFound):
        ledger.get(order_id, other_customer)
    assert ledger.get(order_id, admin).id == order_id


def test_stats_sum_placed_orders(db, customer, other_customer, products, shipping):
    p1, p2, _ = products
    ledger = OrderLedger(db)
    _place(db, customer, shipping, (p1, 2), (p2, 1))
    cancelled = _place(db, customer, shipping, (p2, 1))
    _place(db, other_customer, shipping, (p1, 1))
    ledger.update_status(cancelled, "cancelled")
    # A header without lines is not a placed order
    db.add(Order(user_id=other_customer.id, total_amount=Decimal("999"), customer_name="x",
                 customer_email="x@mail.com", customer_phone="1", shipping_address="a", city="c"))
    db.commit()

    stats = ledger.stats()

    assert stats.total_revenue == 400
    assert stats.total_orders == 3
    assert stats.total_customers == 2
    assert stats.orders_by_status["pending"] == 2
    assert stats.orders_by_status["cancelled"] == 1
    assert stats.orders_by_status["shipped"] == 0


def test_stats_on_empty_ledger(db):
    stats = OrderLedger(db).stats()
    assert stats.total_revenue == 0
    assert stats.total_orders == 0
    assert stats.total_customers == 0
