from decimal import Decimal

import pytest

from models.order import Order
from services.cart import Cart
from services.checkout import (
    CardPayment, CashPayment, CheckoutPipeline, CheckoutStep, CustomerInfo,
)
from services.errors import InvalidOperation, PersistenceError, Unauthorized, ValidationError
from services.ledger import OrderLedger


class FailingLedger:
    def __init__(self):
        self.calls = 0

    def create(self, user, snapshot, customer_info, payment_kind, idempotency_key=None):
        self.calls += 1
        raise PersistenceError("network down")


def _cart_with(products):
    p1, p2, _ = products
    cart = Cart()
    cart.add(p1, 2)
    cart.add(p2)
    return cart


def _to_review(pipeline, shipping, payment=None):
    pipeline.set_customer_info(shipping)
    pipeline.advance()
    pipeline.set_payment(payment or CashPayment())
    pipeline.advance()
    assert pipeline.step == CheckoutStep.REVIEW


def test_empty_name_blocks_shipping_step(shipping):
    pipeline = CheckoutPipeline(Cart())
    shipping.name = ""
    pipeline.set_customer_info(shipping)

    with pytest.raises(ValidationError) as exc:
        pipeline.advance()

    assert exc.value.errors == {"name": "Name is required"}
    assert pipeline.step == CheckoutStep.SHIPPING_INFO
    assert "name" in pipeline.errors


def test_every_missing_field_gets_its_own_error():
    pipeline = CheckoutPipeline(Cart())
    pipeline.set_customer_info(CustomerInfo(email="not-an-email"))

    with pytest.raises(ValidationError) as exc:
        pipeline.advance()

    assert set(exc.value.errors) == {"name", "email", "phone", "address", "city"}
    assert exc.value.errors["email"].startswith("Invalid email")


def test_postal_code_is_optional(shipping):
    shipping.postal_code = None
    pipeline = CheckoutPipeline(Cart())
    pipeline.set_customer_info(shipping)
    assert pipeline.advance() == CheckoutStep.PAYMENT_METHOD


def test_card_requires_all_four_fields(shipping):
    pipeline = CheckoutPipeline(Cart())
    pipeline.set_customer_info(shipping)
    pipeline.advance()
    pipeline.set_payment(CardPayment(number="4111111111111111", expiry="", cvv="", holder_name=""))

    with pytest.raises(ValidationError) as exc:
        pipeline.advance()

    assert set(exc.value.errors) == {"expiry", "cvv", "holder_name"}
    assert pipeline.step == CheckoutStep.PAYMENT_METHOD


def test_card_fields_are_checked_for_presence_only(shipping):
    pipeline = CheckoutPipeline(Cart())
    pipeline.set_customer_info(shipping)
    pipeline.advance()
    pipeline.set_payment(CardPayment(number="1234", expiry="xx", cvv="1", holder_name="S"))
    assert pipeline.advance() == CheckoutStep.REVIEW


def test_cash_always_passes_payment_step(shipping):
    pipeline = CheckoutPipeline(Cart())
    _to_review(pipeline, shipping)


def test_back_preserves_entered_data(shipping):
    pipeline = CheckoutPipeline(Cart())
    card = CardPayment(number="4111", expiry="12/29", cvv="123", holder_name="Sara")
    _to_review(pipeline, shipping, card)

    assert pipeline.back() == CheckoutStep.PAYMENT_METHOD
    assert pipeline.back() == CheckoutStep.SHIPPING_INFO
    assert pipeline.back() == CheckoutStep.SHIPPING_INFO
    assert pipeline.customer_info == shipping
    assert pipeline.payment == card


def test_confirm_only_from_review(db, customer, shipping):
    pipeline = CheckoutPipeline(Cart())
    pipeline.set_customer_info(shipping)
    with pytest.raises(InvalidOperation):
        pipeline.confirm(OrderLedger(db), customer)


def test_advance_from_review_is_rejected(shipping):
    pipeline = CheckoutPipeline(Cart())
    _to_review(pipeline, shipping)
    with pytest.raises(InvalidOperation):
        pipeline.advance()


def test_details_cannot_be_replaced_on_review(db, customer, products, shipping):
    pipeline = CheckoutPipeline(_cart_with(products))
    _to_review(pipeline, shipping)

    with pytest.raises(InvalidOperation):
        pipeline.set_customer_info(CustomerInfo())
    with pytest.raises(InvalidOperation):
        pipeline.set_payment(CardPayment())

    assert pipeline.customer_info == shipping
    assert isinstance(pipeline.payment, CashPayment)


def test_confirm_revalidates_edited_details(db, customer, products, shipping):
    cart = _cart_with(products)
    pipeline = CheckoutPipeline(cart)
    _to_review(pipeline, shipping)
    pipeline.customer_info.name = ""
    pipeline.customer_info.city = " "

    with pytest.raises(ValidationError) as exc:
        pipeline.confirm(OrderLedger(db), customer)

    assert set(exc.value.errors) == {"name", "city"}
    assert pipeline.step == CheckoutStep.REVIEW
    assert cart.item_count() == 3
    assert db.query(Order).count() == 0


def test_confirm_revalidates_card_fields(db, customer, products, shipping):
    card = CardPayment(number="4111111111111111", expiry="12/29", cvv="123", holder_name="Sara Ali")
    pipeline = CheckoutPipeline(_cart_with(products))
    _to_review(pipeline, shipping, card)
    card.cvv = ""

    with pytest.raises(ValidationError) as exc:
        pipeline.confirm(OrderLedger(db), customer)

    assert exc.value.errors == {"cvv": "CVV is required"}
    assert db.query(Order).count() == 0


def test_details_can_be_edited_after_stepping_back(db, customer, products, shipping):
    pipeline = CheckoutPipeline(_cart_with(products))
    _to_review(pipeline, shipping)
    pipeline.back()
    pipeline.back()

    shipping.city = "Jeddah"
    pipeline.set_customer_info(shipping)
    pipeline.advance()
    pipeline.advance()
    order_id = pipeline.confirm(OrderLedger(db), customer)

    assert db.query(Order).filter(Order.id == order_id).one().city == "Jeddah"


def test_successful_commit(db, customer, products, shipping):
    completed = []
    cart = _cart_with(products)
    pipeline = CheckoutPipeline(cart, on_complete=completed.append)
    _to_review(pipeline, shipping)
    total_before = cart.total()
    lines_before = len(cart)

    order_id = pipeline.confirm(OrderLedger(db), customer)

    order = db.query(Order).filter(Order.id == order_id).one()
    assert Decimal(order.total_amount) == total_before == Decimal("250")
    assert len(order.items) == lines_before == 2
    assert order.status == "pending"
    assert order.payment_method == "cash"
    assert cart.item_count() == 0
    assert pipeline.step == CheckoutStep.SHIPPING_INFO
    assert pipeline.customer_info == CustomerInfo()
    assert completed == [order_id]
    assert pipeline.last_order_id == order_id


def test_card_details_are_not_stored(db, customer, products, shipping):
    pipeline = CheckoutPipeline(_cart_with(products))
    _to_review(pipeline, shipping, CardPayment(number="4111111111111111", expiry="12/29",
                                               cvv="123", holder_name="Sara Ali"))
    order_id = pipeline.confirm(OrderLedger(db), customer)

    order = db.query(Order).filter(Order.id == order_id).one()
    assert order.payment_method == "card"
    columns = Order.__table__.columns.keys()
    assert not [c for c in columns if "card" in c or "cvv" in c or "expiry" in c]


def test_failed_commit_stays_in_review(products, customer, shipping):
    cart = _cart_with(products)
    pipeline = CheckoutPipeline(cart)
    _to_review(pipeline, shipping)
    ledger = FailingLedger()

    with pytest.raises(PersistenceError):
        pipeline.confirm(ledger, customer)

    assert pipeline.step == CheckoutStep.REVIEW
    assert pipeline.errors == {"general": "network down"}
    assert cart.item_count() == 3
    assert pipeline.customer_info == shipping


def test_commit_requires_signed_in_user(db, products, shipping):
    cart = _cart_with(products)
    pipeline = CheckoutPipeline(cart)
    _to_review(pipeline, shipping)

    with pytest.raises(Unauthorized):
        pipeline.confirm(OrderLedger(db), None)
    assert pipeline.step == CheckoutStep.REVIEW
    assert cart.item_count() == 3


def test_commit_with_empty_cart_is_rejected(db, customer, shipping):
    pipeline = CheckoutPipeline(Cart())
    _to_review(pipeline, shipping)

    with pytest.raises(ValidationError) as exc:
        pipeline.confirm(OrderLedger(db), customer)
    assert "cart" in exc.value.errors
    assert db.query(Order).count() == 0


def test_end_to_end_scenario(db, customer, products, shipping):
    cart = _cart_with(products)
    assert cart.total() == Decimal("250")
    assert cart.item_count() == 3

    pipeline = CheckoutPipeline(cart)
    _to_review(pipeline, shipping)
    ledger = OrderLedger(db)
    order_id = pipeline.confirm(ledger, customer)

    orders = ledger.list_for(customer)
    assert [o.id for o in orders] == [order_id]
    assert orders[0].total_amount == 250
    assert len(orders[0].items) == 2
    assert orders[0].status == "pending"
    assert cart.item_count() == 0
