# backend/services/checkout.py
"""Three-step checkout: shipping info, payment method, review, then commit.

The pipeline only moves forward after the current step validates, and always
allows stepping back without losing what was typed. Committing hands a frozen
copy of the cart to the order ledger; the live cart is cleared only after the
ledger reports success.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from email_validator import EmailNotValidError, validate_email

from services.cart import Cart
from services.errors import InvalidOperation, StoreError, ValidationError

logger = logging.getLogger(__name__)


class CheckoutStep(str, enum.Enum):
    SHIPPING_INFO = "shipping_info"
    PAYMENT_METHOD = "payment_method"
    REVIEW = "review"
    COMMITTED = "committed"


@dataclass
class CustomerInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    postal_code: Optional[str] = None


@dataclass
class CardPayment:
    number: str = ""
    expiry: str = ""
    cvv: str = ""
    holder_name: str = ""

    kind = "card"


@dataclass
class CashPayment:
    kind = "cash"


PaymentSelection = Union[CardPayment, CashPayment]


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def validate_shipping(info: CustomerInfo) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if _blank(info.name):
        errors["name"] = "Name is required"
    if _blank(info.email):
        errors["email"] = "Email is required"
    else:
        try:
            validate_email(info.email.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            errors["email"] = f"Invalid email: {e}"
    if _blank(info.phone):
        errors["phone"] = "Phone is required"
    if _blank(info.address):
        errors["address"] = "Address is required"
    if _blank(info.city):
        errors["city"] = "City is required"
    return errors


def validate_payment(payment: PaymentSelection) -> Dict[str, str]:
    # Presence only: no card is ever charged, so number/expiry format is not checked
    if isinstance(payment, CashPayment):
        return {}
    errors: Dict[str, str] = {}
    if _blank(payment.number):
        errors["card_number"] = "Card number is required"
    if _blank(payment.expiry):
        errors["expiry"] = "Expiry date is required"
    if _blank(payment.cvv):
        errors["cvv"] = "CVV is required"
    if _blank(payment.holder_name):
        errors["holder_name"] = "Card holder name is required"
    return errors


class CheckoutPipeline:
    def __init__(self, cart: Cart, on_complete: Optional[Callable[[int], None]] = None):
        self.cart = cart
        self.on_complete = on_complete
        self.step = CheckoutStep.SHIPPING_INFO
        self.customer_info = CustomerInfo()
        self.payment: PaymentSelection = CardPayment()
        self.errors: Dict[str, str] = {}
        self.last_order_id: Optional[int] = None

    def set_customer_info(self, info: CustomerInfo) -> None:
        if self.step != CheckoutStep.SHIPPING_INFO:
            raise InvalidOperation("Shipping info can only be changed on the shipping step")
        self.customer_info = info

    def set_payment(self, payment: PaymentSelection) -> None:
        if self.step != CheckoutStep.PAYMENT_METHOD:
            raise InvalidOperation("Payment can only be changed on the payment step")
        self.payment = payment

    def advance(self) -> CheckoutStep:
        if self.step == CheckoutStep.SHIPPING_INFO:
            errors, target = validate_shipping(self.customer_info), CheckoutStep.PAYMENT_METHOD
        elif self.step == CheckoutStep.PAYMENT_METHOD:
            errors, target = validate_payment(self.payment), CheckoutStep.REVIEW
        else:
            raise InvalidOperation(f"Cannot advance from {self.step.value}, confirm the order instead")

        self.errors = errors
        if errors:
            raise ValidationError(errors)
        self.step = target
        return self.step

    def back(self) -> CheckoutStep:
        if self.step == CheckoutStep.PAYMENT_METHOD:
            self.step = CheckoutStep.SHIPPING_INFO
        elif self.step == CheckoutStep.REVIEW:
            self.step = CheckoutStep.PAYMENT_METHOD
        self.errors = {}
        return self.step

    def confirm(self, ledger, user, idempotency_key: Optional[str] = None) -> int:
        """Place the order and return its id.

        On any failure the pipeline stays on the review step with the error in
        ``errors["general"]`` and the exception propagates to the caller.
        """
        if self.step != CheckoutStep.REVIEW:
            raise InvalidOperation("Order can only be confirmed from the review step")

        # Entered data is mutable in place, so it is checked again before it is stored
        errors = {**validate_shipping(self.customer_info), **validate_payment(self.payment)}
        if errors:
            self.errors = errors
            raise ValidationError(errors)

        snapshot = self.cart.snapshot()
        customer = CustomerInfo(**vars(self.customer_info))
        try:
            order_id = ledger.create(
                user, snapshot, customer, self.payment.kind, idempotency_key=idempotency_key
            )
        except StoreError as e:
            self.errors = {"general": e.message}
            logger.warning("Checkout failed at commit: %s", e.message)
            raise

        self.step = CheckoutStep.COMMITTED
        self.last_order_id = order_id
        self.cart.clear()
        self.reset()
        if self.on_complete:
            self.on_complete(order_id)
        return order_id

    def reset(self) -> None:
        self.step = CheckoutStep.SHIPPING_INFO
        self.customer_info = CustomerInfo()
        self.payment = CardPayment()
        self.errors = {}
