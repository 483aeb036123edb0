# backend/services/ledger.py
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from config import settings
from models.order import Order, OrderItem, OrderStatus, PaymentKind
from models.product import Product
from schemas.order import CustomerInfoOut, OrderItemOut, OrderResponse, OrderStats
from services.cart import CartSnapshot
from services.checkout import CustomerInfo
from services.errors import NotFound, PersistenceError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)


def _enum_value(enum_cls, value, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError({field: f"Unknown {field}: {value}"})


def order_to_out(order: Order) -> OrderResponse:
    """Join an order back to catalog display data.

    The product reference on a line is lookup-only; when the product is gone
    the configured placeholders are shown instead.
    """
    items: List[OrderItemOut] = []
    for it in order.items:
        product = it.product
        items.append(OrderItemOut(
            product_id=it.product_id,
            product_name=product.name if product else settings.PLACEHOLDER_PRODUCT_NAME,
            image_url=(product.image_url if product else None) or settings.PLACEHOLDER_IMAGE_URL,
            category=product.category.name if product and product.category else settings.PLACEHOLDER_CATEGORY_NAME,
            quantity=it.quantity,
            unit_price=float(it.unit_price),
            line_total=float(it.unit_price * it.quantity),
        ))
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total_amount=float(order.total_amount),
        created_at=order.created_at,
        customer_info=CustomerInfoOut(
            name=order.customer_name,
            email=order.customer_email,
            phone=order.customer_phone,
            address=order.shipping_address,
            city=order.city,
            postal_code=order.postal_code,
        ),
        payment_method=order.payment_method,
        items=items,
    )


class OrderLedger:
    """Durable record of placed orders."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user,
        snapshot: CartSnapshot,
        customer_info: CustomerInfo,
        payment_kind: str,
        idempotency_key: Optional[str] = None,
    ) -> int:
        if user is None:
            raise Unauthorized()
        if snapshot.is_empty():
            raise ValidationError({"cart": "Cart is empty"})
        kind = _enum_value(PaymentKind, payment_kind, "payment_method")

        if idempotency_key:
            existing = self._by_idempotency_key(user.id, idempotency_key)
            if existing is not None:
                logger.info("Order %s already placed for key %s", existing.id, idempotency_key)
                return existing.id

        # Header and lines go in one transaction: either both are visible or neither
        try:
            order = Order(
                user_id=user.id,
                status=OrderStatus.PENDING.value,
                total_amount=snapshot.total,
                customer_name=customer_info.name.strip(),
                customer_email=customer_info.email.strip(),
                customer_phone=customer_info.phone.strip(),
                shipping_address=customer_info.address.strip(),
                city=customer_info.city.strip(),
                postal_code=customer_info.postal_code or None,
                payment_method=kind,
                idempotency_key=idempotency_key,
            )
            self.db.add(order)
            self.db.flush()

            self.db.add_all([
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.price_at_add,
                )
                for line in snapshot.lines
            ])
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # Another request with the same key won the race
            if idempotency_key:
                existing = self._by_idempotency_key(user.id, idempotency_key)
                if existing is not None:
                    return existing.id
            logger.exception("Order create failed for user %s", user.id)
            raise PersistenceError(f"Could not place order: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Order create failed for user %s", user.id)
            raise PersistenceError(f"Could not place order: {e}") from e

        logger.info("Order %s placed by user %s, total %s", order.id, user.id, snapshot.total)
        return order.id

    def _by_idempotency_key(self, user_id: int, key: str) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(Order.idempotency_key == key, Order.user_id == user_id)
            .first()
        )

    def _query(self):
        return (
            self.db.query(Order)
            .options(joinedload(Order.items).joinedload(OrderItem.product).joinedload(Product.category))
            # Headers without lines are never a complete order
            .filter(Order.items.any())
        )

    def list_for(self, user) -> List[OrderResponse]:
        if user is None:
            raise Unauthorized()
        q = self._query()
        if not user.is_admin:
            q = q.filter(Order.user_id == user.id)
        try:
            rows = q.order_by(Order.created_at.desc(), Order.id.desc()).all()
        except SQLAlchemyError as e:
            logger.exception("Order list failed")
            raise PersistenceError(f"Could not load orders: {e}") from e
        return [order_to_out(o) for o in rows]

    def get(self, order_id: int, user) -> OrderResponse:
        if user is None:
            raise Unauthorized()
        order = self._query().filter(Order.id == order_id).first()
        if not order or (order.user_id != user.id and not user.is_admin):
            raise NotFound(f"Order {order_id} not found")
        return order_to_out(order)

    def update_status(self, order_id: int, new_status) -> str:
        """Overwrite the status; any status may follow any other."""
        status = _enum_value(OrderStatus, new_status, "status")
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFound(f"Order {order_id} not found")

        old_status = order.status
        order.status = status
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Status update failed for order %s", order_id)
            raise PersistenceError(f"Could not update order {order_id}: {e}") from e

        logger.info("Order %s status %s -> %s", order_id, old_status, status)
        return old_status

    def stats(self) -> OrderStats:
        """Revenue and counts for the admin dashboard.

        Every placed order counts, cancelled ones included; headers without
        lines are skipped the same way listings skip them.
        """
        placed = Order.items.any()
        try:
            revenue, orders, customers = (
                self.db.query(
                    func.sum(Order.total_amount),
                    func.count(Order.id),
                    func.count(func.distinct(Order.user_id)),
                )
                .filter(placed)
                .one()
            )
            by_status = (
                self.db.query(Order.status, func.count(Order.id))
                .filter(placed)
                .group_by(Order.status)
                .all()
            )
        except SQLAlchemyError as e:
            logger.exception("Order stats failed")
            raise PersistenceError(f"Could not load order stats: {e}") from e

        counts = {s.value: 0 for s in OrderStatus}
        counts.update({status: count for status, count in by_status})
        return OrderStats(
            total_revenue=float(revenue or 0),
            total_orders=orders,
            total_customers=customers,
            orders_by_status=counts,
        )
