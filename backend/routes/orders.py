# backend/routes/orders.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_optional_user, admin_required
from utils.audit import write_log, client_ip
from models.users import User
from schemas.order import (
    CheckoutPayload, CardPaymentIn, OrderCreated, OrderResponse, OrderStats, OrderStatusPatch
)
from services.cart import Cart
from services.catalog import CatalogStore
from services.checkout import CheckoutPipeline, CustomerInfo, CardPayment, CashPayment
from services.errors import StoreError, Unauthorized
from services.ledger import OrderLedger

router = APIRouter(prefix="/orders", tags=["Orders"])

def _payment_from(payload: CheckoutPayload):
    p = payload.payment
    if isinstance(p, CardPaymentIn):
        return CardPayment(number=p.number, expiry=p.expiry, cvv=p.cvv, holder_name=p.holder_name)
    return CashPayment()

# Place an order from the client-side cart.
# Prices and stock flags are re-read from the catalog, so the order total
# reflects the catalog at checkout time rather than what the client sent.
@router.post("", response_model=OrderCreated, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: CheckoutPayload,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    if current_user is None:
        raise Unauthorized()

    catalog = CatalogStore(db)
    cart = Cart()
    for line in payload.items:
        cart.add(catalog.get_product(line.product_id), line.quantity)

    pipeline = CheckoutPipeline(cart)
    pipeline.set_customer_info(CustomerInfo(**payload.customer_info.model_dump()))
    pipeline.advance()
    pipeline.set_payment(_payment_from(payload))
    pipeline.advance()

    total = cart.total()
    try:
        order_id = pipeline.confirm(OrderLedger(db), current_user, idempotency_key=payload.idempotency_key)
    except StoreError as e:
        write_log(db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status="FAIL",
                  ip=client_ip(request), meta={"reason": e.message})
        raise

    write_log(db, user_id=current_user.id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order_id, "total": str(total), "lines": len(payload.items)})
    return {"order_id": order_id}

# Orders of the current user, newest first; admins see every order
@router.get("", response_model=List[OrderResponse])
def list_orders(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return OrderLedger(db).list_for(current_user)

# Dashboard summary: revenue, order and customer counts (admin only)
@router.get("/stats", response_model=OrderStats)
def get_order_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    return OrderLedger(db).stats()

@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return OrderLedger(db).get(order_id, current_user)

# Overwrite order status (admin console); no transition rules are enforced
@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    ledger = OrderLedger(db)
    old_status = ledger.update_status(order_id, payload.status)
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order_id, "old": old_status, "new": payload.status.value})
    return ledger.get(order_id, current_user)
