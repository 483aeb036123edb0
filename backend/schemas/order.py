# backend/schemas/order.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional, Union
from datetime import datetime

from models.order import OrderStatus


# Output schema for an individual order line with its display snapshot
class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    image_url: str
    category: str
    quantity: int
    unit_price: float
    line_total: float


class CustomerInfoIn(BaseModel):
    # Presence and format are checked by the checkout pipeline, field by field
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    postal_code: Optional[str] = None


class CustomerInfoOut(BaseModel):
    name: str
    email: str
    phone: str
    address: str
    city: str
    postal_code: Optional[str] = None


class CardPaymentIn(BaseModel):
    method: Literal["card"] = "card"
    number: str = ""
    expiry: str = ""
    cvv: str = ""
    holder_name: str = ""


class CashPaymentIn(BaseModel):
    method: Literal["cash"] = "cash"


class CheckoutLineIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


# Input schema for placing an order from the client-side cart
class CheckoutPayload(BaseModel):
    items: List[CheckoutLineIn]
    customer_info: CustomerInfoIn
    payment: Union[CardPaymentIn, CashPaymentIn] = Field(discriminator="method")
    idempotency_key: Optional[str] = None


# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    user_id: int
    status: str
    total_amount: float
    created_at: Optional[datetime] = None
    customer_info: CustomerInfoOut
    payment_method: str
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class OrderCreated(BaseModel):
    order_id: int


# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: OrderStatus


# Admin dashboard summary
class OrderStats(BaseModel):
    total_revenue: float
    total_orders: int
    total_customers: int
    orders_by_status: Dict[str, int]
