from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from app.constants.order_status import OrderStatus, PaymentStatus
from app.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)

    total_amount: Decimal = Field(max_digits=12, decimal_places=2)

    # shipping
    full_name: str
    email: Optional[str] = None
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str = "India"

    status: OrderStatus = Field(default=OrderStatus.pending, index=True)
    payment_status: PaymentStatus = Field(default=PaymentStatus.unpaid, index=True)

    # gateway
    razorpay_order_id: Optional[str] = Field(default=None, index=True)
    razorpay_payment_id: Optional[str] = Field(default=None, index=True)
    razorpay_signature: Optional[str] = None
    payment_source: Optional[str] = None  # client | reconcile | webhook | admin
    payment_attempts: int = Field(default=0)
    paid_at: Optional[datetime] = None

    # fulfilment
    courier_name: Optional[str] = None
    tracking_number: Optional[str] = None
    shipped_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")
