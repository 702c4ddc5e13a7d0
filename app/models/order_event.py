from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Index, JSON


class OrderEvent(SQLModel, table=True):
    """One line of an order's timeline. Rows are only ever inserted."""

    __tablename__ = "order_event"
    __table_args__ = (
        Index("ix_order_event_order_created", "order_id", "created_at"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_id: str = Field(foreign_key="order.id")

    # order_placed, payment_initiated, payment_confirmed, shipped, cancelled, ...
    event_type: str = Field(index=True)
    label: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # user id, admin id, or the payment source that caused it
    created_by: str = Field(default="system")
    created_at: datetime = Field(default_factory=datetime.utcnow)
