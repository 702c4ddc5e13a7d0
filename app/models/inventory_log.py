from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field


class InventoryLog(SQLModel, table=True):
    """Append-only record of every stock movement."""

    __tablename__ = "inventory_log"
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)

    product_id: str = Field(foreign_key="product.id", index=True)
    variant_id: Optional[str] = Field(default=None, foreign_key="product_variant.id")

    change: int
    reason: str  # checkout | cancellation | admin_adjustment
    note: Optional[str] = None
    order_id: Optional[str] = Field(default=None, index=True)
    actor_id: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
