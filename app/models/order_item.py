from sqlmodel import SQLModel, Field , Relationship
from typing import Optional , TYPE_CHECKING
from decimal import Decimal
from uuid import uuid4

if TYPE_CHECKING:
    from app.models.order import Order

class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_id: str = Field(foreign_key="order.id", index=True)
    product_id: str = Field(foreign_key="product.id")
    variant_id: Optional[str] = Field(default=None, foreign_key="product_variant.id")

    # snapshot at checkout time
    product_name: str
    unit_price: Decimal = Field(max_digits=12, decimal_places=2)
    quantity: int

    order: Optional["Order"] = Relationship(back_populates="items")
