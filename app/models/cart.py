from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import uuid4


class CartItem(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    product_id: str = Field(foreign_key="product.id")
    variant_id: Optional[str] = Field(default=None, foreign_key="product_variant.id")
    quantity: int = 1
    created_at: datetime = Field(default_factory=datetime.utcnow)
