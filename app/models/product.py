from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import CheckConstraint
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import uuid4


class Product(SQLModel, table=True):
    __table_args__ = (CheckConstraint("stock >= 0", name="product_stock_non_negative"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    name: str
    description: Optional[str] = None

    # authoritative price in rupees; checkout never trusts the client
    price: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    stock: int = Field(default=0)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    variants: List["ProductVariant"] = Relationship(back_populates="product")


class ProductVariant(SQLModel, table=True):
    __tablename__ = "product_variant"
    __table_args__ = (CheckConstraint("stock >= 0", name="variant_stock_non_negative"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    product_id: str = Field(foreign_key="product.id", index=True)
    label: str  # size / colour
    stock: int = Field(default=0)

    product: Optional[Product] = Relationship(back_populates="variants")
