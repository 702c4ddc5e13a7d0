from pydantic import BaseModel, Field
from typing import Optional


class CartAddRequest(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(default=1, ge=1, le=20)


class CartUpdateRequest(BaseModel):
    quantity: int = Field(ge=0, le=20)
