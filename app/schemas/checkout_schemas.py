# app/schemas/checkout_schemas.py
from pydantic import BaseModel, field_validator
from typing import List, Optional

REQUIRED_SHIPPING_FIELDS = ("full_name", "phone", "address_line1", "city", "state", "pincode")


class ShippingDetails(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def numbers_as_text(cls, v):
        # forms post pincodes and phone numbers as JSON numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def cleaned(self) -> "ShippingDetails":
        return ShippingDetails(**{
            k: (str(v).strip() or None) if v is not None else None
            for k, v in self.model_dump().items()
        })

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_SHIPPING_FIELDS if not getattr(self, f)]


class CheckoutResponse(BaseModel):
    orderId: str
