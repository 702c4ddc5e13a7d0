from pydantic import BaseModel
from typing import Optional


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None
    courier_name: Optional[str] = None
    tracking_number: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: Optional[str] = None


class StockAdjustRequest(BaseModel):
    change: int
    reason: str = ""
    variant_id: Optional[str] = None
