from pydantic import BaseModel
from typing import Optional


class PaymentCreateRequest(BaseModel):
    orderId: Optional[str] = None


class PaymentSession(BaseModel):
    key: str
    razorpayOrderId: str
    amount: int
    currency: str
    orderId: str


class RazorpayPaymentVerifySchema(BaseModel):
    orderId: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class ReconcileResponse(BaseModel):
    ok: bool
    checked: int
    confirmed: int
    errors: int
