from enum import Enum


class OrderStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    unpaid = "unpaid"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"


class PaymentSource(str, Enum):
    client = "client"
    reconcile = "reconcile"
    webhook = "webhook"
    admin = "admin"


ALLOWED_TRANSITIONS = {
    OrderStatus.pending: [OrderStatus.confirmed, OrderStatus.cancelled],
    OrderStatus.confirmed: [OrderStatus.shipped, OrderStatus.cancelled],
    OrderStatus.shipped: [OrderStatus.delivered],
    OrderStatus.delivered: [],
    OrderStatus.cancelled: [],
}

ALLOWED_PAYMENT_TRANSITIONS = {
    PaymentStatus.unpaid: [PaymentStatus.paid, PaymentStatus.failed],
    PaymentStatus.paid: [PaymentStatus.refunded],
    PaymentStatus.failed: [],
    PaymentStatus.refunded: [],
}

CANCELLABLE_STATUSES = [OrderStatus.pending, OrderStatus.confirmed]
