import hashlib
import hmac
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import OrderStatus, PaymentSource, PaymentStatus
from app.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    SignatureMismatchError,
    StoreError,
    ValidationError,
)
from app.models.order import Order
from app.schemas.payment_schemas import PaymentSession
from app.services.alert_service import notify_critical_alert
from app.services.email_service import send_order_confirmation
from app.services.gateway import RazorpayGateway
from app.services.order_event_service import log_order_event
from app.services.order_transitions import payment_statuses_leading_to, statuses_leading_to

logger = logging.getLogger(__name__)


class ConfirmOutcome(str, Enum):
    confirmed = "confirmed"
    already_paid = "already_paid"


# ---------------------------------------------------------------------------
# amounts & signatures
# ---------------------------------------------------------------------------

def to_minor_units(amount) -> int:
    """Rupees to paise, rounded half-up; exact for 2-decimal prices."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_payment_signature(razorpay_order_id: str, razorpay_payment_id: str, secret: str) -> str:
    body = f"{razorpay_order_id}|{razorpay_payment_id}"
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def verify_payment_signature(
    razorpay_order_id: str,
    razorpay_payment_id: str,
    signature: str,
    secret: str,
) -> bool:
    expected = compute_payment_signature(razorpay_order_id, razorpay_payment_id, secret)
    return hmac.compare_digest(expected.encode(), (signature or "").encode())


def verify_webhook_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    expected = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode(), (signature or "").encode())


# ---------------------------------------------------------------------------
# payment intent
# ---------------------------------------------------------------------------

def create_payment_intent(
    session: Session,
    gateway: RazorpayGateway,
    order_id: str,
    user_id: str,
) -> PaymentSession:
    """
    Bind a gateway order to an unpaid order and describe it for the client.

    The order row stays locked while the gateway is called so two tabs
    submitting at once end up with the same gateway order.
    """
    order = session.exec(
        select(Order).where(Order.id == order_id).with_for_update()
    ).first()

    if not order:
        raise NotFoundError("Order")
    if order.user_id != user_id:
        raise AuthorizationError()
    if order.payment_status == PaymentStatus.paid:
        raise ConflictError("Order is already paid")
    if order.payment_status != PaymentStatus.unpaid or order.status != OrderStatus.pending:
        raise ConflictError("Order is no longer awaiting payment")

    amount = to_minor_units(order.total_amount)
    currency = settings.PAYMENT_CURRENCY

    if order.razorpay_order_id:
        # one live attempt per order; the gateway accepts retries on it
        razorpay_order_id = order.razorpay_order_id
        session.rollback()
        logger.info(f"Reusing Razorpay order {razorpay_order_id} for order {order_id}")
    else:
        try:
            order.payment_attempts += 1
            gateway_order = gateway.create_order(
                amount=amount,
                currency=currency,
                receipt=order.id,
                notes={"order_id": order.id, "attempt": order.payment_attempts},
            )
            razorpay_order_id = gateway_order["id"]

            order.razorpay_order_id = razorpay_order_id
            order.updated_at = datetime.utcnow()
            session.add(order)
            log_order_event(
                session,
                order_id=order.id,
                event_type="payment_initiated",
                label="Payment initiated",
                created_by=user_id,
                meta={"razorpay_order_id": razorpay_order_id, "amount": amount},
            )
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info(f"Razorpay order {razorpay_order_id} created for order {order_id} ({amount} {currency})")

    return PaymentSession(
        key=gateway.key_id,
        razorpayOrderId=razorpay_order_id,
        amount=amount,
        currency=currency,
        orderId=order_id,
    )


# ---------------------------------------------------------------------------
# paid transition
# ---------------------------------------------------------------------------

def confirm_order_payment(
    session: Session,
    order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: Optional[str],
    source: PaymentSource,
    user_id: Optional[str] = None,
) -> ConfirmOutcome:
    """
    Single source of truth for marking an order paid.

    One conditional UPDATE flips unpaid/pending to paid/confirmed. A second
    call finds nothing to update and reports ``already_paid`` without any
    side effect. An order that left ``pending`` unpaid (e.g. cancelled first)
    cannot be confirmed.
    """
    now = datetime.utcnow()
    source = PaymentSource(source)

    stmt = (
        update(Order)
        .where(Order.id == order_id)
        .where(Order.payment_status.in_(payment_statuses_leading_to(PaymentStatus.paid)))
        .where(Order.status.in_(statuses_leading_to(OrderStatus.confirmed)))
        .values(
            payment_status=PaymentStatus.paid,
            status=OrderStatus.confirmed,
            razorpay_payment_id=razorpay_payment_id,
            razorpay_signature=razorpay_signature,
            payment_source=source.value,
            paid_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)

    try:
        result = session.execute(stmt)
        applied = result.rowcount == 1
        if applied:
            log_order_event(
                session,
                order_id=order_id,
                event_type="payment_confirmed",
                label="Payment confirmed",
                created_by=source.value,
                meta={"razorpay_payment_id": razorpay_payment_id},
            )
            session.commit()
        else:
            session.rollback()
    except Exception:
        session.rollback()
        raise

    order = session.get(Order, order_id)
    if not applied:
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFoundError("Order")
        if order.payment_status == PaymentStatus.paid:
            logger.info(f"Order {order_id} already paid; {source.value} confirmation is a no-op")
            return ConfirmOutcome.already_paid
        raise ConflictError(
            f"Order cannot be marked paid "
            f"(status={order.status.value}, payment_status={order.payment_status.value})"
        )

    logger.info(f"Order {order_id} marked paid via {source.value} ({razorpay_payment_id})")

    # the payment is durable; the email is best effort
    try:
        send_order_confirmation(session, order)
    except StoreError as e:
        logger.error(f"Order confirmation email failed for {order_id}: {e}")
    except Exception as e:
        logger.exception(f"Order confirmation email crashed for {order_id}")
        session.rollback()
        notify_critical_alert(
            "Order confirmation email failed",
            {"orderId": order_id, "error": str(e)},
            session=session,
        )

    return ConfirmOutcome.confirmed


def verify_client_payment(
    session: Session,
    order_id: str,
    user_id: str,
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
) -> ConfirmOutcome:
    secret = settings.RAZORPAY_KEY_SECRET
    if not secret:
        raise StoreError("Server configuration error")

    # the only gate between a client claim and a paid order
    if not verify_payment_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature, secret):
        logger.warning(f"Signature mismatch for order {order_id}")
        raise SignatureMismatchError()

    order = session.get(Order, order_id)
    if not order or order.user_id != user_id:
        raise NotFoundError("Order")
    if order.razorpay_order_id != razorpay_order_id:
        raise ValidationError("Razorpay order mismatch")

    return confirm_order_payment(
        session,
        order_id=order_id,
        razorpay_payment_id=razorpay_payment_id,
        razorpay_signature=razorpay_signature,
        source=PaymentSource.client,
        user_id=user_id,
    )
