import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import PaymentSource, PaymentStatus
from app.errors import StoreError
from app.models.order import Order
from app.models.system_state import SystemState
from app.services.alert_service import notify_critical_alert
from app.services.gateway import RazorpayGateway, captured_payment
from app.services.payment_service import (
    ConfirmOutcome,
    compute_payment_signature,
    confirm_order_payment,
)

logger = logging.getLogger(__name__)

LAST_RUN_KEY = "last_reconcile_run"


@dataclass
class ReconcileResult:
    checked: int = 0
    confirmed: int = 0
    errors: int = 0


def record_heartbeat(session: Session, now: datetime):
    state = session.get(SystemState, LAST_RUN_KEY)
    if state is None:
        state = SystemState(key=LAST_RUN_KEY)
    state.value = {"timestamp": now.isoformat()}
    state.updated_at = now
    session.add(state)
    session.commit()


def stale_unpaid_orders(session: Session, now: datetime):
    """Unpaid orders with a gateway order, young enough to still be reconciled."""
    cutoff = now - timedelta(hours=settings.RECONCILE_LOOKBACK_HOURS)
    return session.exec(
        select(Order)
        .where(Order.payment_status == PaymentStatus.unpaid)
        .where(Order.razorpay_order_id.is_not(None))
        .where(Order.created_at >= cutoff)
        .order_by(Order.created_at)
    ).all()


def reconcile_payments(
    session: Session,
    gateway: RazorpayGateway,
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """
    Re-derive payment truth from the gateway for orders still marked unpaid.

    Orders are handled one at a time; a failure on one is counted, alerted
    and skipped. Safe to run any number of times: the paid transition is
    idempotent and never touches an order that is already paid.
    """
    now = now or datetime.utcnow()
    result = ReconcileResult()

    record_heartbeat(session, now)

    candidates = [(o.id, o.razorpay_order_id) for o in stale_unpaid_orders(session, now)]
    logger.info(f"reconcile-payments: {len(candidates)} candidate orders")

    for order_id, razorpay_order_id in candidates:
        result.checked += 1

        try:
            payments = gateway.fetch_order_payments(razorpay_order_id)
        except StoreError as e:
            result.errors += 1
            logger.error(f"reconcile-payments: fetch payments failed for {order_id}: {e}")
            notify_critical_alert(
                "Razorpay fetchPayments failed (reconcile)",
                {"orderId": order_id, "razorpayOrderId": razorpay_order_id, "error": str(e)},
                session=session,
            )
            continue

        payment = captured_payment(payments)
        if payment is None:
            continue

        payment_id = str(payment.get("id") or "unknown")
        # the gateway itself vouched for this payment; store the signature it
        # would have produced so every paid order carries a valid one
        signature = compute_payment_signature(
            razorpay_order_id, payment_id, settings.RAZORPAY_KEY_SECRET
        )

        try:
            outcome = confirm_order_payment(
                session,
                order_id=order_id,
                razorpay_payment_id=payment_id,
                razorpay_signature=signature,
                source=PaymentSource.reconcile,
            )
        except Exception as e:
            result.errors += 1
            logger.exception(f"reconcile-payments: confirm_order_payment failed for {order_id}")
            notify_critical_alert(
                "confirm_order_payment failed (reconcile)",
                {"orderId": order_id, "razorpayOrderId": razorpay_order_id, "error": str(e)},
                session=session,
            )
            continue

        if outcome == ConfirmOutcome.confirmed:
            result.confirmed += 1
            logger.info(f"reconcile-payments: confirmed paid order {order_id} ({razorpay_order_id})")

    logger.info(
        f"reconcile-payments: checked={result.checked} "
        f"confirmed={result.confirmed} errors={result.errors}"
    )
    return result
