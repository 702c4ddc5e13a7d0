import json
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import PaymentSource, PaymentStatus
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.monitoring_event import Severity
from app.models.order import Order
from app.models.webhook_event import WebhookEvent, WebhookStatus
from app.services.alert_service import notify_critical_alert, record_monitoring_event
from app.services.order_cancellation import cancel_order
from app.services.order_event_service import log_order_event
from app.services.order_transitions import assert_payment_transition, is_cancellable
from app.services.payment_service import compute_payment_signature, confirm_order_payment

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
WARN_AFTER_RETRIES = 3


def ingest_webhook(
    session: Session,
    raw_body: bytes,
    event_id: Optional[str] = None,
) -> Tuple[WebhookEvent, bool]:
    """Store a verified webhook body. Returns (event, is_duplicate)."""
    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Invalid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON")

    if event_id:
        existing = session.exec(
            select(WebhookEvent).where(WebhookEvent.event_id == event_id)
        ).first()
        if existing:
            return existing, True

    entity = ((payload.get("payload") or {}).get("payment") or {}).get("entity") or {}
    event = WebhookEvent(
        event_id=event_id,
        event_type=str(payload.get("event") or "unknown"),
        razorpay_order_id=entity.get("order_id"),
        payload=payload,
    )
    session.add(event)
    try:
        session.commit()
    except IntegrityError:
        # concurrent redelivery of the same event id
        session.rollback()
        existing = session.exec(
            select(WebhookEvent).where(WebhookEvent.event_id == event_id)
        ).first()
        return existing, True

    session.refresh(event)
    logger.info(f"Webhook {event.event_type} stored as {event.id}")
    return event, False


def _mark_processed(session: Session, webhook_event_id: str):
    event = session.get(WebhookEvent, webhook_event_id)
    now = datetime.utcnow()
    event.status = WebhookStatus.processed
    event.processed_at = now
    event.last_error = None
    if event.created_at:
        event.latency_ms = int((now - event.created_at).total_seconds() * 1000)
    session.add(event)
    session.commit()


def _mark_retry(session: Session, webhook_event_id: str, error: str, give_up: bool = False):
    event = session.get(WebhookEvent, webhook_event_id)
    retry_count = (event.retry_count or 0) + 1
    exhausted = give_up or retry_count > MAX_RETRIES

    event.retry_count = retry_count
    event.status = WebhookStatus.failed if exhausted else WebhookStatus.pending
    event.last_error = error
    session.add(event)

    if retry_count >= WARN_AFTER_RETRIES:
        record_monitoring_event(
            session,
            type="webhook_retry_warning",
            severity=Severity.critical if retry_count > MAX_RETRIES else Severity.warning,
            message="Webhook retry threshold reached",
            meta={"webhookEventId": webhook_event_id, "retry_count": retry_count, "last_error": error},
        )
    session.commit()

    if retry_count >= MAX_RETRIES:
        notify_critical_alert(
            "Webhook processing retry threshold reached",
            {"webhookEventId": webhook_event_id, "retry_count": retry_count, "last_error": error},
            session=session,
        )


def _apply_refund(session: Session, razorpay_payment_id: str):
    order = session.exec(
        select(Order).where(Order.razorpay_payment_id == razorpay_payment_id)
    ).first()
    if not order:
        raise NotFoundError("Order")
    if order.payment_status == PaymentStatus.refunded:
        return

    assert_payment_transition(order.payment_status, PaymentStatus.refunded)
    order.payment_status = PaymentStatus.refunded
    order.updated_at = datetime.utcnow()
    session.add(order)
    log_order_event(
        session,
        order_id=order.id,
        event_type="refunded",
        label="Payment refunded",
        created_by=PaymentSource.webhook.value,
        meta={"razorpay_payment_id": razorpay_payment_id},
    )
    session.commit()

    if is_cancellable(order.status):
        cancel_order(session, order.id, actor=PaymentSource.webhook.value)


def _apply_failed(session: Session, order: Order):
    assert_payment_transition(order.payment_status, PaymentStatus.failed)
    order.payment_status = PaymentStatus.failed
    order.updated_at = datetime.utcnow()
    session.add(order)
    log_order_event(
        session,
        order_id=order.id,
        event_type="payment_failed",
        label="Payment failed",
        created_by=PaymentSource.webhook.value,
    )
    session.commit()


def process_webhook_event(session: Session, webhook_event_id: str):
    event = session.get(WebhookEvent, webhook_event_id)
    if not event:
        logger.error(f"process_webhook_event: webhook event {webhook_event_id} not found")
        return
    if event.status == WebhookStatus.processed:
        return

    evt = event.payload or {}
    event_name = evt.get("event") or ""
    inner = evt.get("payload") or {}
    payment_entity = (inner.get("payment") or {}).get("entity") or {}

    try:
        if event_name == "refund.processed":
            refund_entity = (inner.get("refund") or {}).get("entity") or {}
            payment_id = refund_entity.get("payment_id")
            if not payment_id:
                raise ValidationError("Refund webhook missing payment_id")
            _apply_refund(session, payment_id)
            _mark_processed(session, webhook_event_id)
            return

        razorpay_order_id = payment_entity.get("order_id") or event.razorpay_order_id
        if not razorpay_order_id:
            _mark_retry(session, webhook_event_id, "Missing razorpay_order_id", give_up=True)
            return

        order = session.exec(
            select(Order).where(Order.razorpay_order_id == razorpay_order_id)
        ).first()
        if not order:
            raise NotFoundError(f"Order for {razorpay_order_id}")

        if order.payment_status == PaymentStatus.paid:
            pass
        elif event_name == "payment.failed":
            if order.payment_status == PaymentStatus.unpaid:
                _apply_failed(session, order)
        elif event_name == "payment.captured":
            payment_id = str(payment_entity.get("id") or "unknown")
            confirm_order_payment(
                session,
                order_id=order.id,
                razorpay_payment_id=payment_id,
                razorpay_signature=compute_payment_signature(
                    razorpay_order_id, payment_id, settings.RAZORPAY_KEY_SECRET
                ),
                source=PaymentSource.webhook,
            )

        _mark_processed(session, webhook_event_id)

    except ConflictError as e:
        # money moved for an order that can no longer take it; retrying won't help
        session.rollback()
        notify_critical_alert(
            "confirm_order_payment refused (webhook)",
            {"webhookEventId": webhook_event_id, "razorpayOrderId": event.razorpay_order_id, "error": str(e)},
            session=session,
        )
        _mark_retry(session, webhook_event_id, str(e), give_up=True)
    except Exception as e:
        session.rollback()
        logger.exception(f"process_webhook_event: {webhook_event_id} failed")
        _mark_retry(session, webhook_event_id, str(e))


def retry_pending_webhooks(session: Session, limit: int = 50) -> int:
    pending_ids = session.exec(
        select(WebhookEvent.id)
        .where(WebhookEvent.status == WebhookStatus.pending)
        .order_by(WebhookEvent.created_at)
        .limit(limit)
    ).all()

    for webhook_event_id in pending_ids:
        process_webhook_event(session, webhook_event_id)

    return len(pending_ids)
