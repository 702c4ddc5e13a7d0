import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.constants.order_status import OrderStatus, PaymentSource, PaymentStatus
from app.config import settings
from app.database import get_session
from app.dependencies.admin import require_admin
from app.errors import NotFoundError, StoreError, ValidationError
from app.models.order import Order
from app.models.user import User
from app.schemas.admin_schemas import OrderStatusUpdate, PaymentStatusUpdate
from app.services.email_service import send_shipping_email
from app.services.order_cancellation import cancel_order
from app.services.order_event_service import log_order_event
from app.services.order_transitions import (
    assert_confirmable,
    assert_payment_transition,
    assert_status_transition,
    parse_order_status,
    parse_payment_status,
)
from app.services.payment_service import compute_payment_signature, confirm_order_payment

logger = logging.getLogger(__name__)

router = APIRouter()

ADMIN_OVERRIDE_PAYMENT_ID = "admin_override"


def _locked_order(session: Session, order_id: str) -> Order:
    order = session.exec(
        select(Order).where(Order.id == order_id).with_for_update()
    ).first()
    if not order:
        raise NotFoundError("Order")
    return order


@router.patch("/orders/{order_id}/status")
def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    if not data.status:
        raise ValidationError("status is required")
    target = parse_order_status(data.status)

    if target == OrderStatus.cancelled:
        cancel_order(session, order_id, actor=admin.id)
        return {"success": True, "status": target}

    order = _locked_order(session, order_id)

    try:
        if target == OrderStatus.confirmed:
            assert_confirmable(order.status, order.payment_status)
        else:
            assert_status_transition(order.status, target)

        if target == OrderStatus.shipped:
            courier_name = (data.courier_name or "").strip()
            tracking_number = (data.tracking_number or "").strip()
            if not courier_name or not tracking_number:
                raise ValidationError("Tracking number and courier name required")
            order.courier_name = courier_name
            order.tracking_number = tracking_number
            order.shipped_at = datetime.utcnow()
    except StoreError:
        session.rollback()
        raise

    previous = order.status
    order.status = target
    order.updated_at = datetime.utcnow()
    session.add(order)
    if previous != target:
        log_order_event(
            session,
            order_id=order.id,
            event_type=target.value,
            label=f"Order {target.value}",
            created_by=admin.id,
            meta={"from": previous.value},
        )
    session.commit()
    session.refresh(order)
    logger.info(f"Order {order_id} status {previous.value} -> {target.value} by admin {admin.id}")

    if target == OrderStatus.shipped and previous != target:
        try:
            send_shipping_email(session, order)
        except StoreError as e:
            logger.error(f"Shipping email failed for {order_id}: {e}")

    return {"success": True, "status": target}


@router.patch("/orders/{order_id}/payment-status")
def update_payment_status(
    order_id: str,
    data: PaymentStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    if not data.payment_status:
        raise ValidationError("payment_status is required")
    target = parse_payment_status(data.payment_status)

    if target == PaymentStatus.paid:
        order = session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order")
        if not order.razorpay_order_id:
            raise ValidationError("Order has no Razorpay order to confirm against")

        confirm_order_payment(
            session,
            order_id=order_id,
            razorpay_payment_id=ADMIN_OVERRIDE_PAYMENT_ID,
            razorpay_signature=compute_payment_signature(
                order.razorpay_order_id, ADMIN_OVERRIDE_PAYMENT_ID, settings.RAZORPAY_KEY_SECRET
            ),
            source=PaymentSource.admin,
        )
        return {"success": True, "payment_status": target}

    order = _locked_order(session, order_id)
    try:
        assert_payment_transition(order.payment_status, target)
    except StoreError:
        session.rollback()
        raise

    previous = order.payment_status
    order.payment_status = target
    order.updated_at = datetime.utcnow()
    session.add(order)
    if previous != target:
        log_order_event(
            session,
            order_id=order.id,
            event_type=f"payment_{target.value}",
            label=f"Payment {target.value}",
            created_by=admin.id,
            meta={"from": previous.value},
        )
    session.commit()
    logger.info(f"Order {order_id} payment_status {previous.value} -> {target.value} by admin {admin.id}")

    return {"success": True, "payment_status": target}
