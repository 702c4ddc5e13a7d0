import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.database import get_session
from app.errors import NotFoundError, StoreError
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.user import User
from app.services.alert_service import notify_critical_alert
from app.services.email_service import send_cancellation_email
from app.services.order_cancellation import cancel_order, get_order
from app.services.order_event_service import order_timeline
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _order_summary(order: Order):
    return {
        "id": order.id,
        "status": order.status,
        "payment_status": order.payment_status,
        "total_amount": order.total_amount,
        "razorpay_order_id": order.razorpay_order_id,
        "created_at": order.created_at,
        "shipped_at": order.shipped_at,
        "courier_name": order.courier_name,
        "tracking_number": order.tracking_number,
    }


@router.get("")
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    orders = session.exec(
        select(Order)
        .where(Order.user_id == current_user.id)
        .order_by(Order.created_at.desc())
    ).all()

    return {"results": [_order_summary(o) for o in orders]}


@router.get("/{order_id}")
def order_detail(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = get_order(session, order_id, current_user.id)
    if not order:
        raise NotFoundError("Order")

    items = session.exec(
        select(OrderItem).where(OrderItem.order_id == order.id)
    ).all()

    return {
        **_order_summary(order),
        "shipping": {
            "full_name": order.full_name,
            "phone": order.phone,
            "address_line1": order.address_line1,
            "address_line2": order.address_line2,
            "city": order.city,
            "state": order.state,
            "postal_code": order.postal_code,
            "country": order.country,
        },
        "items": [
            {
                "product_id": i.product_id,
                "variant_id": i.variant_id,
                "product_name": i.product_name,
                "unit_price": i.unit_price,
                "quantity": i.quantity,
                "total": i.unit_price * i.quantity,
            }
            for i in items
        ],
        "timeline": order_timeline(session, order.id),
    }


@router.post("/{order_id}/cancel")
def cancel_my_order(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order_id = order_id.strip()

    try:
        order = cancel_order(session, order_id, user_id=current_user.id)
    except StoreError as e:
        if e.status_code >= 500:
            notify_critical_alert("Order cancellation failed", {"orderId": order_id, "error": str(e)}, session=session)
        raise
    except Exception as e:
        logger.exception(f"Cancel order {order_id} failed")
        notify_critical_alert("Order cancellation failed", {"orderId": order_id, "error": str(e)}, session=session)
        raise StoreError()

    # the cancellation is durable; the email is best effort
    try:
        send_cancellation_email(session, order)
    except Exception as e:
        notify_critical_alert(
            "Order cancellation email failed",
            {"orderId": order_id, "error": str(e)},
            session=session,
        )

    return {"ok": True}
