# Order cancellation
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.constants.order_status import CANCELLABLE_STATUSES, OrderStatus
from app.errors import (
    AlreadyCancelledError,
    AuthorizationError,
    NotFoundError,
    OrderNotCancellableError,
)
from app.models.order import Order
from app.services.inventory_service import restore_order_stock
from app.services.order_event_service import log_order_event

logger = logging.getLogger(__name__)


def get_order(session: Session, order_id: str, user_id: Optional[str] = None) -> Optional[Order]:
    """Get order by ID, optionally checking user ownership"""
    statement = select(Order).where(Order.id == order_id)
    if user_id:
        statement = statement.where(Order.user_id == user_id)

    return session.exec(statement).first()


def _explain_refusal(session: Session, order_id: str, user_id: Optional[str]):
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order")
    if user_id is not None and order.user_id != user_id:
        raise AuthorizationError()
    if order.status == OrderStatus.cancelled:
        raise AlreadyCancelledError()
    raise OrderNotCancellableError(order.status.value)


def cancel_order(
    session: Session,
    order_id: str,
    user_id: Optional[str] = None,
    actor: Optional[str] = None,
) -> Order:
    """
    Cancel an order that has not shipped and put its stock back.

    The status flip is a single conditional UPDATE, so it cannot interleave
    with a concurrent paid-transition on the same row. ``user_id`` scopes the
    update to the owner; admin callers pass ``None``.
    """
    now = datetime.utcnow()

    stmt = (
        update(Order)
        .where(Order.id == order_id)
        .where(Order.status.in_(CANCELLABLE_STATUSES))
        .values(status=OrderStatus.cancelled, cancelled_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)

    try:
        result = session.execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            _explain_refusal(session, order_id, user_id)

        restored = restore_order_stock(session, order_id, actor_id=actor or user_id)
        log_order_event(
            session,
            order_id=order_id,
            event_type="cancelled",
            label="Order cancelled",
            created_by=actor or user_id or "system",
            meta={"lines_restocked": restored},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    order = session.get(Order, order_id)
    logger.info(f"Order {order_id} cancelled by {actor or user_id}, {restored} lines restocked")
    return order
