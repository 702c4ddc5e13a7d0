import json
import logging
from typing import List, Optional

from sqlmodel import Session, select

from app.models.order_event import OrderEvent

logger = logging.getLogger(__name__)


def _json_safe(meta: Optional[dict]) -> Optional[dict]:
    # Decimals and datetimes end up as strings in the JSON column
    if meta is None:
        return None
    return json.loads(json.dumps(meta, default=str))


def log_order_event(
    session: Session,
    order_id: str,
    event_type: str,
    label: str,
    created_by: str = "system",
    meta: Optional[dict] = None,
) -> OrderEvent:
    """Add a timeline entry to the caller's transaction; the caller commits."""
    event = OrderEvent(
        order_id=order_id,
        event_type=event_type,
        label=label,
        created_by=created_by,
        meta=_json_safe(meta),
    )
    session.add(event)
    logger.debug(f"Order {order_id} event {event_type} by {created_by}")
    return event


def list_order_events(session: Session, order_id: str) -> List[OrderEvent]:
    return session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at)
    ).all()


def order_timeline(session: Session, order_id: str) -> List[dict]:
    return [
        {
            "event_type": e.event_type,
            "label": e.label,
            "created_by": e.created_by,
            "created_at": e.created_at,
        }
        for e in list_order_events(session, order_id)
    ]
