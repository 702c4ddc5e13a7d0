from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session, func, select

from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.monitoring_event import MonitoringEvent
from app.models.system_state import SystemState
from app.models.user import User
from app.models.webhook_event import WebhookEvent, WebhookStatus
from app.services.reconciliation_service import LAST_RUN_KEY

router = APIRouter()


def _webhook_row(event: WebhookEvent):
    return {
        "id": event.id,
        "event_type": event.event_type,
        "razorpay_order_id": event.razorpay_order_id,
        "status": event.status,
        "retry_count": event.retry_count,
        "last_error": event.last_error,
        "created_at": event.created_at,
        "processed_at": event.processed_at,
    }


@router.get("/reliability")
def reliability_overview(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    pending = session.exec(
        select(WebhookEvent)
        .where(WebhookEvent.status == WebhookStatus.pending)
        .order_by(WebhookEvent.created_at)
        .limit(50)
    ).all()

    failed = session.exec(
        select(WebhookEvent)
        .where(WebhookEvent.status == WebhookStatus.failed)
        .order_by(WebhookEvent.created_at.desc())
        .limit(50)
    ).all()

    monitoring = session.exec(
        select(MonitoringEvent)
        .order_by(MonitoringEvent.created_at.desc())
        .limit(50)
    ).all()

    counts = dict(
        session.exec(
            select(WebhookEvent.status, func.count(WebhookEvent.id))
            .group_by(WebhookEvent.status)
        ).all()
    )

    avg_retry = session.exec(select(func.avg(WebhookEvent.retry_count))).one()

    oldest_pending = session.exec(
        select(func.min(WebhookEvent.created_at))
        .where(WebhookEvent.status == WebhookStatus.pending)
    ).one()

    distribution = session.exec(
        select(WebhookEvent.retry_count, func.count(WebhookEvent.id))
        .group_by(WebhookEvent.retry_count)
        .order_by(WebhookEvent.retry_count)
    ).all()

    last_run = session.get(SystemState, LAST_RUN_KEY)

    return {
        "pending_webhooks": [_webhook_row(e) for e in pending],
        "failed_webhooks": [_webhook_row(e) for e in failed],
        "monitoring_events": [
            {
                "id": m.id,
                "type": m.type,
                "severity": m.severity,
                "message": m.message,
                "meta": m.meta,
                "created_at": m.created_at,
            }
            for m in monitoring
        ],
        "metrics": {
            "pending": counts.get(WebhookStatus.pending, 0),
            "processed": counts.get(WebhookStatus.processed, 0),
            "failed": counts.get(WebhookStatus.failed, 0),
            "avg_retry_count": float(avg_retry or 0),
            "oldest_pending_age_seconds": (
                int((datetime.utcnow() - oldest_pending).total_seconds())
                if oldest_pending else None
            ),
            "retry_distribution": [
                {"retry_count": retries, "events": n} for retries, n in distribution
            ],
        },
        "last_reconcile_run": last_run.value if last_run else None,
    }
