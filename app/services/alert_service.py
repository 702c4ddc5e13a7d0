import json
import logging
from typing import Any, Optional

import requests
from sqlmodel import Session

from app.config import settings
from app.models.monitoring_event import MonitoringEvent, Severity
from app.services.email_service import send_email
from app.utils.template import render_template

logger = logging.getLogger(__name__)


def format_alert_message(title: str, details: Any) -> str:
    try:
        details_json = json.dumps(details, indent=2, default=str)
    except (TypeError, ValueError):
        details_json = str(details)

    return "\n".join([
        f"{settings.STORE_NAME} Critical Alert",
        "",
        title,
        "",
        details_json,
    ])


def record_monitoring_event(
    session: Session,
    type: str,
    severity: Severity,
    message: str,
    meta: Optional[dict] = None,
) -> MonitoringEvent:
    event = MonitoringEvent(type=type, severity=severity, message=message, meta=meta)
    session.add(event)
    return event


def notify_critical_alert(title: str, details: Any = None, session: Optional[Session] = None):
    """
    Fan a critical alert out to Slack, the alert mailbox and the
    monitoring table. Never raises: alerting must not break the caller.
    """
    message = format_alert_message(title, details)
    logger.error(message)

    if settings.SLACK_WEBHOOK_URL:
        try:
            requests.post(
                settings.SLACK_WEBHOOK_URL,
                json={"text": message},
                timeout=5,
            )
        except requests.RequestException:
            logger.exception("notify_critical_alert: slack notify failed")

    if settings.ALERT_EMAIL and settings.BREVO_API_KEY:
        html = render_template("admin_emails/critical_alert.html", message=message)
        if not send_email(
            to=settings.ALERT_EMAIL,
            subject=f"Critical Alert: {title}",
            html=html,
        ):
            logger.error("notify_critical_alert: alert email failed")

    if session is not None:
        try:
            record_monitoring_event(
                session,
                type="critical_alert",
                severity=Severity.critical,
                message=title,
                meta=json.loads(json.dumps(details, default=str)) if details is not None else None,
            )
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("notify_critical_alert: monitoring event write failed")
