import logging
import requests
import re
from typing import List, Optional, Union

from sqlmodel import Session, select

from app.config import settings
from app.errors import UpstreamError
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.user import User
from app.utils.template import render_template

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"

def is_valid_email(email):
    if isinstance(email, list):
        return all(is_valid_email(e) for e in email)

    if not email:
        return False

    return re.match(r"[^@]+@[^@]+\.[^@]+", email) is not None


def send_email(
    to: Union[str, List[str]],
    subject: str,
    html: str,
) -> bool:
    """Send email via Brevo."""

    # Normalize emails into a list
    if isinstance(to, list):
        valid_emails = [e for e in to if is_valid_email(e)]
    else:
        valid_emails = [to] if is_valid_email(to) else []

    if not valid_emails:
        logger.warning(f"No valid emails found: {to}")
        return False

    payload = {
        "sender": {
            "email": settings.MAIL_FROM,
            "name": settings.STORE_NAME,
        },
        "to": [{"email": e} for e in valid_emails],
        "subject": subject,
        "htmlContent": html,
    }

    headers = {
        "api-key": settings.BREVO_API_KEY,
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(
            BREVO_API_URL,
            json=payload,
            headers=headers,
            timeout=10,
        )

        if response.status_code >= 400:
            logger.error(
                f"Brevo email failed ({response.status_code}): {response.text}"
            )
            return False

        logger.info(f"Brevo email sent to {valid_emails}")
        return True

    except requests.RequestException:
        logger.exception("Brevo email exception")
        return False


def _deliver(to, subject: str, html: str) -> bool:
    """Send a transactional mail; raise if the provider rejected it.

    Returns False when mail is not configured or there is no recipient.
    """
    if not settings.BREVO_API_KEY:
        logger.warning(f"BREVO_API_KEY not set, skipping email '{subject}'")
        return False
    if not to:
        logger.warning(f"No recipient for email '{subject}'")
        return False

    if not send_email(to=to, subject=subject, html=html):
        raise UpstreamError(f"Email '{subject}' to {to} failed")
    return True


def _recipient(session: Session, order: Order) -> Optional[str]:
    if order.email:
        return order.email.strip()
    user = session.get(User, order.user_id)
    return user.email.strip() if user and user.email else None


def send_order_confirmation(session: Session, order: Order) -> bool:
    """Payment received mail to the customer, copied to the shop admins."""
    items = session.exec(
        select(OrderItem).where(OrderItem.order_id == order.id)
    ).all()
    html = render_template(
        "user_emails/order_confirmed.html",
        order=order,
        items=items,
        store_name=settings.STORE_NAME,
    )
    sent = _deliver(_recipient(session, order), f"Order Confirmed #{order.id}", html)

    if settings.ADMIN_EMAILS:
        send_email(
            to=settings.ADMIN_EMAILS,
            subject=f"New Order Received #{order.id}",
            html=html,
        )
    return sent


def send_cancellation_email(session: Session, order: Order) -> bool:
    html = render_template(
        "user_emails/order_cancelled.html",
        order=order,
        store_name=settings.STORE_NAME,
    )
    return _deliver(
        _recipient(session, order),
        f"Your Order Has Been Cancelled - {settings.STORE_NAME}",
        html,
    )


def send_shipping_email(session: Session, order: Order) -> bool:
    html = render_template(
        "user_emails/order_shipped.html",
        order=order,
        store_name=settings.STORE_NAME,
    )
    return _deliver(
        _recipient(session, order),
        f"Your order #{order.id} has shipped",
        html,
    )
