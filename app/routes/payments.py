import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.errors import ConflictError, StoreError, ValidationError
from app.models.user import User
from app.schemas.payment_schemas import (
    PaymentCreateRequest,
    PaymentSession,
    RazorpayPaymentVerifySchema,
)
from app.services.alert_service import notify_critical_alert
from app.services.gateway import RazorpayGateway, get_gateway
from app.services.payment_service import (
    create_payment_intent,
    verify_client_payment,
    verify_webhook_signature,
)
from app.services.webhook_service import ingest_webhook, process_webhook_event
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create", response_model=PaymentSession)
def create_payment(
    data: PaymentCreateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    """Create (or reuse) the Razorpay order for an unpaid order"""
    if not data.orderId:
        raise ValidationError("orderId is required")

    return create_payment_intent(session, gateway, data.orderId, current_user.id)


@router.post("/verify")
def verify_payment(
    payload: RazorpayPaymentVerifySchema,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Client-reported completion. The signature check is the only thing
    standing between this request and a paid order.
    """
    if not (
        payload.orderId
        and payload.razorpay_order_id
        and payload.razorpay_payment_id
        and payload.razorpay_signature
    ):
        raise ValidationError("Missing required fields")

    try:
        outcome = verify_client_payment(
            session,
            order_id=payload.orderId,
            user_id=current_user.id,
            razorpay_order_id=payload.razorpay_order_id,
            razorpay_payment_id=payload.razorpay_payment_id,
            razorpay_signature=payload.razorpay_signature,
        )
    except ConflictError as e:
        notify_critical_alert(
            "Verified payment for an order that cannot be confirmed",
            {"orderId": payload.orderId, "razorpayPaymentId": payload.razorpay_payment_id, "error": str(e)},
            session=session,
        )
        raise
    except StoreError:
        raise
    except Exception as e:
        logger.exception(f"Order update failed for {payload.orderId}")
        notify_critical_alert(
            "confirm_order_payment failed (verify)",
            {"orderId": payload.orderId, "razorpayPaymentId": payload.razorpay_payment_id, "error": str(e)},
            session=session,
        )
        raise StoreError("Failed to update order")

    logger.info(f"Payment verify for {payload.orderId}: {outcome.value}")
    return {"success": True}


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    session: Session = Depends(get_session),
):
    """
    Razorpay sends the raw body + `x-razorpay-signature` header.
    Verified with HMAC-SHA256 using RAZORPAY_WEBHOOK_SECRET, stored, then processed.
    """
    raw_body = await request.body()
    signature = request.headers.get("x-razorpay-signature", "")

    secret = settings.RAZORPAY_WEBHOOK_SECRET
    if not secret:
        logger.error("RAZORPAY_WEBHOOK_SECRET is not configured")
        return PlainTextResponse("Server configuration error", status_code=500)

    if not verify_webhook_signature(raw_body, signature, secret):
        logger.warning("Webhook signature mismatch")
        return PlainTextResponse("Invalid signature", status_code=400)

    event, duplicate = await run_in_threadpool(
        ingest_webhook,
        session,
        raw_body,
        event_id=request.headers.get("x-razorpay-event-id"),
    )
    if duplicate:
        logger.info(f"Duplicate webhook {event.event_id} ignored")
        return PlainTextResponse("OK")

    await run_in_threadpool(process_webhook_event, session, event.id)
    return PlainTextResponse("OK")
