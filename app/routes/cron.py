import hmac
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.schemas.payment_schemas import ReconcileResponse
from app.services.alert_service import notify_critical_alert
from app.services.gateway import RazorpayGateway, get_gateway
from app.services.reconciliation_service import reconcile_payments

logger = logging.getLogger(__name__)

router = APIRouter()


def _authorized(request: Request) -> bool:
    secret = settings.CRON_SECRET
    if not secret:
        return False
    auth = request.headers.get("authorization", "")
    return hmac.compare_digest(auth.encode(), f"Bearer {secret}".encode())


@router.get("/reconcile-payments", response_model=ReconcileResponse)
def reconcile_payments_job(
    request: Request,
    session: Session = Depends(get_session),
    gateway: RazorpayGateway = Depends(get_gateway),
):
    """Scheduled, server-to-server. Not reachable with a user session."""
    if not _authorized(request):
        return PlainTextResponse("Unauthorized", status_code=401)

    try:
        result = reconcile_payments(session, gateway)
    except Exception as e:
        session.rollback()
        logger.exception("reconcile-payments fatal error")
        notify_critical_alert("reconcile-payments fatal error", {"error": str(e)}, session=session)
        return JSONResponse({"ok": False, "error": "Internal server error"}, status_code=500)

    return {
        "ok": True,
        "checked": result.checked,
        "confirmed": result.confirmed,
        "errors": result.errors,
    }
