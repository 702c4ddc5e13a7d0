import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from app.config import settings
from app.database import get_session
from app.models.system_state import SystemState
from app.services.reconciliation_service import LAST_RUN_KEY

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"
    last_reconcile = None

    try:
        session.exec(text("SELECT 1"))
        state = session.get(SystemState, LAST_RUN_KEY)
        if state and state.value:
            last_reconcile = state.value.get("timestamp")
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        db_status = "failed"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database": db_status,
        "payments_configured": bool(settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET),
        "last_reconcile_run": last_reconcile,
        "timestamp": datetime.utcnow().isoformat(),
    }
