"""Run the payment sweep from a scheduler: ``python -m app.jobs.reconcile_payments``."""

import logging

from sqlmodel import Session

from app.config import settings
from app.database import engine
from app.services.gateway import get_gateway
from app.services.reconciliation_service import reconcile_payments
from app.services.webhook_service import retry_pending_webhooks

logger = logging.getLogger(__name__)


def run_sweep():
    with Session(engine) as session:
        result = reconcile_payments(session, get_gateway())
        retried = retry_pending_webhooks(session)

    logger.info(f"Sweep finished: {result} webhooks_retried={retried}")
    return result, retried


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    run_sweep()
