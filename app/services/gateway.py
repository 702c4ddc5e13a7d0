import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import razorpay

from app.config import settings
from app.errors import UpstreamError
from app.utils.retry import gateway_retry

logger = logging.getLogger(__name__)

CAPTURED = "captured"


class RazorpayGateway:
    """Thin wrapper over the Razorpay SDK with timeouts and bounded retries."""

    def __init__(self, client=None, timeout: Optional[float] = None):
        self.client = client or razorpay.Client(
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
        )
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS

    @property
    def key_id(self) -> str:
        return settings.RAZORPAY_KEY_ID

    @gateway_retry()
    def _create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.order.create(data=data, timeout=self.timeout)

    @gateway_retry()
    def _fetch_payments(self, razorpay_order_id: str) -> Dict[str, Any]:
        return self.client.order.payments(razorpay_order_id, timeout=self.timeout)

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            return self._create_order({
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            })
        except Exception as e:
            logger.error(f"Razorpay order create failed for receipt {receipt}: {e}")
            raise UpstreamError(f"Razorpay order create failed: {e}") from e

    def fetch_order_payments(self, razorpay_order_id: str) -> List[Dict[str, Any]]:
        try:
            resp = self._fetch_payments(razorpay_order_id)
        except Exception as e:
            raise UpstreamError(f"Razorpay fetch payments failed for {razorpay_order_id}: {e}") from e

        items = resp.get("items") if isinstance(resp, dict) else None
        return items if isinstance(items, list) else []


def captured_payment(payments: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """First payment the gateway reports as captured, if any."""
    for p in payments:
        if isinstance(p, dict) and p.get("status") == CAPTURED:
            return p
    return None


@lru_cache
def get_gateway() -> RazorpayGateway:
    return RazorpayGateway()
