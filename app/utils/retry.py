# app/utils/retry.py
import logging

from razorpay.errors import GatewayError, ServerError
import redis
import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import settings

logger = logging.getLogger(__name__)

# transient upstream failures; BadRequestError is a permanent rejection
GATEWAY_TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    ServerError,
    GatewayError,
)


def gateway_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(settings.GATEWAY_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(GATEWAY_TRANSIENT_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )
