from typing import Union

from app.constants.order_status import (
    ALLOWED_PAYMENT_TRANSITIONS,
    ALLOWED_TRANSITIONS,
    CANCELLABLE_STATUSES,
    OrderStatus,
    PaymentStatus,
)
from app.errors import InvalidTransitionError, ValidationError


def parse_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status. Allowed: {allowed}")


def parse_payment_status(value: Union[str, PaymentStatus]) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in PaymentStatus)
        raise ValidationError(f"Invalid payment_status. Allowed: {allowed}")


def can_transition_status(current, target) -> bool:
    current, target = OrderStatus(current), OrderStatus(target)
    # same-state writes are no-ops
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS[current]


def can_transition_payment(current, target) -> bool:
    current, target = PaymentStatus(current), PaymentStatus(target)
    if current == target:
        return True
    return target in ALLOWED_PAYMENT_TRANSITIONS[current]


def assert_status_transition(current, target) -> None:
    if not can_transition_status(current, target):
        raise InvalidTransitionError("status", OrderStatus(current).value, OrderStatus(target).value)


def assert_payment_transition(current, target) -> None:
    if not can_transition_payment(current, target):
        raise InvalidTransitionError(
            "payment_status", PaymentStatus(current).value, PaymentStatus(target).value
        )


def assert_confirmable(status, payment_status) -> None:
    """``confirmed`` is only reachable together with or after ``paid``."""
    assert_status_transition(status, OrderStatus.confirmed)
    if PaymentStatus(payment_status) != PaymentStatus.paid:
        raise InvalidTransitionError("status", OrderStatus(status).value, OrderStatus.confirmed.value)


def is_cancellable(status) -> bool:
    return OrderStatus(status) in CANCELLABLE_STATUSES


def statuses_leading_to(target) -> list:
    """Every status from which ``target`` is a legal next step."""
    target = OrderStatus(target)
    return [s for s, nxt in ALLOWED_TRANSITIONS.items() if target in nxt]


def payment_statuses_leading_to(target) -> list:
    target = PaymentStatus(target)
    return [s for s, nxt in ALLOWED_PAYMENT_TRANSITIONS.items() if target in nxt]
