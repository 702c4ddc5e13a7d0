"""Tests for amount conversion and HMAC signatures."""

import hashlib
import hmac
from decimal import Decimal

from app.services.payment_service import (
    compute_payment_signature,
    to_minor_units,
    verify_payment_signature,
    verify_webhook_signature,
)


class TestMinorUnits:
    def test_whole_rupees(self):
        assert to_minor_units(Decimal("2500.00")) == 250000

    def test_paise(self):
        assert to_minor_units(Decimal("1999.99")) == 199999

    def test_rounds_half_up(self):
        assert to_minor_units("10.005") == 1001

    def test_float_input_is_exact(self):
        assert to_minor_units(19.99) == 1999


class TestPaymentSignature:
    def test_matches_hmac_over_order_and_payment(self):
        expected = hmac.new(b"s3cret", b"order_abc|pay_123", hashlib.sha256).hexdigest()
        assert compute_payment_signature("order_abc", "pay_123", "s3cret") == expected

    def test_verify_accepts_valid(self):
        sig = compute_payment_signature("order_abc", "pay_123", "s3cret")
        assert verify_payment_signature("order_abc", "pay_123", sig, "s3cret")

    def test_verify_rejects_tampered_payment_id(self):
        sig = compute_payment_signature("order_abc", "pay_123", "s3cret")
        assert not verify_payment_signature("order_abc", "pay_124", sig, "s3cret")

    def test_verify_rejects_wrong_secret(self):
        sig = compute_payment_signature("order_abc", "pay_123", "other")
        assert not verify_payment_signature("order_abc", "pay_123", sig, "s3cret")

    def test_verify_rejects_empty(self):
        assert not verify_payment_signature("order_abc", "pay_123", "", "s3cret")
        assert not verify_payment_signature("order_abc", "pay_123", None, "s3cret")


class TestWebhookSignature:
    def test_raw_body(self):
        body = b'{"event":"payment.captured"}'
        sig = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()
        assert verify_webhook_signature(body, sig, "whsec")
        assert not verify_webhook_signature(body + b" ", sig, "whsec")

    def test_non_ascii_signature_is_rejected(self):
        assert not verify_webhook_signature(b"{}", "é" * 64, "whsec")


class TestNonAsciiPaymentSignature:
    def test_rejected_without_error(self):
        assert not verify_payment_signature("order_abc", "pay_123", "é" * 64, "s3cret")
