"""Tests for payment intents and client-side verification."""

from sqlmodel import select

from app.models.monitoring_event import MonitoringEvent
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.services.payment_service import compute_payment_signature
from conftest import KEY_SECRET, auth_headers, make_order, make_user, reload


def _verify_body(order, razorpay_order_id, payment_id="pay_123", signature=None):
    return {
        "orderId": order.id,
        "razorpay_order_id": razorpay_order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature
        or compute_payment_signature(razorpay_order_id, payment_id, KEY_SECRET),
    }


class TestCreatePayment:
    def test_binds_gateway_order(self, client, session, customer, gateway):
        order = make_order(session, customer, total="2500.00")

        response = client.post(
            "/api/payments/create", json={"orderId": order.id}, headers=auth_headers(customer)
        )

        assert response.status_code == 200
        data = response.json()
        assert data == {
            "key": "rzp_test_key",
            "razorpayOrderId": "order_fake_1",
            "amount": 250000,
            "currency": "INR",
            "orderId": order.id,
        }
        assert gateway.created[0]["receipt"] == order.id

        order = reload(session, Order, order.id)
        assert order.razorpay_order_id == "order_fake_1"
        assert order.payment_attempts == 1

    def test_second_call_reuses_gateway_order(self, client, session, customer, gateway):
        order = make_order(session, customer)
        headers = auth_headers(customer)

        first = client.post("/api/payments/create", json={"orderId": order.id}, headers=headers)
        second = client.post("/api/payments/create", json={"orderId": order.id}, headers=headers)

        assert first.json()["razorpayOrderId"] == second.json()["razorpayOrderId"]
        assert len(gateway.created) == 1

    def test_other_users_order_is_forbidden(self, client, session, customer, gateway):
        order = make_order(session, customer)
        intruder = make_user(session, email="intruder@example.com")

        response = client.post(
            "/api/payments/create", json={"orderId": order.id}, headers=auth_headers(intruder)
        )

        assert response.status_code == 403
        assert gateway.created == []

    def test_paid_order_is_refused(self, client, session, customer, gateway):
        order = make_order(session, customer, status="confirmed", payment_status="paid")

        response = client.post(
            "/api/payments/create", json={"orderId": order.id}, headers=auth_headers(customer)
        )

        assert response.status_code == 409
        assert gateway.created == []

    def test_cancelled_order_is_refused(self, client, session, customer, gateway):
        order = make_order(session, customer, status="cancelled")

        response = client.post(
            "/api/payments/create", json={"orderId": order.id}, headers=auth_headers(customer)
        )

        assert response.status_code == 409

    def test_unknown_order(self, client, customer):
        response = client.post(
            "/api/payments/create", json={"orderId": "nope"}, headers=auth_headers(customer)
        )
        assert response.status_code == 404

    def test_missing_order_id(self, client, customer):
        response = client.post("/api/payments/create", json={}, headers=auth_headers(customer))
        assert response.status_code == 400


class TestVerifyPayment:
    def test_valid_signature_marks_paid(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc")

        response = client.post(
            "/api/payments/verify", json=_verify_body(order, "order_abc"), headers=auth_headers(customer)
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        order = reload(session, Order, order.id)
        assert order.payment_status == "paid"
        assert order.status == "confirmed"
        assert order.razorpay_payment_id == "pay_123"
        assert order.payment_source == "client"
        assert order.paid_at is not None

    def test_verify_is_idempotent(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc")
        body = _verify_body(order, "order_abc")
        headers = auth_headers(customer)

        first = client.post("/api/payments/verify", json=body, headers=headers)
        paid_at = reload(session, Order, order.id).paid_at
        second = client.post("/api/payments/verify", json=body, headers=headers)

        assert first.status_code == second.status_code == 200
        assert reload(session, Order, order.id).paid_at == paid_at
        confirmations = session.exec(
            select(OrderEvent)
            .where(OrderEvent.order_id == order.id)
            .where(OrderEvent.event_type == "payment_confirmed")
        ).all()
        assert len(confirmations) == 1

    def test_bad_signature_leaves_order_untouched(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc")
        body = _verify_body(order, "order_abc", signature="0" * 64)

        response = client.post("/api/payments/verify", json=body, headers=auth_headers(customer))

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid payment signature"
        order = reload(session, Order, order.id)
        assert order.payment_status == "unpaid"
        assert order.status == "pending"
        assert order.razorpay_payment_id is None

    def test_non_ascii_signature_is_a_mismatch(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc")
        body = _verify_body(order, "order_abc", signature="é" * 64)

        response = client.post("/api/payments/verify", json=body, headers=auth_headers(customer))

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid payment signature"
        assert reload(session, Order, order.id).payment_status == "unpaid"
        assert session.exec(select(MonitoringEvent)).all() == []

    def test_confirmation_email_crash_keeps_order_paid(self, client, session, customer, monkeypatch):
        from app.services import payment_service

        def broken(session, order):
            raise RuntimeError("template exploded")

        monkeypatch.setattr(payment_service, "send_order_confirmation", broken)
        order = make_order(session, customer, razorpay_order_id="order_abc")

        response = client.post(
            "/api/payments/verify", json=_verify_body(order, "order_abc"), headers=auth_headers(customer)
        )

        assert response.status_code == 200
        assert reload(session, Order, order.id).payment_status == "paid"
        alert = session.exec(select(MonitoringEvent)).one()
        assert alert.message == "Order confirmation email failed"

    def test_signature_for_other_gateway_order(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc")

        response = client.post(
            "/api/payments/verify", json=_verify_body(order, "order_xyz"), headers=auth_headers(customer)
        )

        assert response.status_code == 400
        assert reload(session, Order, order.id).payment_status == "unpaid"

    def test_missing_fields(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc")
        response = client.post(
            "/api/payments/verify", json={"orderId": order.id}, headers=auth_headers(customer)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    def test_cancelled_order_cannot_be_confirmed(self, client, session, customer):
        order = make_order(session, customer, razorpay_order_id="order_abc", status="cancelled")

        response = client.post(
            "/api/payments/verify", json=_verify_body(order, "order_abc"), headers=auth_headers(customer)
        )

        assert response.status_code == 409
        assert reload(session, Order, order.id).payment_status == "unpaid"
        alerts = session.exec(select(MonitoringEvent)).all()
        assert len(alerts) == 1
        assert alerts[0].severity == "critical"

    def test_unconfigured_secret(self, client, session, customer, monkeypatch):
        from app.config import settings

        order = make_order(session, customer, razorpay_order_id="order_abc")
        body = _verify_body(order, "order_abc")
        monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", "")

        response = client.post("/api/payments/verify", json=body, headers=auth_headers(customer))

        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error"
