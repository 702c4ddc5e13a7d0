"""Tests for admin order, inventory and reliability endpoints."""

from sqlmodel import select

from app.models.inventory_log import InventoryLog
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.models.product import Product
from app.models.webhook_event import WebhookEvent
from app.services.payment_service import verify_payment_signature
from conftest import KEY_SECRET, auth_headers, make_order, make_product, reload


class TestAdminAccess:
    def test_customer_is_refused(self, client, session, customer):
        order = make_order(session, customer)
        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "shipped"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403


class TestOrderStatus:
    def test_ship_confirmed_order(self, client, session, customer, admin):
        order = make_order(session, customer, status="confirmed", payment_status="paid")

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "shipped", "courier_name": "Delhivery", "tracking_number": "DL123"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        order = reload(session, Order, order.id)
        assert order.status == "shipped"
        assert order.tracking_number == "DL123"
        assert order.shipped_at is not None
        events = session.exec(select(OrderEvent).where(OrderEvent.order_id == order.id)).all()
        assert [e.event_type for e in events] == ["shipped"]

    def test_ship_requires_tracking(self, client, session, customer, admin):
        order = make_order(session, customer, status="confirmed", payment_status="paid")

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "shipped"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert reload(session, Order, order.id).status == "confirmed"

    def test_cannot_skip_payment(self, client, session, customer, admin):
        order = make_order(session, customer)

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "confirmed"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert response.json()["code"] == "invalid_transition"

    def test_delivered_cannot_go_back(self, client, session, customer, admin):
        order = make_order(session, customer, status="delivered", payment_status="paid")

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "pending"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert reload(session, Order, order.id).status == "delivered"

    def test_unknown_status(self, client, session, customer, admin):
        order = make_order(session, customer)
        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "teleported"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400

    def test_cancel_goes_through_cancellation(self, client, session, customer, admin):
        order = make_order(session, customer, status="confirmed", payment_status="paid")

        response = client.patch(
            f"/api/admin/orders/{order.id}/status",
            json={"status": "cancelled"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        order = reload(session, Order, order.id)
        assert order.status == "cancelled"
        assert order.cancelled_at is not None


class TestPaymentStatus:
    def test_mark_paid_override(self, client, session, customer, admin):
        order = make_order(session, customer, razorpay_order_id="order_adm")

        response = client.patch(
            f"/api/admin/orders/{order.id}/payment-status",
            json={"payment_status": "paid"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        order = reload(session, Order, order.id)
        assert order.payment_status == "paid"
        assert order.status == "confirmed"
        assert order.payment_source == "admin"
        assert verify_payment_signature(
            "order_adm", order.razorpay_payment_id, order.razorpay_signature, KEY_SECRET
        )

    def test_refund_paid_order(self, client, session, customer, admin):
        order = make_order(session, customer, status="confirmed", payment_status="paid")

        response = client.patch(
            f"/api/admin/orders/{order.id}/payment-status",
            json={"payment_status": "refunded"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert reload(session, Order, order.id).payment_status == "refunded"

    def test_unpaid_cannot_be_refunded(self, client, session, customer, admin):
        order = make_order(session, customer)

        response = client.patch(
            f"/api/admin/orders/{order.id}/payment-status",
            json={"payment_status": "refunded"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert reload(session, Order, order.id).payment_status == "unpaid"


class TestInventory:
    def test_adjust_stock(self, client, session, admin):
        product = make_product(session, stock=2)

        response = client.post(
            f"/api/admin/products/{product.id}/adjust-stock",
            json={"change": 3, "reason": "New shipment"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["stock"] == 5
        assert reload(session, Product, product.id).stock == 5
        log = session.exec(select(InventoryLog)).one()
        assert (log.change, log.reason, log.note) == (3, "admin_adjustment", "New shipment")

    def test_negative_result_is_refused(self, client, session, admin):
        product = make_product(session, stock=2)

        response = client.post(
            f"/api/admin/products/{product.id}/adjust-stock",
            json={"change": -3, "reason": "Damaged"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert reload(session, Product, product.id).stock == 2
        assert session.exec(select(InventoryLog)).all() == []

    def test_reason_required(self, client, session, admin):
        product = make_product(session)
        response = client.post(
            f"/api/admin/products/{product.id}/adjust-stock",
            json={"change": 1, "reason": " "},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400

    def test_zero_change(self, client, session, admin):
        product = make_product(session)
        response = client.post(
            f"/api/admin/products/{product.id}/adjust-stock",
            json={"change": 0, "reason": "noop"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400

    def test_inventory_logs(self, client, session, admin):
        product = make_product(session, stock=2)
        headers = auth_headers(admin)
        client.post(
            f"/api/admin/products/{product.id}/adjust-stock",
            json={"change": 1, "reason": "Recount"},
            headers=headers,
        )

        response = client.get(f"/api/admin/products/{product.id}/inventory-logs", headers=headers)

        assert response.status_code == 200
        logs = response.json()["logs"]
        assert len(logs) == 1
        assert logs[0]["change"] == 1


class TestReliability:
    def test_overview(self, client, session, admin):
        session.add(WebhookEvent(event_type="payment.captured", status="pending", retry_count=2))
        session.add(WebhookEvent(event_type="payment.captured", status="failed", retry_count=6))
        session.commit()

        response = client.get("/api/admin/reliability", headers=auth_headers(admin))

        assert response.status_code == 200
        data = response.json()
        assert len(data["pending_webhooks"]) == 1
        assert len(data["failed_webhooks"]) == 1
        assert data["metrics"]["pending"] == 1
        assert data["metrics"]["failed"] == 1
        assert data["metrics"]["avg_retry_count"] == 4.0
        assert data["last_reconcile_run"] is None
