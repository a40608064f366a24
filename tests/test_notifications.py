"""Tests for order notification emails."""

from unittest.mock import MagicMock

import pytest
import requests

from framel.config import settings
from framel.notifications import NotificationEvent, dispatch_order_event
from framel.notifications.channels import Channel
from framel.services import email_service


@pytest.fixture
def brevo(monkeypatch):
    monkeypatch.setattr(settings, "BREVO_API_KEY", "brevo-test-key")
    monkeypatch.setattr(settings, "ADMIN_EMAILS", ["orders@framel.test"])

    post = MagicMock(return_value=MagicMock(status_code=201, text="{}"))
    monkeypatch.setattr(email_service.requests, "post", post)
    return post


@pytest.fixture
def order(make_product, guest_owner, place_order, monkeypatch):
    # placing the order notifies too; keep it out of the assertions
    monkeypatch.setattr(settings, "BREVO_API_KEY", "")
    roses = make_product(name="Sunset Roses", price="1200")
    return place_order(guest_owner, (roses, 2), contact_email="achieng@example.com")


class TestDispatchOrderEvent:
    def test_order_placed_goes_to_customer_and_admin(self, order, brevo):
        sent = dispatch_order_event(event=NotificationEvent.ORDER_PLACED, order=order)

        assert sent == [Channel.EMAIL_USER, Channel.EMAIL_ADMIN]
        customer, admin = [c.kwargs["json"] for c in brevo.call_args_list]
        assert customer["to"] == [{"email": "achieng@example.com"}]
        assert customer["subject"] == f"Order {order.order_code} received"
        assert "Sunset Roses" in customer["htmlContent"]
        assert admin["to"] == [{"email": "orders@framel.test"}]
        assert brevo.call_args.kwargs["headers"]["api-key"] == "brevo-test-key"

    def test_payment_failed_includes_reason(self, order, brevo):
        dispatch_order_event(
            event=NotificationEvent.PAYMENT_FAILED,
            order=order,
            extra={"reason": "Request cancelled by user"},
        )

        assert brevo.call_count == 1
        assert "Request cancelled by user" in brevo.call_args.kwargs["json"]["htmlContent"]

    def test_no_email_without_contact_address(self, order, brevo):
        order.contact_email = None
        sent = dispatch_order_event(event=NotificationEvent.ORDER_DISPATCHED, order=order)
        assert sent == []
        assert brevo.call_count == 0

    def test_provider_errors_are_not_raised(self, order, brevo):
        brevo.side_effect = requests.ConnectionError("down")
        assert dispatch_order_event(event=NotificationEvent.ORDER_CANCELLED, order=order) == []

    def test_missing_api_key_skips_sending(self, order, brevo, monkeypatch):
        monkeypatch.setattr(settings, "BREVO_API_KEY", "")
        assert email_service.send_email("achieng@example.com", "Hi", "<p>Hi</p>") is False
        assert brevo.call_count == 0
