"""Tests for the unpaid order sweep."""

from datetime import datetime, timedelta

import pytest

from framel.constants.order_status import OrderStatus, PaymentStatus
from framel.errors import InvalidState
from framel.models.order import Order
from framel.models.product import Product
from framel.schemas.payment_schemas import PaymentOutcome
from framel.services import order_service
from framel.services.order_expiry_service import expire_unpaid_orders


def _age(session, order, hours):
    then = datetime.utcnow() - timedelta(hours=hours)
    order.created_at = then
    if order.payment_initiated_at is not None:
        order.payment_initiated_at = then
    session.add(order)
    session.commit()


class TestExpireUnpaidOrders:
    def test_disabled_by_default(self, session, make_product, guest_owner, place_order):
        roses = make_product(stock=5)
        order = place_order(guest_owner, (roses, 1))
        _age(session, order, 100)

        assert expire_unpaid_orders(session) == []
        assert session.get(Order, order.id).order_status == OrderStatus.processing

    def test_old_unpaid_orders_are_cancelled(self, session, make_product, guest_owner, place_order):
        roses = make_product(stock=5)
        old = place_order(guest_owner, (roses, 2))
        fresh = place_order(guest_owner, (roses, 1))
        _age(session, old, 5)

        expired = expire_unpaid_orders(session, hours=2)

        assert expired == [old.order_code]
        session.expire_all()
        assert session.get(Order, old.id).order_status == OrderStatus.cancelled
        assert session.get(Order, fresh.id).order_status == OrderStatus.processing
        assert session.get(Product, roses.id).stock == 4

    def test_paid_and_confirmed_orders_are_kept(
        self, session, make_product, guest_owner, place_order
    ):
        roses = make_product(stock=5)
        paid = place_order(guest_owner, (roses, 1))
        order_service.record_payment_attempt(session, paid, "MR-1", "ws_CO_1", "254712345678")
        order_service.mark_payment_outcome(
            session, paid, "ws_CO_1",
            PaymentOutcome(success=True, result_code=0, receipt_number="QK1", amount=paid.total),
        )
        confirmed = place_order(guest_owner, (roses, 1))
        order_service.update_order_status(session, confirmed.id, OrderStatus.confirmed)
        _age(session, paid, 10)
        _age(session, confirmed, 10)

        assert expire_unpaid_orders(session, hours=2) == []
        assert session.get(Order, paid.id).payment_status == PaymentStatus.completed

    def test_failed_payment_orders_expire(self, session, make_product, guest_owner, place_order):
        roses = make_product(stock=5)
        order = place_order(guest_owner, (roses, 1))
        order_service.record_payment_attempt(session, order, "MR-1", "ws_CO_1", "254712345678")
        order_service.mark_payment_outcome(
            session, order, "ws_CO_1",
            PaymentOutcome(success=False, result_code=1032, result_desc="Request cancelled by user"),
        )
        _age(session, order, 3)

        assert expire_unpaid_orders(session, hours=2) == [order.order_code]

    def test_recent_payment_prompt_keeps_order(
        self, session, make_product, guest_owner, place_order
    ):
        roses = make_product(stock=5)
        order = place_order(guest_owner, (roses, 2))
        _age(session, order, 5)
        order_service.record_payment_attempt(session, order, "MR-1", "ws_CO_1", "254712345678")

        assert expire_unpaid_orders(session, hours=2) == []
        session.expire_all()
        assert session.get(Order, order.id).order_status == OrderStatus.processing
        assert session.get(Product, roses.id).stock == 3

        later = datetime.utcnow() + timedelta(hours=3)
        assert expire_unpaid_orders(session, hours=2, now=later) == [order.order_code]

    def test_prompt_sent_during_sweep_wins(self, session, make_product, guest_owner, place_order):
        roses = make_product(stock=5)
        order = place_order(guest_owner, (roses, 1))
        _age(session, order, 5)
        cutoff = datetime.utcnow() - timedelta(hours=2)

        # the sweep picked the order, then the customer pressed pay
        order_service.record_payment_attempt(session, order, "MR-1", "ws_CO_1", "254712345678")

        with pytest.raises(InvalidState):
            order_service.cancel_order(
                session, order.id, cancelled_by="system:expiry", idle_before=cutoff
            )

        session.expire_all()
        assert session.get(Order, order.id).order_status == OrderStatus.processing
        assert session.get(Product, roses.id).stock == 4
