"""Pytest fixtures for framel tests."""

import os

# configure before anything imports framel.config
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BREVO_API_KEY"] = ""
os.environ["ORDER_EXPIRY_HOURS"] = "0"

from datetime import date, timedelta
from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from framel import models  # noqa: F401
from framel.database import get_engine, get_session
from framel.dependencies.identity import guest_key, user_key
from framel.errors import ProviderError
from framel.main import app
from framel.models.product import Product
from framel.models.user import User
from framel.schemas.payment_schemas import StkPushResult, StkQueryResult
from framel.services.mpesa_client import get_mpesa_client
from framel.utils.token import create_access_token


class FakeMpesaClient:
    """Records STK pushes instead of calling Safaricom."""

    def __init__(self):
        self.pushes = []
        self.queries = []
        self.fail = False
        self._ids = count(1)

    def stk_push(self, phone, amount, account_reference, description):
        if self.fail:
            raise ProviderError()

        n = next(self._ids)
        self.pushes.append({
            "phone": phone,
            "amount": amount,
            "account_reference": account_reference,
            "description": description,
        })
        return StkPushResult(
            merchant_request_id=f"MR-{n}",
            checkout_request_id=f"ws_CO_{n:06d}",
            response_code="0",
            response_description="Success. Request accepted for processing",
            customer_message="Success. Request accepted for processing",
        )

    def stk_query(self, checkout_request_id):
        if self.fail:
            raise ProviderError()

        self.queries.append(checkout_request_id)
        return StkQueryResult(
            response_code="0",
            checkout_request_id=checkout_request_id,
            result_code="1032",
            result_desc="Request cancelled by user",
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def mpesa():
    return FakeMpesaClient()


@pytest.fixture
def client(engine, mpesa):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_mpesa_client] = lambda: mpesa

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_product(session):
    def _make(name="Red Roses Bouquet", price="1500", stock=10, is_active=True):
        product = Product(
            name=name,
            price=Decimal(price),
            stock=stock,
            image_urls=[f"https://cdn.framel.test/{name}.jpg"],
            is_active=is_active,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_user(session):
    def _make(email="wanjiku@example.com", role="user"):
        user = User(first_name="Wanjiku", last_name="Kamau", email=email, role=role)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@framel.test", role="admin")


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def guest_headers():
    return {"X-Guest-Token": "guest-abc123"}


@pytest.fixture
def guest_owner():
    return guest_key("guest-abc123")


@pytest.fixture
def user_owner(user):
    return user_key(user.id)


@pytest.fixture
def delivery_payload():
    return {
        "recipient_name": "Achieng Otieno",
        "phone": "0712 345 678",
        "street": "12 Riverside Drive",
        "city": "Nairobi",
        "county": "Nairobi",
        "delivery_date": (date.today() + timedelta(days=2)).isoformat(),
        "instructions": "Call on arrival",
    }


@pytest.fixture
def delivery(delivery_payload):
    from framel.schemas.checkout_schemas import DeliveryDetails

    return DeliveryDetails(**delivery_payload)


def _stk_callback(checkout_request_id, result_code=0, amount=None, receipt="QK12ABC345",
                  result_desc=None, merchant_request_id="MR-1"):
    stk = {
        "MerchantRequestID": merchant_request_id,
        "CheckoutRequestID": checkout_request_id,
        "ResultCode": result_code,
        "ResultDesc": result_desc or (
            "The service request is processed successfully."
            if result_code == 0 else "Request cancelled by user"
        ),
    }
    if result_code == 0:
        stk["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "Balance"},
                {"Name": "TransactionDate", "Value": 20251113102115},
                {"Name": "PhoneNumber", "Value": 254712345678},
            ]
        }
    return {"Body": {"stkCallback": stk}}


@pytest.fixture
def stk_callback():
    """Builder for Daraja STK callback bodies."""
    return _stk_callback


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def place_order(session, delivery):
    """Fill owner_key's cart with (product, quantity) pairs and check out."""
    from framel.services import cart_service, order_service

    def _place(owner_key, *lines, contact_email="achieng@example.com"):
        for product, quantity in lines:
            cart_service.add_to_cart(session, owner_key, product.id, quantity)
        return order_service.create_order(
            session, owner_key, delivery, contact_email=contact_email
        )

    return _place
