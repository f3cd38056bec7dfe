from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
from django.conf import settings
from rest_framework.test import APIClient

from modules.accounts.constants import Role
from modules.accounts.models import UserProfile
from modules.products.models import Product
from modules.retailers.models import Retailer, RetailerStatus


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Identity tokens
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_token():
    """Sign identity tokens the way the identity provider does."""

    def _make(subject_id, email=None, expires_in=3600, secret=None, **claims):
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject_id,
            "aud": settings.AUTH_JWT_AUDIENCE,
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
            **claims,
        }
        if email:
            payload["email"] = email
        return jwt.encode(
            payload,
            secret or settings.AUTH_JWT_SECRET,
            algorithm=settings.AUTH_JWT_ALGORITHM,
        )

    return _make


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------


@pytest.fixture()
def retailer():
    return Retailer.objects.create(
        business_name="Corner Grocery",
        email="orders@cornergrocery.test",
        address="12 Market Street",
        status=RetailerStatus.ACTIVE,
        credit_limit=Decimal("1000.00"),
    )


@pytest.fixture()
def other_retailer():
    return Retailer.objects.create(
        business_name="Harbour Market",
        status=RetailerStatus.ACTIVE,
        credit_limit=Decimal("500.00"),
    )


@pytest.fixture()
def product():
    return Product.objects.create(
        sku="BEV-001",
        name="Sparkling Water 24x500ml",
        unit="case",
        price=Decimal("10.00"),
        stock_quantity=100,
    )


@pytest.fixture()
def second_product():
    return Product.objects.create(
        sku="DRY-001",
        name="Basmati Rice 10kg",
        unit="bag",
        price=Decimal("25.50"),
        stock_quantity=20,
    )


@pytest.fixture()
def admin_profile():
    return UserProfile.objects.create(
        subject_id="admin-sub", email="admin@backoffice.test", role=Role.ADMIN
    )


@pytest.fixture()
def retailer_profile(retailer):
    return UserProfile.objects.create(
        subject_id="retailer-sub",
        email="orders@cornergrocery.test",
        role=Role.RETAILER,
        retailer=retailer,
    )


@pytest.fixture()
def driver_profile():
    return UserProfile.objects.create(
        subject_id="driver-sub", email="driver@backoffice.test", role=Role.DRIVER
    )


@pytest.fixture()
def admin_client(api_client, admin_profile, make_token):
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(admin_profile.subject_id)}")
    return api_client


@pytest.fixture()
def retailer_client(retailer_profile, make_token):
    client = APIClient()
    client.credentials(
        HTTP_AUTHORIZATION=f"Bearer {make_token(retailer_profile.subject_id)}"
    )
    return client
