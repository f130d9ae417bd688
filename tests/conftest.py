from __future__ import annotations

from decimal import Decimal

import jwt
import pytest

from django.conf import settings
from rest_framework.test import APIClient

from modules.core.authentication import Identity
from modules.core.identifiers import generate_object_id
from modules.core.roles import Role
from modules.products.models import Product


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
# Identities
# ---------------------------------------------------------------------------


@pytest.fixture()
def user_identity():
    return Identity(generate_object_id(), Role.USER)


@pytest.fixture()
def other_user_identity():
    return Identity(generate_object_id(), Role.USER)


@pytest.fixture()
def admin_identity():
    return Identity(generate_object_id(), Role.ADMIN)


@pytest.fixture()
def superadmin_identity():
    return Identity(generate_object_id(), Role.SUPERADMIN)


@pytest.fixture()
def client_for():
    """Build an APIClient force-authenticated as ``identity``."""

    def _client(identity: Identity) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=identity)
        return client

    return _client


@pytest.fixture()
def make_token():
    """Sign an identity token the way the external auth service does."""

    def _token(identity_id: str, role: str, **extra) -> str:
        return jwt.encode(
            {"id": identity_id, "role": role, **extra},
            settings.IDENTITY_JWT_SECRET,
            algorithm=settings.IDENTITY_JWT_ALGORITHM,
        )

    return _token


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product(admin_identity):
    """Create a catalog product owned by ``admin_identity``."""

    def _product(name: str = "Widget", price: str = "10.00", stock: int = 10, **kwargs) -> Product:
        kwargs.setdefault("owner_id", admin_identity.id)
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock=stock,
            **kwargs,
        )

    return _product


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class RecordingPublisher:
    """Collects published events instead of delivering them."""

    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    @property
    def names(self):
        return [event.channel_name for event in self.events]


@pytest.fixture()
def publisher():
    return RecordingPublisher()
