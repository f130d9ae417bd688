"""Integration tests for identity token authentication.

Validates:
  - /health is public (plain Django view, no DRF).
  - Protected DRF endpoints return 401 without a token, with an invalid
    token, or with a malformed Authorization header.
  - A valid token resolves to its ``id`` / ``role`` claims.
"""

import jwt
import pytest

from modules.core.identifiers import generate_object_id

pytestmark = pytest.mark.integration


class TestPublicEndpoints:
    """Health check and catalog browsing stay accessible without credentials."""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    def test_product_list_is_public(self, api_client):
        response = api_client.get("/api/v1/products/")
        assert response.status_code == 200


class TestProtectedEndpoints:
    """All other DRF endpoints require a valid token (Fail Closed)."""

    def test_no_token_returns_401(self, api_client):
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401
        assert response.json()["code"] == "not_authenticated"

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_empty_bearer_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer ")
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401
        assert "Bearer" in response.get("WWW-Authenticate", "")

    def test_orders_require_token(self, api_client):
        assert api_client.get("/api/v1/orders/my-orders/").status_code == 401
        assert api_client.get("/api/v1/notifications/stream/").status_code == 401


class TestValidToken:
    def test_me_echoes_identity(self, api_client, make_token):
        identity_id = generate_object_id()
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(identity_id, 'user')}")

        response = api_client.get("/api/v1/me")

        assert response.status_code == 200
        assert response.json() == {"id": identity_id, "role": "user", "privileged": False}

    def test_superadmin_is_privileged(self, api_client, make_token):
        token = make_token(generate_object_id(), "superadmin")
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        assert api_client.get("/api/v1/me").json()["privileged"] is True

    def test_token_authorizes_order_placement(self, api_client, make_token, make_product):
        product = make_product(stock=3)
        identity_id = generate_object_id()
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(identity_id, 'user')}")

        response = api_client.post(
            "/api/v1/orders/",
            {"items": [{"product_id": product.id, "quantity": 1}]},
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["owner_id"] == identity_id

    @pytest.mark.parametrize(
        "claims",
        [
            {"id": "not-hex", "role": "user"},
            {"id": "a" * 24, "role": "root"},
            {"role": "user"},
            {"id": "a" * 24},
        ],
    )
    def test_bad_claims_return_401(self, api_client, make_token, claims):
        token = make_token(claims.pop("id", None), claims.pop("role", None), **claims)
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        assert api_client.get("/api/v1/me").status_code == 401

    def test_wrong_secret_returns_401(self, api_client):
        token = jwt.encode({"id": "a" * 24, "role": "user"}, "another-secret", algorithm="HS256")
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        assert api_client.get("/api/v1/me").status_code == 401
