"""Unit tests for the bearer-token identity gate."""

from __future__ import annotations

import jwt
import pytest
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIRequestFactory

from modules.core.authentication import Identity, IdentityTokenAuthentication
from modules.core.identifiers import generate_object_id
from modules.core.roles import Role

pytestmark = pytest.mark.unit

factory = APIRequestFactory()


def _request(header: str | None):
    kwargs = {"HTTP_AUTHORIZATION": header} if header is not None else {}
    return factory.get("/api/v1/me", **kwargs)


@pytest.fixture()
def auth():
    return IdentityTokenAuthentication()


class TestIdentity:
    def test_flags_follow_role(self):
        user = Identity(generate_object_id(), Role.USER)
        boss = Identity(generate_object_id(), Role.SUPERADMIN)
        assert user.can_place_orders and not user.is_privileged
        assert boss.is_privileged and not boss.can_place_orders

    def test_id_is_lowercased(self):
        assert Identity("ABCDEF0123456789ABCDEF01", "user").id == "abcdef0123456789abcdef01"

    def test_equality(self):
        identity_id = generate_object_id()
        assert Identity(identity_id, "user") == Identity(identity_id, "user")
        assert Identity(identity_id, "user") != Identity(identity_id, "admin")


class TestIdentityTokenAuthentication:
    def test_no_header_is_anonymous(self, auth):
        assert auth.authenticate(_request(None)) is None

    def test_valid_token(self, auth, make_token):
        identity_id = generate_object_id()
        token = make_token(identity_id, "superadmin")

        identity, raw = auth.authenticate(_request(f"Bearer {token}"))

        assert identity == Identity(identity_id, "superadmin")
        assert raw == token

    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer a b"])
    def test_malformed_header(self, auth, header):
        with pytest.raises(AuthenticationFailed):
            auth.authenticate(_request(header))

    def test_wrong_signature(self, auth):
        token = jwt.encode({"id": generate_object_id(), "role": "user"}, "other-secret", algorithm="HS256")
        with pytest.raises(AuthenticationFailed, match="Invalid token"):
            auth.authenticate(_request(f"Bearer {token}"))

    def test_expired_token(self, auth, make_token):
        token = make_token(generate_object_id(), "user", exp=1)
        with pytest.raises(AuthenticationFailed):
            auth.authenticate(_request(f"Bearer {token}"))

    def test_invalid_identity_claim(self, auth, make_token):
        with pytest.raises(AuthenticationFailed, match="invalid identity"):
            auth.authenticate(_request(f"Bearer {make_token('not-hex', 'user')}"))

    def test_unknown_role_claim(self, auth, make_token):
        with pytest.raises(AuthenticationFailed, match="unknown role"):
            auth.authenticate(_request(f"Bearer {make_token(generate_object_id(), 'root')}"))
