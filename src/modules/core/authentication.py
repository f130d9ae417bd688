"""Bearer-token identity gate for Django REST Framework.

Credentials and token issuance live in an external auth service.  This
backend only verifies the signed token it hands out (HS256 by default)
and turns its ``id`` / ``role`` claims into an ``Identity``.

Security decisions
------------------
* **Fail Closed**: any decode / claim error returns 401.
* ``algorithms`` is pinned to the configured value, never derived from
  the incoming token header.
* The ``id`` claim must be a 24-hex identifier and ``role`` a known
  ``Role`` member.
"""

from __future__ import annotations

import jwt as pyjwt
import structlog
from django.conf import settings
from jwt.exceptions import PyJWTError
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from modules.core.identifiers import is_valid_object_id
from modules.core.roles import Role, can_place_orders, is_privileged

logger = structlog.get_logger(__name__)


class Identity:
    """Authenticated caller: an opaque id plus a role.

    There is no local user table: the token is the source of truth.
    Views read ``request.user.id`` / ``.role`` for policy decisions.
    """

    is_authenticated = True
    is_active = True
    is_anonymous = False

    def __init__(self, id: str, role: str) -> None:
        self.id = id.lower()
        self.role = Role(role)

    @property
    def is_privileged(self) -> bool:
        return is_privileged(self.role)

    @property
    def can_place_orders(self) -> bool:
        return can_place_orders(self.role)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return (self.id, self.role) == (other.id, other.role)

    def __hash__(self) -> int:
        return hash((self.id, self.role))

    def __str__(self) -> str:
        return f"{self.role}:{self.id}"


class IdentityTokenAuthentication(BaseAuthentication):
    """DRF authentication class that validates identity Bearer tokens."""

    keyword = "Bearer"

    def authenticate(self, request):
        """Return ``(Identity, token)`` or ``None`` (no credentials)."""
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if not header:
            return None

        token = self._extract_token(header)
        payload = self._decode_token(token)
        identity = self._identity_from_claims(payload)
        logger.info("identity_authenticated", identity_id=identity.id, role=identity.role)
        return (identity, token)

    def authenticate_header(self, request):
        """Value for the ``WWW-Authenticate`` response header on 401."""
        return f'{self.keyword} realm="api"'

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _extract_token(cls, header: str) -> str:
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != cls.keyword.lower():
            raise AuthenticationFailed("Invalid Authorization header format.")
        return parts[1]

    @staticmethod
    def _decode_token(token: str) -> dict:
        try:
            return pyjwt.decode(
                token,
                settings.IDENTITY_JWT_SECRET,
                algorithms=[settings.IDENTITY_JWT_ALGORITHM],
            )
        except PyJWTError as exc:
            logger.warning("token_validation_failed", error=str(exc))
            raise AuthenticationFailed("Invalid token.") from exc

    @staticmethod
    def _identity_from_claims(payload: dict) -> Identity:
        subject = payload.get("id")
        role = payload.get("role")
        if not is_valid_object_id(subject):
            raise AuthenticationFailed("Token carries an invalid identity.")
        if role not in Role.values:
            raise AuthenticationFailed("Token carries an unknown role.")
        return Identity(id=subject, role=role)
