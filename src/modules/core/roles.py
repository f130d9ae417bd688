"""Identity roles and the policy tables derived from them.

``Role`` is closed: every policy below is an explicit table covering each
member, and ``_require_total`` refuses to load a table that misses one.
Adding a role therefore forces a decision at every policy.
"""

from __future__ import annotations

from django.db import models


class Role(models.TextChoices):
    USER = "user", "User"
    ADMIN = "admin", "Admin"
    SUPERADMIN = "superadmin", "Super admin"


def _require_total(table: dict[Role, bool], name: str) -> dict[Role, bool]:
    missing = set(Role) - set(table)
    if missing:
        raise RuntimeError(f"Policy {name!r} does not cover roles: {sorted(missing)}")
    return table


# Places orders and owns them.
ORDERING_POLICY = _require_total(
    {
        Role.USER: True,
        Role.ADMIN: False,
        Role.SUPERADMIN: False,
    },
    "ordering",
)

# Sees every order and drives status transitions.
PRIVILEGED_POLICY = _require_total(
    {
        Role.USER: False,
        Role.ADMIN: False,
        Role.SUPERADMIN: True,
    },
    "privileged",
)

# Creates and maintains catalog products.
CATALOG_POLICY = _require_total(
    {
        Role.USER: False,
        Role.ADMIN: True,
        Role.SUPERADMIN: False,
    },
    "catalog",
)


def can_place_orders(role: str) -> bool:
    return ORDERING_POLICY[Role(role)]


def is_privileged(role: str) -> bool:
    return PRIVILEGED_POLICY[Role(role)]


def can_manage_catalog(role: str) -> bool:
    return CATALOG_POLICY[Role(role)]
