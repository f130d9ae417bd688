"""Structured logging: lifecycle commands emit namespaced events."""

import logging

import pytest

from modules.core.authentication import Identity
from modules.core.identifiers import generate_object_id
from modules.core.roles import Role


def _events(caplog):
    """structlog hands the event dict to stdlib as the record message."""
    return [record.msg for record in caplog.records if isinstance(record.msg, dict)]


def _first(caplog, name):
    return next(entry for entry in _events(caplog) if entry.get("event") == name)


@pytest.fixture()
def user_client(client_for, user_identity):
    return client_for(user_identity)


class TestLifecycleLogging:
    def test_order_placement_is_logged(self, user_client, user_identity, make_product, caplog):
        product = make_product(stock=5)
        with caplog.at_level(logging.INFO):
            response = user_client.post(
                "/api/v1/orders/",
                {"items": [{"product_id": product.id, "quantity": 2}]},
                format="json",
            )
        assert response.status_code == 201

        names = {entry.get("event") for entry in _events(caplog)}
        assert {"order.placement_started", "order.placed", "inventory.stock_adjusted"} <= names
        placed = _first(caplog, "order.placed")
        assert placed["owner_id"] == user_identity.id
        assert placed["order_id"] == response.json()["id"]

    def test_rejection_is_logged_with_context(self, user_client, make_product, caplog):
        product = make_product(stock=1)
        with caplog.at_level(logging.INFO):
            user_client.post(
                "/api/v1/orders/",
                {"items": [{"product_id": product.id, "quantity": 3}]},
                format="json",
            )

        rejected = _first(caplog, "inventory.insufficient_stock")
        assert rejected["requested"] == 3
        assert rejected["available"] == 1
        assert _first(caplog, "request.domain_error")["error_code"] == "insufficient_stock"

    def test_ownership_denial_is_logged(self, client_for, make_product, user_identity, caplog):
        product = make_product(stock=5)
        order_id = client_for(user_identity).post(
            "/api/v1/orders/",
            {"items": [{"product_id": product.id, "quantity": 1}]},
            format="json",
        ).json()["id"]
        intruder = Identity(generate_object_id(), Role.USER)

        with caplog.at_level(logging.INFO):
            client_for(intruder).patch(f"/api/v1/orders/{order_id}/cancel/")

        denied = _first(caplog, "order.ownership_denied")
        assert denied["identity_id"] == intruder.id
        assert denied["action"] == "cancel"

    def test_published_event_is_logged_with_its_channel(self, user_client, make_product, caplog):
        product = make_product(stock=5)
        with caplog.at_level(logging.INFO):
            response = user_client.post(
                "/api/v1/orders/",
                {"items": [{"product_id": product.id, "quantity": 2}]},
                format="json",
            )

        assert response.status_code == 201
        product.refresh_from_db()
        assert product.stock == 3
        published = _first(caplog, "order.event_published")
        assert published["event_name"] == "orderPlaced"
        assert published["order_id"] == response.json()["id"]
        assert _first(caplog, "notifications.published")["event_name"] == "orderPlaced"
