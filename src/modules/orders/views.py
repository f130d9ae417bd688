"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions propagate to ``modules.core.exception_handler``, which
translates them into HTTP status codes; the view never swallows generic
exceptions.
"""

from __future__ import annotations

from django.apps import apps
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import InvalidInput
from modules.core.identifiers import ensure_object_id
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import CanPlaceOrders, IsPrivileged
from modules.core.validation import build_dto
from modules.inventory.ledger import InventoryLedger
from modules.orders.dtos import PlaceOrderRequest, UpdateOrderItemsRequest
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import OrderListSerializer, OrderSerializer
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories, ledger and the
    notification fan-out (DIP).  Does **not** extend ``ModelViewSet``;
    all ORM access goes through the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_price", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    pagination_class = StandardResultsSetPagination
    serializer_class = OrderSerializer

    permission_classes_by_action = {
        "create": [CanPlaceOrders],
        "my_orders": [CanPlaceOrders],
        "list": [IsPrivileged],
        "change_status": [IsPrivileged],
    }

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            ledger=InventoryLedger(ProductDjangoRepository()),
            publisher=apps.get_app_config("notifications").fanout,
        )

    def get_permissions(self):
        classes = self.permission_classes_by_action.get(self.action, [IsAuthenticated])
        return [permission() for permission in classes]

    def get_queryset(self):
        return self._service.list_orders()

    # ------------------------------------------------------------------
    # Create / Update
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        dto = build_dto(PlaceOrderRequest, request.data)
        order = self._service.place_order(request.user, dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/

        Replaces the items of a ``placed`` order owned by the caller.
        """
        order_id = ensure_object_id(pk, "Order")
        dto = build_dto(UpdateOrderItemsRequest, request.data)
        order = self._service.update_items(request.user, order_id, dto)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, owner, date range, total range) is handled
        by ``OrderFilter`` via ``filter_backends``.  Ordering is handled
        by ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(request.user, ensure_object_id(pk, "Order"))
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"], url_path="my-orders")
    def my_orders(self, request: Request) -> Response:
        """GET /api/v1/orders/my-orders/"""
        orders = self._service.list_orders_for_owner(request.user.id)
        return Response(OrderListSerializer(orders, many=True).data)

    # ------------------------------------------------------------------
    # Status / Cancel (dedicated actions)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="status", url_name="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/status/

        The target status is read from the body, falling back to the
        ``status`` query parameter.
        """
        order_id = ensure_object_id(pk, "Order")
        new_status = None
        if isinstance(request.data, dict):
            new_status = request.data.get("status")
        new_status = new_status or request.query_params.get("status")
        if not new_status:
            raise InvalidInput("Field 'status' is required.")

        order = self._service.change_status(request.user, order_id, new_status)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["patch"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/cancel/

        Cancels a ``placed`` order and releases its reserved stock.
        """
        order = self._service.cancel_order(request.user, ensure_object_id(pk, "Order"))
        return Response(
            {
                "message": "Order cancelled successfully.",
                "order": OrderSerializer(order).data,
            }
        )
