"""Order domain constants.

Defines status choices and the state-machine sets used by the order
service.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "placed", "Placed"
    PENDING = "pending", "Pending"
    SHIPPED = "shipped", "Shipped"
    CANCELED = "canceled", "Canceled"


INITIAL_STATUS = OrderStatus.PLACED

# Only orders in these states accept owner edits and cancellation.
OWNER_MUTABLE_STATES: set[str] = {OrderStatus.PLACED}

TERMINAL_STATES: set[str] = {OrderStatus.SHIPPED, OrderStatus.CANCELED}
