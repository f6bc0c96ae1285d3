"""Order domain constants.

Status updates are permissive: any of the five statuses may be set from
any other through the status endpoint.  The sets below only decide which
orders accept line-item changes and which can be cancelled.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


# Orders in these states no longer accept item additions, updates or removals.
LOCKED_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
