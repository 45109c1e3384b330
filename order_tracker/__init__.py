"""Order tracking for a sourcing and manufacturing agency.

Each order follows a fixed seven-step journey from offer acceptance to
delivery. The package holds the domain model, the timeline and status
rules, SQLite persistence and a FastAPI JSON interface for the admin client.
"""

from .domain import (
    Admin,
    Customer,
    Order,
    OrderPriority,
    OrderStatus,
    Progress,
    ShippingMethod,
    StepStatus,
    TimelineStep,
)
from .errors import OrderTrackerError
from .services import OrderService

__all__ = [
    "Admin",
    "Customer",
    "Order",
    "OrderPriority",
    "OrderStatus",
    "Progress",
    "ShippingMethod",
    "StepStatus",
    "TimelineStep",
    "OrderTrackerError",
    "OrderService",
]
