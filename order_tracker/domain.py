"""Core data structures for the order tracking system."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

STANDARD_TOTAL = 7
MAX_TOTAL = 10
DEFAULT_PHASE = "Offer Accepted"


class OrderStatus(str, Enum):
    """Coarse externally visible order state."""

    DEVELOPMENT = "Development"
    IN_PROGRESS = "In Progress"
    PRODUCTION = "Production"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @property
    def color(self) -> str:
        return {
            OrderStatus.DEVELOPMENT: "gray",
            OrderStatus.IN_PROGRESS: "blue",
            OrderStatus.PRODUCTION: "orange",
            OrderStatus.SHIPPED: "blue",
            OrderStatus.DELIVERED: "green",
            OrderStatus.CANCELLED: "red",
        }[self]


class StepStatus(str, Enum):
    """State of a single timeline step."""

    LOCKED = "Locked"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class OrderPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ShippingMethod(str, Enum):
    SEA_FREIGHT = "Sea Freight"
    AIR_FREIGHT = "Air Freight"
    ROAD_TRANSPORT = "Road Transport"
    EXPRESS_DELIVERY = "Express Delivery"


def format_step_date(day: date) -> str:
    """Render a date the way timeline steps store it (``M/D/YYYY``)."""

    return f"{day.month}/{day.day}/{day.year}"


_NUMERIC_VALUE = re.compile(r"[^0-9.-]+")


def parse_order_value(value: str) -> float:
    """Extract the numeric amount from a free-text value such as ``"€12,500"``."""

    cleaned = _NUMERIC_VALUE.sub("", value or "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


@dataclass(slots=True)
class TimelineStep:
    """One of the lifecycle phases embedded in an order."""

    id: int
    title: str
    description: str
    estimated_duration: str = ""
    start_date: str = ""
    finish_date: str = ""
    status: StepStatus = StepStatus.LOCKED

    @property
    def is_completed(self) -> bool:
        return self.status is StepStatus.COMPLETED

    @property
    def is_in_progress(self) -> bool:
        return self.status is StepStatus.IN_PROGRESS

    @property
    def is_locked(self) -> bool:
        return self.status is StepStatus.LOCKED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "estimatedDuration": self.estimated_duration,
            "startDate": self.start_date,
            "finishDate": self.finish_date,
            "status": self.status.value,
            "isCompleted": self.is_completed,
            "isInProgress": self.is_in_progress,
            "isLocked": self.is_locked,
        }


@dataclass(slots=True)
class Progress:
    """Position of the cursor within the timeline (1-based)."""

    current: int = 1
    total: int = STANDARD_TOTAL

    def __post_init__(self) -> None:
        if self.total < 1 or self.total > MAX_TOTAL:
            raise ValueError(f"Progress total must be between 1 and {MAX_TOTAL}")
        if self.current < 0 or self.current > self.total:
            raise ValueError("Progress current must be between 0 and total")

    @property
    def percentage(self) -> int:
        return round(self.current / self.total * 100)

    def to_dict(self) -> Dict[str, int]:
        return {"current": self.current, "total": self.total}


@dataclass(slots=True)
class CustomerInfo:
    """Customer details embedded in an order."""

    name: str
    email: str
    phone: str = ""
    customer_id: Optional[str] = None


@dataclass(slots=True)
class ProductInfo:
    name: str
    quantity: str
    value: str
    description: str = ""


@dataclass(slots=True)
class ShippingInfo:
    destination: str
    method: ShippingMethod = ShippingMethod.SEA_FREIGHT
    carrier: str = ""
    estimated_arrival: str = ""


@dataclass(slots=True)
class Order:
    """Order aggregate; exclusively owns its embedded timeline."""

    id: str
    order_id: str
    customer: CustomerInfo
    product: ProductInfo
    shipping: ShippingInfo
    status: OrderStatus = OrderStatus.DEVELOPMENT
    current_phase: str = DEFAULT_PHASE
    progress: Progress = field(default_factory=Progress)
    priority: OrderPriority = OrderPriority.MEDIUM
    timeline: List[TimelineStep] = field(default_factory=list)
    order_date: datetime = field(default_factory=datetime.utcnow)
    estimated_duration: str = ""
    notes: str = ""
    created_by: Optional[str] = None
    last_updated_by: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def progress_percentage(self) -> int:
        return self.progress.percentage

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase document returned to API clients."""

        return {
            "id": self.id,
            "orderId": self.order_id,
            "customer": {
                "name": self.customer.name,
                "email": self.customer.email,
                "phone": self.customer.phone,
                "customerId": self.customer.customer_id,
            },
            "product": {
                "name": self.product.name,
                "quantity": self.product.quantity,
                "value": self.product.value,
                "description": self.product.description,
            },
            "shipping": {
                "destination": self.shipping.destination,
                "method": self.shipping.method.value,
                "carrier": self.shipping.carrier,
                "estimatedArrival": self.shipping.estimated_arrival,
            },
            "status": self.status.value,
            "statusColor": self.status.color,
            "currentPhase": self.current_phase,
            "progress": self.progress.to_dict(),
            "progressPercentage": self.progress_percentage,
            "priority": self.priority.value,
            "timeline": [step.to_dict() for step in self.timeline],
            "orderDate": self.order_date.isoformat(),
            "formattedOrderDate": format_step_date(self.order_date.date()),
            "estimatedDuration": self.estimated_duration,
            "notes": self.notes,
            "createdBy": self.created_by,
            "lastUpdatedBy": self.last_updated_by,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class Customer:
    """Customer master data with aggregate order statistics."""

    id: str
    name: str
    email: str
    phone: str = ""
    company_name: str = ""
    total_orders: int = 0
    total_spent: float = 0.0
    average_order_value: float = 0.0
    last_order_date: Optional[datetime] = None

    def recompute_statistics(self, orders: Sequence[Order]) -> None:
        """Refresh the statistics from the customer's active orders."""

        own_orders = [
            order
            for order in orders
            if order.is_active and order.customer.email == self.email
        ]
        self.total_orders = len(own_orders)
        if not own_orders:
            self.total_spent = 0.0
            self.average_order_value = 0.0
            self.last_order_date = None
            return
        self.total_spent = sum(parse_order_value(order.product.value) for order in own_orders)
        self.average_order_value = self.total_spent / self.total_orders
        self.last_order_date = max(order.order_date for order in own_orders)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "companyName": self.company_name,
            "totalOrders": self.total_orders,
            "totalSpent": round(self.total_spent, 2),
            "averageOrderValue": round(self.average_order_value, 2),
            "lastOrderDate": (
                self.last_order_date.isoformat() if self.last_order_date else None
            ),
        }


@dataclass(slots=True)
class Admin:
    """Administrative user whose order activity is tracked."""

    id: str
    name: str
    email: str
    role: str = "admin"
    orders_created: int = 0
    orders_modified: int = 0
    last_activity: Optional[datetime] = None

    def record_activity(
        self,
        *,
        orders_created: bool = False,
        orders_modified: bool = False,
        at: Optional[datetime] = None,
    ) -> None:
        self.last_activity = at or datetime.utcnow()
        if orders_created:
            self.orders_created += 1
        if orders_modified:
            self.orders_modified += 1


__all__ = [
    "STANDARD_TOTAL",
    "MAX_TOTAL",
    "DEFAULT_PHASE",
    "OrderStatus",
    "StepStatus",
    "OrderPriority",
    "ShippingMethod",
    "TimelineStep",
    "Progress",
    "CustomerInfo",
    "ProductInfo",
    "ShippingInfo",
    "Order",
    "Customer",
    "Admin",
    "format_step_date",
    "parse_order_value",
]
