"""Pydantic request schemas for the order API.

These are external contracts accepting the camelCase documents sent by the
admin client; ``to_draft``/``to_patch`` translate them into lifecycle inputs.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from ..domain import (
    CustomerInfo,
    OrderPriority,
    OrderStatus,
    ProductInfo,
    ShippingInfo,
    ShippingMethod,
    StepStatus,
)
from ..lifecycle import (
    CustomerPatch,
    OrderDraft,
    OrderPatch,
    ProductPatch,
    ProgressInput,
    ShippingPatch,
)
from ..timeline import StepInput

_PHONE = re.compile(r"^\+?[1-9]\d{0,15}$")


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    compact = re.sub(r"[\s\-()]", "", value)
    if not _PHONE.match(compact):
        raise ValueError("Please provide a valid phone number")
    return value


def _check_iso_date(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError("Please provide a valid estimated arrival date") from exc
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ProgressSchema(CamelModel):
    current: Optional[int] = Field(default=None, ge=0, le=7)
    total: Optional[int] = Field(default=None, ge=1, le=10)

    def to_input(self) -> ProgressInput:
        return ProgressInput(current=self.current, total=self.total)


class TimelineStepSchema(CamelModel):
    id: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    estimated_duration: Optional[str] = Field(default=None, max_length=50)
    start_date: Optional[str] = None
    finish_date: Optional[str] = None
    status: Optional[StepStatus] = None
    is_completed: Optional[bool] = None
    is_in_progress: Optional[bool] = None
    is_locked: Optional[bool] = None

    def to_input(self) -> StepInput:
        return StepInput(
            id=self.id,
            title=self.title,
            description=self.description,
            estimated_duration=self.estimated_duration,
            start_date=self.start_date,
            finish_date=self.finish_date,
            status=self.status,
            is_completed=self.is_completed,
            is_in_progress=self.is_in_progress,
        )


class CustomerSchema(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone")
    @classmethod
    def _valid_phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value)


class CustomerUpdateSchema(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value

    @field_validator("phone")
    @classmethod
    def _valid_phone(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value)


class ProductSchema(CamelModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(min_length=2, max_length=200)
    quantity: str = Field(min_length=1)
    value: str = Field(min_length=1)
    description: str = Field(default="", max_length=1000)


class ProductUpdateSchema(CamelModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    quantity: Optional[str] = None
    value: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=1000)


class ShippingSchema(CamelModel):
    destination: str = Field(min_length=1, max_length=200)
    method: ShippingMethod = ShippingMethod.SEA_FREIGHT
    carrier: str = Field(default="", max_length=100)
    estimated_arrival: Optional[str] = None

    @field_validator("estimated_arrival")
    @classmethod
    def _valid_arrival(cls, value: Optional[str]) -> Optional[str]:
        return _check_iso_date(value)


class ShippingUpdateSchema(CamelModel):
    destination: Optional[str] = Field(default=None, min_length=1, max_length=200)
    method: Optional[ShippingMethod] = None
    carrier: Optional[str] = Field(default=None, max_length=100)
    estimated_arrival: Optional[str] = None

    @field_validator("estimated_arrival")
    @classmethod
    def _valid_arrival(cls, value: Optional[str]) -> Optional[str]:
        return _check_iso_date(value)


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class CreateOrderRequest(CamelModel):
    order_id: Optional[str] = Field(default=None, pattern=r"^ORD-\d{4}-\d{3}$")
    customer: CustomerSchema
    product: ProductSchema
    shipping: ShippingSchema
    status: Optional[OrderStatus] = None
    current_phase: Optional[str] = None
    progress: Optional[ProgressSchema] = None
    priority: OrderPriority = OrderPriority.MEDIUM
    timeline: Optional[List[TimelineStepSchema]] = None
    estimated_duration: str = ""
    notes: str = Field(default="", max_length=2000)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer": {"name": "Acme Trading", "email": "buyer@acme.example"},
                    "product": {"name": "Injection mold", "quantity": "500", "value": "€12,500"},
                    "shipping": {"destination": "Rotterdam", "method": "Sea Freight"},
                    "status": "Production",
                }
            ]
        }
    }

    def to_draft(self) -> OrderDraft:
        return OrderDraft(
            customer=CustomerInfo(
                name=self.customer.name,
                email=self.customer.email,
                phone=self.customer.phone or "",
            ),
            product=ProductInfo(
                name=self.product.name,
                quantity=self.product.quantity,
                value=self.product.value,
                description=self.product.description,
            ),
            shipping=ShippingInfo(
                destination=self.shipping.destination,
                method=self.shipping.method,
                carrier=self.shipping.carrier,
                estimated_arrival=self.shipping.estimated_arrival or "",
            ),
            order_id=self.order_id,
            status=self.status,
            current_phase=self.current_phase,
            progress=self.progress.to_input() if self.progress else None,
            priority=self.priority,
            timeline=[step.to_input() for step in self.timeline]
            if self.timeline is not None
            else None,
            estimated_duration=self.estimated_duration,
            notes=self.notes,
        )


class UpdateOrderRequest(CamelModel):
    customer: Optional[CustomerUpdateSchema] = None
    product: Optional[ProductUpdateSchema] = None
    shipping: Optional[ShippingUpdateSchema] = None
    status: Optional[OrderStatus] = None
    current_phase: Optional[str] = None
    progress: Optional[ProgressSchema] = None
    priority: Optional[OrderPriority] = None
    timeline: Optional[List[TimelineStepSchema]] = None
    estimated_duration: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    def to_patch(self) -> OrderPatch:
        return OrderPatch(
            customer=CustomerPatch(
                name=self.customer.name,
                email=self.customer.email,
                phone=self.customer.phone,
            )
            if self.customer
            else None,
            product=ProductPatch(
                name=self.product.name,
                quantity=self.product.quantity,
                value=self.product.value,
                description=self.product.description,
            )
            if self.product
            else None,
            shipping=ShippingPatch(
                destination=self.shipping.destination,
                method=self.shipping.method,
                carrier=self.shipping.carrier,
                estimated_arrival=self.shipping.estimated_arrival,
            )
            if self.shipping
            else None,
            status=self.status,
            current_phase=self.current_phase,
            progress=self.progress.to_input() if self.progress else None,
            priority=self.priority,
            timeline=[step.to_input() for step in self.timeline]
            if self.timeline is not None
            else None,
            estimated_duration=self.estimated_duration,
            notes=self.notes,
        )


class PhaseRequest(CamelModel):
    phase: str = Field(min_length=1)
    progress: Optional[int] = None


__all__ = [
    "CreateOrderRequest",
    "UpdateOrderRequest",
    "PhaseRequest",
    "TimelineStepSchema",
    "ProgressSchema",
]
