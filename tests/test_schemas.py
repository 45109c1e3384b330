"""Tests for request schemas and their conversion to lifecycle inputs."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from order_tracker.domain import OrderStatus, ShippingMethod, StepStatus
from order_tracker.web.schemas import CreateOrderRequest, UpdateOrderRequest
from tests.conftest import order_body


class TestCreateOrderRequest:
    def test_to_draft(self) -> None:
        request = CreateOrderRequest.model_validate(
            order_body(
                status="Shipped",
                progress={"current": 6},
                timeline=[{"title": "Signed", "isCompleted": True}],
            )
        )
        draft = request.to_draft()
        assert draft.customer.email == "buyer@acmetrading.com"
        assert draft.status is OrderStatus.SHIPPED
        assert draft.progress.current == 6
        assert draft.progress.total is None
        assert draft.timeline[0].title == "Signed"
        assert draft.timeline[0].resolved_status() is StepStatus.COMPLETED
        assert draft.shipping.method is ShippingMethod.SEA_FREIGHT

    def test_whitespace_is_stripped(self) -> None:
        request = CreateOrderRequest.model_validate(
            order_body(customer={"name": "  Acme  ", "email": "a@acmetrading.com"})
        )
        assert request.customer.name == "Acme"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"customer": {"name": "Acme", "email": "nope"}},
            {"customer": {"name": "Acme", "email": "a@acmetrading.com", "phone": "call me"}},
            {"product": {"name": "Widget", "quantity": "1"}},
            {"product": {"name": "Widget", "quantity": "1", "value": "1", "description": "x" * 1001}},
            {"shipping": {"destination": "Oslo", "carrier": "c" * 101}},
            {"shipping": {"destination": "Oslo", "estimatedArrival": "next week"}},
            {"shipping": {"destination": "Oslo", "method": "Teleport"}},
            {"priority": "Urgent"},
            {"progress": {"total": 11}},
            {"timeline": [{"title": ""}]},
            {"timeline": [{"estimatedDuration": "d" * 51}]},
            {"notes": "n" * 2001},
            {"orderId": "ORD-25-1"},
        ],
    )
    def test_rejects_invalid_fields(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate(order_body(**overrides))


class TestUpdateOrderRequest:
    def test_empty_patch(self) -> None:
        patch = UpdateOrderRequest.model_validate({}).to_patch()
        assert patch.customer is None
        assert patch.timeline is None
        assert patch.progress is None

    def test_partial_nested_patch(self) -> None:
        patch = UpdateOrderRequest.model_validate(
            {"customer": {"email": "New@AcmeTrading.com"}, "shipping": {"carrier": "DHL"}}
        ).to_patch()
        assert patch.customer.email == "new@acmetrading.com"
        assert patch.customer.name is None
        assert patch.shipping.carrier == "DHL"
        assert patch.shipping.destination is None

    def test_empty_timeline_is_kept(self) -> None:
        patch = UpdateOrderRequest.model_validate({"timeline": []}).to_patch()
        assert patch.timeline == []

    def test_destination_cannot_be_blank(self) -> None:
        with pytest.raises(ValidationError):
            UpdateOrderRequest.model_validate({"shipping": {"destination": "  "}})
