"""Shared pytest fixtures and test helpers for order tracker tests."""

from __future__ import annotations

import random
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from order_tracker.config import TrackerSettings
from order_tracker.domain import CustomerInfo, ProductInfo, ShippingInfo
from order_tracker.lifecycle import OrderDraft
from order_tracker.services import OrderService
from order_tracker.web import create_app

FIXED_NOW = datetime(2025, 3, 14, 9, 30)


@pytest.fixture
def fixed_clock():
    """Clock that always returns ``FIXED_NOW``."""
    return lambda: FIXED_NOW


@pytest.fixture
def settings(tmp_path: Path) -> TrackerSettings:
    return TrackerSettings(
        database_path=str(tmp_path / "orders.sqlite3"),
        seed_demo_data=False,
    )


@pytest.fixture
def service(settings: TrackerSettings, fixed_clock) -> OrderService:
    """In-memory service with a fixed clock and a seeded random source."""
    return OrderService(settings=settings, clock=fixed_clock, rng=random.Random(7))


@pytest.fixture
def client(settings: TrackerSettings) -> Iterator[TestClient]:
    """TestClient over an app backed by a temporary SQLite file."""
    app = create_app(settings)
    try:
        yield TestClient(app)
    finally:
        app.state.database.close()


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_draft(**overrides: Any) -> OrderDraft:
    """Minimal valid creation payload; keyword arguments override fields."""
    fields: Dict[str, Any] = {
        "customer": CustomerInfo(name="Acme Trading", email="buyer@acme.example"),
        "product": ProductInfo(name="Injection mold", quantity="500", value="$1,250.50"),
        "shipping": ShippingInfo(destination="Rotterdam"),
    }
    fields.update(overrides)
    return OrderDraft(**fields)


def order_body(**overrides: Any) -> Dict[str, Any]:
    """Minimal valid JSON body for ``POST /api/orders``."""
    body: Dict[str, Any] = {
        "customer": {"name": "Acme Trading", "email": "Buyer@AcmeTrading.com"},
        "product": {"name": "Injection mold", "quantity": "500", "value": "$1,250"},
        "shipping": {"destination": "Rotterdam"},
    }
    body.update(overrides)
    return body
