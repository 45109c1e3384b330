"""FastAPI-based JSON interface for the order tracker."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import TrackerSettings, configure_logging
from ..domain import (
    Admin,
    CustomerInfo,
    OrderPriority,
    OrderStatus,
    ProductInfo,
    ShippingInfo,
    ShippingMethod,
)
from ..errors import NotFoundError, OrderTrackerError, ValidationError
from ..lifecycle import OrderDraft
from ..repository import RecordNotFoundError
from ..services import OrderService
from ..storage import OrderDatabase
from .schemas import CreateOrderRequest, PhaseRequest, UpdateOrderRequest

logger = structlog.get_logger(__name__)

ALL_FILTER = "All"


def create_app(settings: Optional[TrackerSettings] = None) -> FastAPI:
    settings = settings or TrackerSettings()
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    database = OrderDatabase(settings.database_path)
    service = OrderService(
        order_repo=database.orders,
        customer_repo=database.customers,
        admin_repo=database.admins,
        settings=settings,
    )
    default_admin = ensure_default_admin(service, settings)
    if settings.seed_demo_data:
        ensure_demo_data(service, admin_id=default_admin.id)

    app = FastAPI(title="Order Tracker")
    app.state.order_service = service
    app.state.database = database
    app.state.default_admin_id = default_admin.id

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.exception_handler(OrderTrackerError)
    async def handle_tracker_error(request: Request, exc: OrderTrackerError):
        kind, status_code, message = exc.as_problem()
        if status_code >= 500:
            logger.error("request_failed", path=request.url.path, kind=kind, error=message)
        else:
            logger.info("request_rejected", path=request.url.path, kind=kind, error=message)
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "error": message, "kind": kind},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = "; ".join(describe_validation_error(error) for error in exc.errors())
        logger.info("request_rejected", path=request.url.path, kind="ValidationError", error=message)
        return JSONResponse(
            status_code=ValidationError.http_status,
            content={"success": False, "error": message, "kind": ValidationError.kind},
        )

    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        return {"success": True, "message": "Order tracker is running"}

    @app.get("/api/orders")
    def list_orders(
        request: Request,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        orders = service.list_orders(
            status=parse_filter(OrderStatus, status, "status"),
            priority=parse_filter(OrderPriority, priority, "priority"),
        )
        return {
            "success": True,
            "count": len(orders),
            "data": [order.to_dict() for order in orders],
        }

    @app.post("/api/orders", status_code=201)
    def create_order(
        payload: CreateOrderRequest,
        request: Request,
        x_admin_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        admin_id = resolve_admin_id(request, x_admin_id)
        order = service.create_order(payload.to_draft(), admin_id=admin_id)
        return {
            "success": True,
            "message": "Order created successfully",
            "data": order.to_dict(),
        }

    @app.get("/api/orders/{order_id}")
    def get_order(order_id: str, request: Request) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        return {"success": True, "data": service.get_order(order_id).to_dict()}

    @app.put("/api/orders/{order_id}")
    def update_order(
        order_id: str,
        payload: UpdateOrderRequest,
        request: Request,
        x_admin_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        admin_id = resolve_admin_id(request, x_admin_id)
        order = service.update_order(order_id, payload.to_patch(), admin_id=admin_id)
        return {
            "success": True,
            "message": "Order updated successfully",
            "data": order.to_dict(),
        }

    @app.patch("/api/orders/{order_id}/advance")
    def advance_order(
        order_id: str,
        request: Request,
        x_admin_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        admin_id = resolve_admin_id(request, x_admin_id)
        order = service.advance_order_phase(order_id, admin_id=admin_id)
        return {
            "success": True,
            "message": f"Order advanced to {order.current_phase}",
            "data": order.to_dict(),
        }

    @app.patch("/api/orders/{order_id}/phase")
    def set_order_phase(
        order_id: str,
        payload: PhaseRequest,
        request: Request,
        x_admin_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        admin_id = resolve_admin_id(request, x_admin_id)
        order = service.set_order_phase(
            order_id, payload.phase, payload.progress, admin_id=admin_id
        )
        return {
            "success": True,
            "message": f"Order phase updated to {order.current_phase}",
            "data": order.to_dict(),
        }

    @app.delete("/api/orders/{order_id}")
    def delete_order(
        order_id: str,
        request: Request,
        x_admin_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        admin_id = resolve_admin_id(request, x_admin_id)
        order = service.delete_order(order_id, admin_id=admin_id)
        return {
            "success": True,
            "message": "Order deleted successfully",
            "data": {"id": order.id, "orderId": order.order_id},
        }

    @app.delete("/api/orders/{order_id}/hard")
    def hard_delete_order(
        order_id: str,
        request: Request,
        x_admin_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        admin_id = resolve_admin_id(request, x_admin_id)
        order = service.hard_delete_order(order_id, admin_id=admin_id)
        return {
            "success": True,
            "message": "Order permanently deleted",
            "data": {"id": order.id, "orderId": order.order_id},
        }

    @app.get("/api/customers")
    def list_customers(request: Request, search: Optional[str] = None) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        customers = service.list_customers(search=search)
        return {
            "success": True,
            "count": len(customers),
            "data": [customer.to_dict() for customer in customers],
        }

    @app.get("/api/customers/{customer_id}")
    def get_customer(customer_id: str, request: Request) -> Dict[str, Any]:
        service: OrderService = request.app.state.order_service
        customer = service.get_customer(customer_id)
        orders = service.orders_for_customer(customer)
        return {
            "success": True,
            "data": {
                "customer": customer.to_dict(),
                "orders": [order.to_dict() for order in orders],
            },
        }

    return app


def resolve_admin_id(request: Request, header_value: Optional[str]) -> str:
    if not header_value:
        return request.app.state.default_admin_id
    service: OrderService = request.app.state.order_service
    try:
        return service.admins.get(header_value).id
    except RecordNotFoundError:
        raise NotFoundError(f"Admin {header_value} not found") from None


def parse_filter(enum_type: Any, value: Optional[str], name: str) -> Any:
    if value is None or value == "" or value == ALL_FILTER:
        return None
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Invalid {name} {value!r}; expected one of: {allowed}") from None


def describe_validation_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def ensure_default_admin(service: OrderService, settings: TrackerSettings) -> Admin:
    admin = service.admins.find_one(email=settings.default_admin_email.lower())
    if admin is None:
        admin = service.register_admin(
            name=settings.default_admin_name,
            email=settings.default_admin_email,
        )
        logger.info("default_admin_created", admin_id=admin.id, email=admin.email)
    return admin


def ensure_demo_data(service: OrderService, *, admin_id: Optional[str] = None) -> None:
    if len(service.orders) > 0:
        return

    service.create_order(
        OrderDraft(
            customer=CustomerInfo(
                name="Northwind Retail",
                email="purchasing@northwind.example",
                phone="+4930123456",
            ),
            product=ProductInfo(
                name="Custom ceramic mugs",
                quantity="2,000 pcs",
                value="$8,400",
                description="Glazed stoneware with two-colour logo print",
            ),
            shipping=ShippingInfo(
                destination="Hamburg, Germany",
                method=ShippingMethod.SEA_FREIGHT,
                carrier="Maersk",
            ),
            status=OrderStatus.PRODUCTION,
            priority=OrderPriority.HIGH,
            estimated_duration="49 days",
        ),
        admin_id=admin_id,
    )
    service.create_order(
        OrderDraft(
            customer=CustomerInfo(
                name="Blue Harbor Outfitters",
                email="ops@blueharbor.example",
            ),
            product=ProductInfo(
                name="Insulated water bottles",
                quantity="500 pcs",
                value="$3,250",
            ),
            shipping=ShippingInfo(
                destination="Seattle, USA",
                method=ShippingMethod.AIR_FREIGHT,
            ),
            priority=OrderPriority.MEDIUM,
        ),
        admin_id=admin_id,
    )
    logger.info("demo_data_seeded", orders=len(service.orders))


__all__ = ["create_app", "ensure_default_admin", "ensure_demo_data"]
