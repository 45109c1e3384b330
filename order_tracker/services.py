"""Service layer that persists orders and coordinates their collaborators."""

from __future__ import annotations

import random
import re
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Dict, Iterator, List, Optional, Set
from uuid import uuid4

import structlog

from .config.settings import TrackerSettings
from .domain import Admin, Customer, Order, OrderPriority, OrderStatus
from .errors import NotFoundError, PersistenceError, ValidationError
from .lifecycle import (
    OrderDraft,
    OrderPatch,
    advance_phase,
    apply_update,
    create_order,
    set_phase,
)
from .repository import (
    DuplicateRecordError,
    InMemoryRepository,
    RecordNotFoundError,
    Repository,
)

logger = structlog.get_logger(__name__)

STORAGE_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{32}$")
ORDER_ID_PATTERN = re.compile(r"^ORD-\d{4}-\d{3}$")


def is_storage_id(identifier: str) -> bool:
    return bool(STORAGE_ID_PATTERN.match(identifier))


def validate_order_identifier(identifier: str) -> str:
    if is_storage_id(identifier) or ORDER_ID_PATTERN.match(identifier):
        return identifier
    raise ValidationError(
        "Order ID must be either a storage id or in format ORD-YYYY-XXX"
    )


class OrderService:
    """Facade that exposes order management use-cases to clients."""

    def __init__(
        self,
        order_repo: Optional[Repository[Order]] = None,
        customer_repo: Optional[Repository[Customer]] = None,
        admin_repo: Optional[Repository[Admin]] = None,
        *,
        settings: Optional[TrackerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.orders = (
            order_repo
            if order_repo is not None
            else InMemoryRepository(unique_fields=("order_id",))
        )
        self.customers = (
            customer_repo
            if customer_repo is not None
            else InMemoryRepository(unique_fields=("email",))
        )
        self.admins = (
            admin_repo
            if admin_repo is not None
            else InMemoryRepository(unique_fields=("email",))
        )
        self.settings = settings or TrackerSettings()
        self._clock = clock or datetime.utcnow
        self._rng = rng or random.Random()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        # Id allocation and insert of a new order happen as one step.
        self._creation_lock = threading.Lock()
        self._customer_lock = threading.RLock()
        self._admin_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _now(self) -> datetime:
        return self._clock()

    def _today(self) -> date:
        return self._now().date()

    @contextmanager
    def _order_lock(self, order_key: str) -> Iterator[None]:
        """Serialize read-modify-write cycles on a single order."""

        with self._locks_guard:
            lock = self._locks.setdefault(order_key, threading.Lock())
        with lock:
            yield

    def _find_order(self, identifier: str, *, include_inactive: bool = False) -> Order:
        validate_order_identifier(identifier)
        order: Optional[Order]
        if is_storage_id(identifier):
            try:
                order = self.orders.get(identifier)
            except RecordNotFoundError:
                order = None
        else:
            order = self.orders.find_one(order_id=identifier)
        if order is None or (not include_inactive and not order.is_active):
            raise NotFoundError(f"Order {identifier} not found")
        return order

    def _record_admin_activity(
        self,
        admin_id: Optional[str],
        *,
        orders_created: bool = False,
        orders_modified: bool = False,
    ) -> None:
        if admin_id is None:
            return
        with self._admin_lock:
            try:
                admin = self.admins.get(admin_id)
            except RecordNotFoundError:
                logger.warning("admin_activity_unknown_admin", admin_id=admin_id)
                return
            admin.record_activity(
                orders_created=orders_created,
                orders_modified=orders_modified,
                at=self._now(),
            )
            self.admins.upsert(admin.id, admin)

    # ------------------------------------------------------------------
    # Admins and customers
    # ------------------------------------------------------------------
    def register_admin(self, name: str, email: str, *, role: str = "admin") -> Admin:
        admin = Admin(id=uuid4().hex, name=name, email=email.lower(), role=role)
        self.admins.add(admin.id, admin)
        return admin

    def get_customer_by_email(self, email: str) -> Optional[Customer]:
        return self.customers.find_one(email=email.lower())

    def _find_or_create_customer(self, name: str, email: str, phone: str = "") -> Customer:
        with self._customer_lock:
            customer = self.get_customer_by_email(email)
            if customer is not None:
                return customer
            customer = Customer(
                id=uuid4().hex,
                name=name,
                email=email.lower(),
                phone=phone,
                company_name=name,
            )
            try:
                self.customers.add(customer.id, customer)
            except DuplicateRecordError:
                # Another process stored the same e-mail first.
                stored = self.get_customer_by_email(email)
                if stored is None:
                    raise
                return stored
            logger.info("customer_created", customer_id=customer.id, email=customer.email)
            return customer

    def recompute_customer_statistics(self, email: str) -> Optional[Customer]:
        with self._customer_lock:
            customer = self.get_customer_by_email(email)
            if customer is None:
                return None
            customer.recompute_statistics(self.orders.list())
            self.customers.upsert(customer.id, customer)
            return customer

    def list_customers(self, *, search: Optional[str] = None) -> List[Customer]:
        """Customers sorted by name, optionally filtered by a search term.

        The term matches case-insensitively against name, e-mail and
        company name.
        """

        customers = self.customers.list()
        if search:
            needle = search.lower()
            customers = [
                customer
                for customer in customers
                if needle in customer.name.lower()
                or needle in customer.email
                or needle in customer.company_name.lower()
            ]
        customers.sort(key=lambda customer: customer.name.lower())
        return customers

    def get_customer(self, customer_id: str) -> Customer:
        if not is_storage_id(customer_id):
            raise ValidationError("Customer ID must be a storage id")
        try:
            return self.customers.get(customer_id)
        except RecordNotFoundError:
            raise NotFoundError(f"Customer {customer_id} not found") from None

    def orders_for_customer(self, customer: Customer) -> List[Order]:
        orders = [
            order
            for order in self.orders
            if order.is_active and order.customer.email == customer.email
        ]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders

    # ------------------------------------------------------------------
    # Order identifiers
    # ------------------------------------------------------------------
    def generate_order_id(self) -> str:
        """Allocate a free ``ORD-YYYY-NNN`` identifier by generate-and-check."""

        year = self._today().year
        attempts = self.settings.order_id_max_attempts
        for attempt in range(1, attempts + 1):
            candidate = f"ORD-{year}-{self._rng.randrange(1000):03d}"
            if self.orders.find_one(order_id=candidate) is None:
                return candidate
            logger.debug("order_id_collision", candidate=candidate, attempt=attempt)
        raise PersistenceError(
            f"Unable to allocate a unique order id after {attempts} attempts"
        )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def get_order(self, identifier: str) -> Order:
        return self._find_order(identifier)

    def list_orders(
        self,
        *,
        status: Optional[OrderStatus] = None,
        priority: Optional[OrderPriority] = None,
    ) -> List[Order]:
        orders = [order for order in self.orders if order.is_active]
        if status is not None:
            orders = [order for order in orders if order.status == status]
        if priority is not None:
            orders = [order for order in orders if order.priority == priority]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders

    def create_order(self, draft: OrderDraft, *, admin_id: Optional[str] = None) -> Order:
        if draft.order_id:
            validate_order_identifier(draft.order_id)

        customer = self._find_or_create_customer(
            draft.customer.name, draft.customer.email, draft.customer.phone
        )
        draft = replace(
            draft,
            customer=replace(
                draft.customer,
                email=customer.email,
                customer_id=customer.id,
            ),
        )
        with self._creation_lock:
            order = self._insert_new_order(draft, admin_id)
        self.recompute_customer_statistics(customer.email)
        self._record_admin_activity(admin_id, orders_created=True)
        logger.info(
            "order_created",
            order_id=order.order_id,
            status=order.status.value,
            progress=order.progress.current,
        )
        return order

    def _insert_new_order(self, draft: OrderDraft, admin_id: Optional[str]) -> Order:
        """Store a new order, drawing a fresh id again if the store rejects one."""

        if draft.order_id and self.orders.find_one(order_id=draft.order_id) is not None:
            raise DuplicateRecordError(f"OrderId '{draft.order_id}' already exists")

        attempts = self.settings.order_id_max_attempts
        for attempt in range(1, attempts + 1):
            order = create_order(
                draft,
                id=uuid4().hex,
                order_id=draft.order_id or self.generate_order_id(),
                created_by=admin_id,
                now=self._now(),
            )
            try:
                self.orders.add(order.id, order)
            except DuplicateRecordError as exc:
                if draft.order_id:
                    raise DuplicateRecordError(
                        f"OrderId '{draft.order_id}' already exists"
                    ) from exc
                logger.warning("order_id_taken", order_id=order.order_id, attempt=attempt)
                continue
            return order
        raise PersistenceError(
            f"Unable to allocate a unique order id after {attempts} attempts"
        )

    def update_order(
        self,
        identifier: str,
        patch: OrderPatch,
        *,
        admin_id: Optional[str] = None,
    ) -> Order:
        existing = self._find_order(identifier)
        with self._order_lock(existing.id):
            existing = self._find_order(existing.id)
            affected_emails: Set[str] = {existing.customer.email}
            if patch.customer is not None and patch.customer.email:
                customer = self._find_or_create_customer(
                    patch.customer.name or existing.customer.name,
                    patch.customer.email,
                    patch.customer.phone or "",
                )
                patch = replace(
                    patch,
                    customer=replace(
                        patch.customer,
                        email=customer.email,
                        customer_id=customer.id,
                    ),
                )
                affected_emails.add(customer.email)
            updated = apply_update(existing, patch, updated_by=admin_id, now=self._now())
            self.orders.upsert(updated.id, updated)
        for email in sorted(affected_emails):
            self.recompute_customer_statistics(email)
        self._record_admin_activity(admin_id, orders_modified=True)
        logger.info(
            "order_updated",
            order_id=updated.order_id,
            status=updated.status.value,
            progress=updated.progress.current,
        )
        return updated

    def advance_order_phase(self, identifier: str, *, admin_id: Optional[str] = None) -> Order:
        existing = self._find_order(identifier)
        with self._order_lock(existing.id):
            existing = self._find_order(existing.id)
            updated = advance_phase(
                existing, today=self._today(), updated_by=admin_id, now=self._now()
            )
            self.orders.upsert(updated.id, updated)
        self._record_admin_activity(admin_id, orders_modified=True)
        logger.info(
            "order_phase_advanced",
            order_id=updated.order_id,
            phase=updated.current_phase,
            progress=updated.progress.current,
        )
        return updated

    def set_order_phase(
        self,
        identifier: str,
        phase: str,
        progress: Optional[int] = None,
        *,
        admin_id: Optional[str] = None,
    ) -> Order:
        existing = self._find_order(identifier)
        with self._order_lock(existing.id):
            existing = self._find_order(existing.id)
            updated = set_phase(
                existing, phase, progress, updated_by=admin_id, now=self._now()
            )
            self.orders.upsert(updated.id, updated)
        self._record_admin_activity(admin_id, orders_modified=True)
        logger.info(
            "order_phase_set",
            order_id=updated.order_id,
            phase=updated.current_phase,
            progress=updated.progress.current,
        )
        return updated

    def delete_order(self, identifier: str, *, admin_id: Optional[str] = None) -> Order:
        """Soft delete: the order stays stored but is hidden from reads."""

        existing = self._find_order(identifier)
        with self._order_lock(existing.id):
            existing = self._find_order(existing.id)
            updated = replace(
                existing,
                is_active=False,
                last_updated_by=admin_id or existing.last_updated_by,
                updated_at=self._now(),
            )
            self.orders.upsert(updated.id, updated)
        self.recompute_customer_statistics(updated.customer.email)
        logger.info("order_deleted", order_id=updated.order_id)
        return updated

    def hard_delete_order(self, identifier: str, *, admin_id: Optional[str] = None) -> Order:
        existing = self._find_order(identifier, include_inactive=True)
        with self._order_lock(existing.id):
            self.orders.remove(existing.id)
        with self._locks_guard:
            self._locks.pop(existing.id, None)
        self.recompute_customer_statistics(existing.customer.email)
        self._record_admin_activity(admin_id, orders_modified=True)
        logger.info("order_hard_deleted", order_id=existing.order_id)
        return existing


__all__ = [
    "OrderService",
    "STORAGE_ID_PATTERN",
    "ORDER_ID_PATTERN",
    "is_storage_id",
    "validate_order_identifier",
]
