"""Order lifecycle: the three mutation paths over an order's timeline.

* Creation is cursor-driven: a cursor is taken from the caller or guessed
  from a human status, and the timeline is generated to match it.
* Bulk update is timeline-driven: the cursor is derived from the supplied
  step states, then the timeline is swept so a single step is active.
* Advance and set-phase move the cursor directly and re-derive status
  from the exact lookup table.

Explicit caller fields always win over derived ones. All functions return
new objects and never modify the order or payload they are given.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, TypeVar

from .domain import (
    DEFAULT_PHASE,
    STANDARD_TOTAL,
    CustomerInfo,
    Order,
    OrderPriority,
    OrderStatus,
    ProductInfo,
    Progress,
    ShippingInfo,
    ShippingMethod,
    StepStatus,
    TimelineStep,
    format_step_date,
)
from .errors import InvalidPhaseError, TerminalStateError, ValidationError
from .status import derive_status, status_from_percentage
from .timeline import (
    StepInput,
    build_default_timeline,
    clamp,
    enforce_single_active_step,
    find_phase_index,
    normalize_provided_timeline,
    phase_title_at,
    recompute_progress_from_flags,
    resolve_initial_progress,
)

T = TypeVar("T")


# ----------------------------------------------------------------------
# Caller payloads
# ----------------------------------------------------------------------
@dataclass(slots=True)
class ProgressInput:
    current: Optional[int] = None
    total: Optional[int] = None


@dataclass(slots=True)
class OrderDraft:
    """Everything a caller may supply when creating an order."""

    customer: CustomerInfo
    product: ProductInfo
    shipping: ShippingInfo
    order_id: Optional[str] = None
    status: Optional[OrderStatus] = None
    current_phase: Optional[str] = None
    progress: Optional[ProgressInput] = None
    priority: OrderPriority = OrderPriority.MEDIUM
    timeline: Optional[List[StepInput]] = None
    estimated_duration: str = ""
    notes: str = ""
    order_date: Optional[datetime] = None


@dataclass(slots=True)
class CustomerPatch:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    customer_id: Optional[str] = None


@dataclass(slots=True)
class ProductPatch:
    name: Optional[str] = None
    quantity: Optional[str] = None
    value: Optional[str] = None
    description: Optional[str] = None


@dataclass(slots=True)
class ShippingPatch:
    destination: Optional[str] = None
    method: Optional[ShippingMethod] = None
    carrier: Optional[str] = None
    estimated_arrival: Optional[str] = None


@dataclass(slots=True)
class OrderPatch:
    """Partial update; ``None`` means "leave unchanged"."""

    customer: Optional[CustomerPatch] = None
    product: Optional[ProductPatch] = None
    shipping: Optional[ShippingPatch] = None
    status: Optional[OrderStatus] = None
    current_phase: Optional[str] = None
    progress: Optional[ProgressInput] = None
    priority: Optional[OrderPriority] = None
    timeline: Optional[List[StepInput]] = None
    estimated_duration: Optional[str] = None
    notes: Optional[str] = None


@dataclass(slots=True)
class OrderChanges:
    """Fully resolved field values to write onto an order."""

    customer: Optional[CustomerInfo] = None
    product: Optional[ProductInfo] = None
    shipping: Optional[ShippingInfo] = None
    status: Optional[OrderStatus] = None
    current_phase: Optional[str] = None
    progress: Optional[Progress] = None
    priority: Optional[OrderPriority] = None
    timeline: Optional[List[TimelineStep]] = None
    estimated_duration: Optional[str] = None
    notes: Optional[str] = None


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------
def _make_progress(current: int, total: int) -> Progress:
    try:
        return Progress(current=current, total=total)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _overlay(target: T, patch: Any) -> T:
    """Copy ``target`` with every non-None field of ``patch`` applied."""

    values = {
        item.name: getattr(patch, item.name)
        for item in fields(patch)
        if getattr(patch, item.name) is not None
    }
    return replace(target, **values)


def _copy_order(order: Order) -> Order:
    return replace(
        order,
        customer=replace(order.customer),
        product=replace(order.product),
        shipping=replace(order.shipping),
        progress=replace(order.progress),
        timeline=[replace(step) for step in order.timeline],
    )


def _step_at(timeline: Sequence[TimelineStep], cursor: int) -> Optional[TimelineStep]:
    index = cursor - 1
    if 0 <= index < len(timeline):
        return timeline[index]
    return None


def _ensure_not_cancelled(order: Order) -> None:
    if order.status is OrderStatus.CANCELLED:
        raise TerminalStateError(f"Order {order.order_id} is cancelled")


# ----------------------------------------------------------------------
# Creation
# ----------------------------------------------------------------------
def create_order(
    draft: OrderDraft,
    *,
    id: str,
    order_id: str,
    created_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """Build a consistent new order from a creation payload."""

    now = now or datetime.utcnow()
    supplied = draft.progress or ProgressInput()
    if not draft.timeline:
        current = supplied.current
        if not current or current == 1:
            status_text = draft.status.value if draft.status is not None else None
            current = resolve_initial_progress(status_text)
        progress = _make_progress(current, STANDARD_TOTAL)
        timeline = build_default_timeline(progress.current - 1)
    else:
        progress = _make_progress(
            supplied.current if supplied.current is not None else 1,
            supplied.total or STANDARD_TOTAL,
        )
        # Supplied step states are kept as given; only shape is normalized.
        timeline = normalize_provided_timeline(draft.timeline)

    current_phase = draft.current_phase or phase_title_at(timeline, max(progress.current, 1))
    status = draft.status or derive_status(progress.current, progress.total)
    return Order(
        id=id,
        order_id=order_id,
        customer=replace(draft.customer),
        product=replace(draft.product),
        shipping=replace(draft.shipping),
        status=status,
        current_phase=current_phase or DEFAULT_PHASE,
        progress=progress,
        priority=draft.priority,
        timeline=timeline,
        order_date=draft.order_date or now,
        estimated_duration=draft.estimated_duration,
        notes=draft.notes,
        created_by=created_by,
        last_updated_by=created_by,
        created_at=now,
        updated_at=now,
    )


# ----------------------------------------------------------------------
# Bulk update
# ----------------------------------------------------------------------
def resolve_update(order: Order, patch: OrderPatch) -> OrderChanges:
    """Derive timeline, then progress, then status for the fields not given."""

    changes = OrderChanges(
        customer=_overlay(order.customer, patch.customer) if patch.customer is not None else None,
        product=_overlay(order.product, patch.product) if patch.product is not None else None,
        shipping=_overlay(order.shipping, patch.shipping) if patch.shipping is not None else None,
        status=patch.status,
        current_phase=patch.current_phase,
        priority=patch.priority,
        estimated_duration=patch.estimated_duration,
        notes=patch.notes,
    )

    progress: Optional[Progress] = None
    if patch.timeline is not None:
        # The timeline owns the cursor; any progress sent alongside it is ignored.
        normalized = normalize_provided_timeline(patch.timeline)
        current = clamp(recompute_progress_from_flags(normalized), 1, STANDARD_TOTAL)
        progress = Progress(current=current, total=STANDARD_TOTAL)
        changes.timeline = enforce_single_active_step(normalized, current)
        changes.current_phase = phase_title_at(changes.timeline, current) or DEFAULT_PHASE
    elif patch.progress is not None:
        progress = _make_progress(
            patch.progress.current
            if patch.progress.current is not None
            else order.progress.current,
            patch.progress.total or order.progress.total,
        )
        changes.timeline = enforce_single_active_step(order.timeline, progress.current)
        if patch.current_phase is None:
            changes.current_phase = (
                phase_title_at(changes.timeline, progress.current) or DEFAULT_PHASE
            )

    changes.progress = progress
    if progress is not None and patch.status is None:
        changes.status = status_from_percentage(progress.current, progress.total)
    return changes


def merge_patch(
    order: Order,
    changes: OrderChanges,
    *,
    updated_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    updated = _overlay(_copy_order(order), changes)
    updated.updated_at = now or datetime.utcnow()
    if updated_by is not None:
        updated.last_updated_by = updated_by
    return updated


def apply_update(
    order: Order,
    patch: OrderPatch,
    *,
    updated_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    return merge_patch(order, resolve_update(order, patch), updated_by=updated_by, now=now)


# ----------------------------------------------------------------------
# Phase transitions
# ----------------------------------------------------------------------
def advance_phase(
    order: Order,
    *,
    today: Optional[date] = None,
    updated_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """Complete the active step and start the next one."""

    _ensure_not_cancelled(order)
    if order.progress.current >= order.progress.total:
        raise TerminalStateError(f"Order {order.order_id} is already at the final phase")

    stamp = format_step_date(today or date.today())
    updated = _copy_order(order)
    current = updated.progress.current

    finished = _step_at(updated.timeline, current)
    if finished is not None:
        finished.status = StepStatus.COMPLETED
        finished.finish_date = stamp

    current += 1
    updated.progress = Progress(current=current, total=updated.progress.total)
    started = _step_at(updated.timeline, current)
    if started is not None:
        started.status = StepStatus.IN_PROGRESS
        started.start_date = stamp
        updated.current_phase = started.title

    updated.status = derive_status(current, updated.progress.total)
    updated.updated_at = now or datetime.utcnow()
    if updated_by is not None:
        updated.last_updated_by = updated_by
    return updated


def set_phase(
    order: Order,
    target_title: str,
    explicit_progress: Optional[int] = None,
    *,
    updated_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """Jump to the named phase, optionally with an explicit cursor."""

    _ensure_not_cancelled(order)
    index = find_phase_index(order.timeline, target_title)
    if index == -1:
        raise InvalidPhaseError(f"Invalid phase specified: {target_title!r}")

    total = order.progress.total
    if explicit_progress is not None:
        cursor = clamp(explicit_progress, 0, total)
    else:
        cursor = index + 1

    updated = _copy_order(order)
    updated.progress = Progress(current=cursor, total=total)
    updated.timeline = enforce_single_active_step(updated.timeline, cursor)
    updated.current_phase = target_title
    updated.status = derive_status(cursor, total)
    updated.updated_at = now or datetime.utcnow()
    if updated_by is not None:
        updated.last_updated_by = updated_by
    return updated


__all__ = [
    "ProgressInput",
    "OrderDraft",
    "CustomerPatch",
    "ProductPatch",
    "ShippingPatch",
    "OrderPatch",
    "OrderChanges",
    "create_order",
    "resolve_update",
    "merge_patch",
    "apply_update",
    "advance_phase",
    "set_phase",
]
