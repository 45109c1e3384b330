"""Mapping from the timeline cursor to the coarse order status."""

from __future__ import annotations

from .domain import STANDARD_TOTAL, OrderStatus

_STATUS_BY_CURSOR = {
    1: OrderStatus.DEVELOPMENT,
    2: OrderStatus.DEVELOPMENT,
    3: OrderStatus.IN_PROGRESS,
    4: OrderStatus.IN_PROGRESS,
    5: OrderStatus.PRODUCTION,
    6: OrderStatus.SHIPPED,
    7: OrderStatus.DELIVERED,
}

# Checked in order; the first threshold reached wins.
_PERCENTAGE_THRESHOLDS = (
    (100, OrderStatus.DELIVERED),
    (85, OrderStatus.SHIPPED),
    (70, OrderStatus.PRODUCTION),
    (30, OrderStatus.IN_PROGRESS),
)


def status_from_cursor(current: int) -> OrderStatus:
    return _STATUS_BY_CURSOR.get(current, OrderStatus.DEVELOPMENT)


def status_from_percentage(current: int, total: int) -> OrderStatus:
    percent = current / total * 100
    for threshold, status in _PERCENTAGE_THRESHOLDS:
        if percent >= threshold:
            return status
    return OrderStatus.DEVELOPMENT


def derive_status(current: int, total: int) -> OrderStatus:
    """Use the exact lookup for standard orders, percentages otherwise."""

    if total == STANDARD_TOTAL:
        return status_from_cursor(current)
    return status_from_percentage(current, total)


__all__ = ["status_from_cursor", "status_from_percentage", "derive_status"]
