"""Exception hierarchy shared by the order tracking services and web layer."""

from __future__ import annotations

from typing import Tuple


class OrderTrackerError(Exception):
    """Base class for every error surfaced to API callers."""

    kind = "OrderTrackerError"
    http_status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind

    def as_problem(self) -> Tuple[str, int, str]:
        return self.kind, self.http_status, self.message


class ValidationError(OrderTrackerError):
    """Malformed input rejected before any lifecycle rule runs."""

    kind = "ValidationError"
    http_status = 400


class NotFoundError(OrderTrackerError):
    """No record matches the given identifier."""

    kind = "NotFound"
    http_status = 404


class TerminalStateError(OrderTrackerError):
    """The order is already at its final phase."""

    kind = "TerminalStateError"
    http_status = 400


class InvalidPhaseError(OrderTrackerError):
    """The requested phase is not one of the order's timeline steps."""

    kind = "InvalidPhaseError"
    http_status = 400


class PersistenceError(OrderTrackerError):
    """The backing store is unavailable or refused the write."""

    kind = "PersistenceError"
    http_status = 503


__all__ = [
    "OrderTrackerError",
    "ValidationError",
    "NotFoundError",
    "TerminalStateError",
    "InvalidPhaseError",
    "PersistenceError",
]
