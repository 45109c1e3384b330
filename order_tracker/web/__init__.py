"""Web interface for the order tracker."""

from .app import create_app

__all__ = ["create_app"]
