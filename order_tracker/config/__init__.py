"""Runtime configuration and logging setup."""

from .logging import configure_logging
from .settings import TrackerSettings

__all__ = ["TrackerSettings", "configure_logging"]
