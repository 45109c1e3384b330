"""Settings for the order tracker service.

Priority chain (highest to lowest):
  1. Init kwargs  -- passed by ``create_app`` or tests
  2. Env vars     -- ``ORDER_TRACKER_*`` prefix
  3. Code defaults
"""

from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class TrackerSettings(BaseSettings):
    """Frozen configuration object shared by the service and web layer.

    Attributes:
        database_path: SQLite file backing the order store.
        seed_demo_data: Insert demo orders into an empty store on start-up.
        order_id_max_attempts: Bound on the generate-and-check loop used to
            allocate a free ``ORD-YYYY-NNN`` identifier.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ORDER_TRACKER_",
    }

    database_path: str = "orders.sqlite3"
    seed_demo_data: bool = True
    verbose: bool = False
    log_json: bool = False
    order_id_max_attempts: int = Field(default=1000, ge=1)
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:3001",
        ]
    )
    default_admin_email: str = "admin@example.com"
    default_admin_name: str = "System Administrator"


__all__ = ["TrackerSettings"]
