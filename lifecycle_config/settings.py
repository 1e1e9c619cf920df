"""
Runtime settings (``lifecycle_config.settings``).

``get_settings()`` is the only place that reads environment variables:

* ``LIFECYCLE_DATABASE_URL``         -- SQLAlchemy URL (default: in-memory SQLite)
* ``LIFECYCLE_ENFORCE_STATE_ACCESS`` -- reject decisions from actors without
  access to the current state (default: off)
* ``LIFECYCLE_LOG_LEVEL``            -- logging level name (default: INFO)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///:memory:"

_TRUE = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class LifecycleSettings:
    database_url: str = DEFAULT_DATABASE_URL
    enforce_state_access: bool = False
    log_level: str = "INFO"

    @property
    def log_level_number(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


def get_settings(environ: Mapping[str, str] | None = None) -> LifecycleSettings:
    """Build settings from ``environ`` (``os.environ`` by default)."""
    env = os.environ if environ is None else environ
    return LifecycleSettings(
        database_url=env.get("LIFECYCLE_DATABASE_URL", DEFAULT_DATABASE_URL),
        enforce_state_access=env.get("LIFECYCLE_ENFORCE_STATE_ACCESS", "").strip().lower() in _TRUE,
        log_level=env.get("LIFECYCLE_LOG_LEVEL", "INFO"),
    )
