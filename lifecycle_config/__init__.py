"""
lifecycle_config -- single public entrypoint for workflow configuration.

Responsibility:
    ``get_active_config()`` returns a validated WorkflowConfigurationSet
    from the ``sets/`` directory; ``get_settings()`` returns the runtime
    settings and is the only reader of environment variables.

Architecture position:
    Configuration.  Sits above ``lifecycle_kernel`` and below
    ``lifecycle_services``.  The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with that id.
    - ``ValueError`` -- validation failures, all listed in the message.
"""

from __future__ import annotations

from pathlib import Path

from lifecycle_config.loader import load_configuration
from lifecycle_config.schema import WorkflowConfigurationSet
from lifecycle_config.seeder import SeedReport, seed_configuration
from lifecycle_config.settings import LifecycleSettings, get_settings
from lifecycle_config.validator import ConfigValidationResult, validate_configuration
from lifecycle_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DEFAULT_CONFIG_ID = "marketplace"


def get_active_config(
    config_id: str = DEFAULT_CONFIG_ID,
    config_dir: Path | None = None,
) -> WorkflowConfigurationSet:
    """Load and validate the configuration set ``<config_dir>/<config_id>.yaml``."""
    path = (config_dir or _DEFAULT_CONFIG_DIR) / f"{config_id}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_configuration(path)
    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"config_id": config.config_id, "detail": warning})

    _logger.info(
        "LIFECYCLE_CONFIG_TRACE",
        extra={
            "trace_type": "LIFECYCLE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "template_count": len(config.templates),
            "transition_count": len(config.decision_map()),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_ID",
    "ConfigValidationResult",
    "LifecycleSettings",
    "SeedReport",
    "WorkflowConfigurationSet",
    "get_active_config",
    "get_settings",
    "seed_configuration",
    "validate_configuration",
]
