"""Core module exports."""

from idriscov.core.errors import (
    ArtifactError,
    ConfigError,
    CoverageError,
    ErrorCode,
    InternalError,
    ToolchainError,
)
from idriscov.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from idriscov.core.progress import spinner, status

__all__ = [
    # Errors
    "ArtifactError",
    "ConfigError",
    "CoverageError",
    "ErrorCode",
    "InternalError",
    "ToolchainError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Progress
    "spinner",
    "status",
]
