"""Config module exports."""

from idriscov.config.loader import CoverageSettings, load_config
from idriscov.config.models import (
    AnalysisConfig,
    CoverageConfig,
    ExclusionsConfig,
    LoggingConfig,
    LogOutputConfig,
    ToolchainConfig,
)

__all__ = [
    "load_config",
    "AnalysisConfig",
    "CoverageConfig",
    "CoverageSettings",
    "ExclusionsConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "ToolchainConfig",
]
