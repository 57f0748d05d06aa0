"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (IDRISCOV__SECTION__KEY)
3. Project YAML (.idris2-cov.yaml)
4. Global YAML (~/.config/idris2-cov/config.yaml)
5. Built-in defaults (this file)

Examples:
    IDRISCOV__LOGGING__LEVEL=DEBUG
    IDRISCOV__TOOLCHAIN__BUILD_TIMEOUT_SEC=600
    IDRISCOV__ANALYSIS__MANGLING=namespace-join
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ManglingKey = Literal["uniform", "namespace-join"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        IDRISCOV__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. DEBUG reports every skipped dump line and marker.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ToolchainConfig(BaseModel):
    """External compiler and test-binary invocation.

    Env vars:
        IDRISCOV__TOOLCHAIN__IDRIS2: idris2 executable (default: idris2)
        IDRISCOV__TOOLCHAIN__BUILD_TIMEOUT_SEC: --dumpcases build timeout
        IDRISCOV__TOOLCHAIN__RUN_TIMEOUT_SEC: profiled test run timeout
    """

    idris2: str = Field(default="idris2", description="idris2 executable name or path.")
    build_timeout_sec: float = Field(
        default=300.0,
        description="Timeout for `idris2 --dumpcases ... --build`. Large packages are slow.",
    )
    run_timeout_sec: float = Field(
        default=120.0,
        description="Timeout for each profiled test binary run.",
    )

    @field_validator("build_timeout_sec", "run_timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class AnalysisConfig(BaseModel):
    """Coverage analysis knobs.

    Env vars:
        IDRISCOV__ANALYSIS__MANGLING: uniform | namespace-join
        IDRISCOV__ANALYSIS__MAX_WORKERS: parallel per-run matching
        IDRISCOV__ANALYSIS__TOP: number of high-impact targets reported
    """

    mangling: ManglingKey = Field(
        default="uniform",
        description="Runtime identifier encoding used to locate definitions.",
    )
    max_workers: int = Field(default=4, ge=1, description="Worker threads for per-run matching.")
    top: int = Field(default=20, ge=0, description="High-impact targets to report.")


class ExclusionsConfig(BaseModel):
    """Names hidden from the high-impact target list.

    Exclusions never change the coverage numbers, only which functions are
    suggested as test targets.
    """

    use_defaults: bool = Field(
        default=True,
        description="Include built-in stdlib and compiler-generated patterns.",
    )
    patterns: list[str] = Field(
        default_factory=list,
        description="Extra patterns; a trailing '*' makes a prefix match.",
    )
    files: list[str] = Field(
        default_factory=list,
        description="Pattern files (one pattern per line, '#' comments).",
    )
    directory: str | None = Field(
        default=None,
        description="Directory holding base.txt and <idris2 version>.txt pattern files.",
    )
    idris2_version: str | None = Field(
        default=None,
        description="Version file to load from directory; queried from idris2 when unset.",
    )


class CoverageConfig(BaseModel):
    """Root configuration model (for type hints; loader builds the settings class)."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    exclusions: ExclusionsConfig = Field(default_factory=ExclusionsConfig)
