"""idris2-coverage error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Artifact (missing or empty compiler/profiler output)
- 4xxx: Toolchain (idris2 / test binary invocation)
- 9xxx: Internal

Parse-local noise (a malformed dump line, a broken profiler marker) never
raises; only pipeline-fatal conditions surface as these errors.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Artifact (3xxx)
    ARTIFACT_MISSING = 3001
    ARTIFACT_EMPTY = 3002
    ARTIFACT_UNREADABLE = 3003

    # Toolchain (4xxx)
    TOOLCHAIN_NOT_FOUND = 4001
    TOOLCHAIN_TIMEOUT = 4002
    TOOLCHAIN_FAILED = 4003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class CoverageError(Exception):
    """Base error with structured context for JSON output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'ARTIFACT_MISSING')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CoverageError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ArtifactError(CoverageError):
    """A required compiler or profiler artifact is missing or unusable."""

    @classmethod
    def missing(cls, kind: str, path: str) -> "ArtifactError":
        return cls(
            code=ErrorCode.ARTIFACT_MISSING,
            message=f"Missing {kind} artifact: {path}",
            details={"kind": kind, "path": path},
        )

    @classmethod
    def empty(cls, kind: str, reason: str) -> "ArtifactError":
        return cls(
            code=ErrorCode.ARTIFACT_EMPTY,
            message=f"Empty {kind} artifact: {reason}",
            details={"kind": kind, "reason": reason},
        )

    @classmethod
    def unreadable(cls, kind: str, path: str, reason: str) -> "ArtifactError":
        return cls(
            code=ErrorCode.ARTIFACT_UNREADABLE,
            message=f"Cannot read {kind} artifact {path}: {reason}",
            details={"kind": kind, "path": path, "reason": reason},
        )


class ToolchainError(CoverageError):
    """Compiler or test binary invocation failures."""

    @classmethod
    def not_found(cls, executable: str) -> "ToolchainError":
        return cls(
            code=ErrorCode.TOOLCHAIN_NOT_FOUND,
            message=f"Executable not found: {executable}",
            details={"executable": executable},
        )

    @classmethod
    def timeout(cls, command: list[str], timeout_sec: float) -> "ToolchainError":
        return cls(
            code=ErrorCode.TOOLCHAIN_TIMEOUT,
            message=f"Command timed out after {timeout_sec}s: {' '.join(command)}",
            retryable=True,
            details={"command": command, "timeout_sec": timeout_sec},
        )

    @classmethod
    def failed(cls, command: list[str], returncode: int, stderr: str) -> "ToolchainError":
        return cls(
            code=ErrorCode.TOOLCHAIN_FAILED,
            message=f"Command exited with {returncode}: {' '.join(command)}",
            details={"command": command, "returncode": returncode, "stderr": stderr},
        )


class InternalError(CoverageError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
