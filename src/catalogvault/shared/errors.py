"""CatalogVault Error Handling Module

This module defines the error handling system for CatalogVault, providing
structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]


class ErrorCode(str, Enum):
    """Error codes for CatalogVault.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # Upstream Errors
    UPSTREAM_REQUEST_FAILED = "UPSTREAM_REQUEST_FAILED"
    UPSTREAM_HTTP_ERROR = "UPSTREAM_HTTP_ERROR"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    UPSTREAM_INVALID_RESPONSE = "UPSTREAM_INVALID_RESPONSE"

    # Cache Errors
    CACHE_ERROR = "CACHE_ERROR"
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"
    CACHE_INIT_FAILED = "CACHE_INIT_FAILED"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_CATALOG_ID = "INVALID_CATALOG_ID"
    INVALID_DISCOVERY_QUERY = "INVALID_DISCOVERY_QUERY"
    INVALID_CONFIG = "INVALID_CONFIG"

    # Aggregation Errors
    AGGREGATION_FAILED = "AGGREGATION_FAILED"

    # Rate Limiting and Concurrency Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    SCHEDULER_CLOSED = "SCHEDULER_CLOSED"

    # CLI Errors
    CLI_COMMAND_FAILED = "CLI_COMMAND_FAILED"
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types. None values are dropped.

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if val is None:
            continue
        if isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are kept in additional_data
    so the context can always be serialized into a log record.

    Attributes:
        operation: Optional operation name that caused the error
        additional_data: Optional dict with primitive values only
    """

    operation: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        """Coerce additional_data to primitives."""
        if self.additional_data is not None:
            coerced = _coerce_primitives(self.additional_data)
            object.__setattr__(self, "additional_data", coerced)

    def safe_dict(self) -> dict[str, Any]:
        """Export context as dict with a guaranteed additional_data key."""
        data: dict[str, Any] = {}
        if self.operation is not None:
            data["operation"] = self.operation
        data["additional_data"] = dict(self.additional_data or {})
        return data


class CatalogVaultError(Exception):
    """Base exception class for all CatalogVault errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class InfrastructureError(CatalogVaultError):
    """Errors raised when talking to external systems (HTTP, SQLite)."""


class UpstreamError(InfrastructureError):
    """Network or HTTP failure from a provider call.

    Surfaced to the immediate caller of the fetch. The scheduler never
    retries these.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(code, message, context, original_error)
        self.status_code = status_code
        self.url = url


class CacheLookupError(InfrastructureError):
    """Storage-layer failure during resolution or read.

    Callers treat it as a cache miss.
    """


class ApplicationError(CatalogVaultError):
    """Application-level errors (configuration, command handling)."""


class ConfigurationError(ApplicationError):
    """Malformed discovery query or invalid settings.

    Rejected before anything is sent upstream.
    """


class AggregationError(CatalogVaultError):
    """One region of a fan-out failed, so the whole aggregate failed."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        region: str | None = None,
    ) -> None:
        super().__init__(code, message, context, original_error)
        self.region = region


class CliError(ApplicationError):
    """CLI-specific error carrying the process exit code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        command: str | None = None,
        exit_code: int = 1,
    ) -> None:
        super().__init__(code, message, context, original_error)
        self.command = command
        self.exit_code = exit_code


def create_upstream_error(
    message: str,
    url: str | None = None,
    status_code: int | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> UpstreamError:
    """Create an upstream error with context."""
    code = (
        ErrorCode.UPSTREAM_HTTP_ERROR
        if status_code is not None
        else ErrorCode.UPSTREAM_REQUEST_FAILED
    )
    context = ErrorContext(
        operation=operation,
        additional_data={"url": url, "status_code": status_code},
    )
    return UpstreamError(
        code,
        message,
        context,
        original_error,
        status_code=status_code,
        url=url,
    )


def create_configuration_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
    code: ErrorCode = ErrorCode.INVALID_DISCOVERY_QUERY,
) -> ConfigurationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"field": field} if field else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ConfigurationError(code, message, context, original_error)


def create_cli_error(
    message: str,
    command: str | None = None,
    original_error: Exception | None = None,
    exit_code: int = 1,
) -> CliError:
    """Create a CLI error with context."""
    context = ErrorContext(
        operation="cli",
        additional_data={"command": command},
    )
    return CliError(
        ErrorCode.CLI_UNEXPECTED_ERROR,
        message,
        context,
        original_error,
        command,
        exit_code,
    )
