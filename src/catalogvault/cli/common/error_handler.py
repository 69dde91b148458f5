"""
CLI Error Handling Utilities

Consistent error output and exit-code mapping for every CLI command.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import typer

from catalogvault.cli.json_formatter import format_json_output
from catalogvault.shared.constants import CLIDefaults
from catalogvault.shared.errors import (
    AggregationError,
    ApplicationError,
    CliError,
    ConfigurationError,
    InfrastructureError,
    create_cli_error,
)

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def handle_cli_error(
    error: BaseException,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Handle CLI errors with consistent formatting and logging.

    Args:
        error: The exception that occurred
        command: The CLI command being executed
        json_output: Whether to output JSON format

    Returns:
        Exit code for the CLI command
    """
    error_context = _create_error_context(error, command, json_output=json_output)
    cli_error = _map_error_to_cli_error(error, command, error_context)
    _log_error(error, command, cli_error, error_context)
    _output_error(cli_error, error, command, error_context, json_output=json_output)

    return cli_error.exit_code


def _create_error_context(
    error: BaseException,
    command: str,
    *,
    json_output: bool,
) -> dict[str, Any]:
    """Create structured error context for logging."""
    return {
        "command": command,
        "error_type": type(error).__name__,
        "json_output": json_output,
    }


def _map_error_to_cli_error(
    error: BaseException,
    command: str,
    error_context: dict[str, Any],
) -> CliError:
    """Map specific exception types to CLI errors."""
    if isinstance(error, CliError):
        error_context["error_code"] = error.code.value
        return error

    if isinstance(error, ConfigurationError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Configuration error: {error.message}",
            command=command,
            original_error=error,
            exit_code=CLIDefaults.EXIT_CONFIG_ERROR,
        )

    if isinstance(error, ApplicationError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Application error: {error.message}",
            command=command,
            original_error=error,
        )

    if isinstance(error, AggregationError):
        error_context["error_code"] = error.code.value
        error_context["region"] = error.region
        return create_cli_error(
            message=f"Discovery failed: {error.message}",
            command=command,
            original_error=error,
        )

    if isinstance(error, InfrastructureError):
        error_context["error_code"] = error.code.value
        return create_cli_error(
            message=f"Infrastructure error: {error.message}",
            command=command,
            original_error=error,
        )

    if isinstance(error, OSError):
        error_context["error_category"] = "file_system"
        return create_cli_error(
            message=f"File system error: {error}",
            command=command,
            original_error=error,
        )

    if isinstance(error, KeyboardInterrupt):
        error_context["interrupt_type"] = "user_interrupt"
        return create_cli_error(
            message="Command interrupted by user",
            command=command,
            exit_code=EXIT_INTERRUPTED,
        )

    error_context["error_category"] = "unexpected"
    return create_cli_error(
        message=f"Unexpected error: {error}",
        command=command,
        original_error=error if isinstance(error, Exception) else None,
    )


def _log_error(
    error: BaseException,
    command: str,
    cli_error: CliError,
    error_context: dict[str, Any],
) -> None:
    """Log the error with structured context."""
    if isinstance(error, KeyboardInterrupt):
        logger.warning(
            "Command interrupted: %s",
            cli_error.message,
            extra={"context": error_context},
        )
    elif isinstance(error, ApplicationError):
        logger.warning(
            "CLI error in %s: %s",
            command,
            cli_error.message,
            extra={"context": error_context},
        )
    else:
        logger.error(
            "CLI error in %s: %s",
            command,
            cli_error.message,
            exc_info=error,
            extra={"context": error_context},
        )


def _output_error(
    cli_error: CliError,
    error: BaseException,
    command: str,
    error_context: dict[str, Any],
    *,
    json_output: bool,
) -> None:
    """Output error message in appropriate format."""
    if not json_output:
        sys.stderr.write(f"Error: {cli_error.message}\n")
        return

    error_output = format_json_output(
        success=False,
        command=command,
        errors=[cli_error.message],
        data={
            "error_code": cli_error.code.value,
            "error_type": type(error).__name__,
            "exit_code": cli_error.exit_code,
            "context": error_context,
        },
    )
    typer.echo(error_output.decode("utf-8"))
