"""
JSON Output Formatter for CatalogVault CLI

Machine-readable envelope shared by every command when ``--json`` is used.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson


def format_json_output(
    success: bool,
    command: str,
    data: Any | None = None,
    errors: list[str] | None = None,
    warnings: list[str] | None = None,
) -> bytes:
    """
    Format command output as JSON.

    Args:
        success: Whether the command executed successfully
        command: The command name (e.g., "discover", "cache-info")
        data: The command's output data
        errors: List of error messages
        warnings: List of warning messages

    Returns:
        JSON-encoded bytes ready for output

    Example:
        >>> output = format_json_output(
        ...     success=True,
        ...     command="cache-info",
        ...     data={"total_entries": 10, "valid_entries": 8}
        ... )
    """
    if errors is None:
        errors = []
    if warnings is None:
        warnings = []

    if errors:
        success = False

    json_data = {
        "success": success,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "command": command,
        "data": data,
        "errors": errors,
        "warnings": warnings,
    }

    return orjson.dumps(
        json_data,
        default=str,
        option=orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2,
    )
