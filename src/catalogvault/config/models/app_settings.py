"""Application, logging and discovery configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from catalogvault.shared.constants import CLIDefaults


class AppSettings(BaseModel):
    """Application configuration."""

    name: str = Field(default="CatalogVault", description="Application name")
    version: str = Field(default=CLIDefaults.VERSION, description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Optional JSON log file path")
    use_rich_console: bool = Field(
        default=True,
        description="Render console logs with Rich (JSON lines otherwise)",
    )

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {value}"
            raise ValueError(msg)
        return level


class DiscoverySettings(BaseModel):
    """Defaults applied to discovery requests."""

    default_language: str = Field(default="en-US", description="Fallback language")
    default_regions: list[str] = Field(
        default_factory=list,
        description="Regions used when a request names none",
    )


__all__ = [
    "AppSettings",
    "DiscoverySettings",
    "LoggingSettings",
]
