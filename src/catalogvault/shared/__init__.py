"""CatalogVault Shared Module.

This package contains constants, error handling and logging helpers used
across CatalogVault.
"""

__all__ = ["constants", "errors", "logging"]
