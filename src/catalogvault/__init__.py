"""
CatalogVault - Cursor-paginated discovery catalogs

Aggregates page-based third-party catalog data behind a skip cursor while
respecting per-upstream rate limits and keeping a persistent page cache.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
