"""SQLite cache operations module.

This module provides separate operation classes for querying, inserting,
and updating cache data.
"""

from catalogvault.services.sqlite_cache.operations.insert import InsertOperations
from catalogvault.services.sqlite_cache.operations.query import QueryOperations
from catalogvault.services.sqlite_cache.operations.update import UpdateOperations

__all__ = ["InsertOperations", "QueryOperations", "UpdateOperations"]
