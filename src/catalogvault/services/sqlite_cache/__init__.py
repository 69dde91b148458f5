"""SQLite cache module with modular operations.

Separate classes handle query, insert, update, migration and transaction
concerns; SQLiteCacheDB is the facade used by the rest of the package.
"""

from catalogvault.services.sqlite_cache.cache_db import SQLiteCacheDB

__all__ = ["SQLiteCacheDB"]
