"""SQLite cache transaction module."""

from catalogvault.services.sqlite_cache.transaction.manager import TransactionManager

__all__ = ["TransactionManager"]
