"""Transaction manager for SQLite cache.

The connection runs in auto-commit mode, so every statement is its own
transaction unless a multi-row update is wrapped here.
"""

from __future__ import annotations

import logging
import types
from typing import TYPE_CHECKING

from typing_extensions import Self

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)


class TransactionManager:
    """All-or-nothing wrapper around a group of statements."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def __enter__(self) -> Self:
        self.begin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def begin(self) -> None:
        self.conn.execute("BEGIN")

    def commit(self) -> None:
        self.conn.execute("COMMIT")

    def rollback(self) -> None:
        logger.debug("Rolling back transaction")
        self.conn.execute("ROLLBACK")
