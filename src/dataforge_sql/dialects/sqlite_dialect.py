"""
SQLite Dialect - SQLite specific SQL
"""

from typing import Any, Dict, Optional, Tuple
import sqlite3

from .base import DatabaseDialect
from ..client import DbApiClient
from ..exceptions import DatabaseConnectionError
from ..settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


class SQLiteDialect(DatabaseDialect):
    """SQLite dialect implementation."""

    name = "sqlite"
    column_name_key = "name"
    supports_last_insert_id = True

    def _render_limit(self, count: int, offset: Optional[int]) -> str:
        if offset is None:
            return f" LIMIT {count}"
        return f" LIMIT {count} OFFSET {offset}"

    def columns_sql(self, table: str) -> Tuple[str, Dict[str, Any]]:
        return f"PRAGMA table_info({self.quote_identifier(table)})", {}

    def tables_sql(self) -> str:
        return (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )

    def connect(self, settings: ConnectionSettings) -> DbApiClient:
        try:
            connection = sqlite3.connect(settings.database or ":memory:")
        except sqlite3.Error as e:
            raise DatabaseConnectionError(str(e)) from e

        logger.info(f"Connected to SQLite database {settings.database or ':memory:'}")
        return self._client(connection, sqlite3.paramstyle)
