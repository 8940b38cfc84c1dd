"""
MySQL Dialect - MySQL/MariaDB specific SQL
"""

from typing import Any, Dict, Optional, Tuple

from .base import DatabaseDialect, JoinSpec
from ..client import DbApiClient
from ..constants import CONNECTION_TIMEOUT_S
from ..exceptions import DatabaseConnectionError
from ..settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


class MySQLDialect(DatabaseDialect):
    """MySQL/MariaDB dialect implementation."""

    name = "mysql"
    column_name_key = "Field"
    supports_last_insert_id = True
    default_port = 3306
    quote_char = "`"

    def _render_limit(self, count: int, offset: Optional[int]) -> str:
        if offset is None:
            return f" LIMIT {count}"
        return f" LIMIT {offset}, {count}"

    def columns_sql(self, table: str) -> Tuple[str, Dict[str, Any]]:
        return f"SHOW COLUMNS FROM {self.quote_identifier(table)}", {}

    def tables_sql(self) -> str:
        return "SHOW FULL TABLES WHERE Table_Type != 'VIEW'"

    def _join_delete_sql(self, table: str, join: JoinSpec, where_sql: str) -> str:
        # Multi-table DELETE keeps the join verbatim
        return f"DELETE {join.left_table} FROM {table}{where_sql}"

    def connect(self, settings: ConnectionSettings) -> DbApiClient:
        try:
            import pymysql
        except ImportError as e:
            raise DatabaseConnectionError(
                "PyMySQL is not installed. Install with: pip install dataforge-sql[mysql]"
            ) from e

        try:
            connection = pymysql.connect(
                host=settings.host,
                port=settings.port or self.default_port,
                user=settings.user,
                password=settings.password,
                database=settings.database,
                charset=settings.charset or "utf8mb4",
                connect_timeout=CONNECTION_TIMEOUT_S,
            )
        except Exception as e:
            raise DatabaseConnectionError(str(e)) from e

        logger.info(f"Connected to MySQL database {settings.database} on {settings.host}")
        return self._client(connection, pymysql.paramstyle)
