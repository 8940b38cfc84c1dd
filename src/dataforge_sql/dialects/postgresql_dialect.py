"""
PostgreSQL Dialect - PostgreSQL specific SQL
"""

from typing import Any, Dict, Optional, Tuple

from .base import DatabaseDialect, JoinSpec, fold_where
from ..client import DbApiClient
from ..constants import CONNECTION_TIMEOUT_S
from ..exceptions import DatabaseConnectionError
from ..settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


class PostgreSQLDialect(DatabaseDialect):
    """PostgreSQL dialect implementation."""

    name = "pgsql"
    column_name_key = "column_name"
    supports_last_insert_id = False
    default_port = 5432

    def _render_limit(self, count: int, offset: Optional[int]) -> str:
        if offset is None:
            return f" LIMIT {count}"
        return f" LIMIT {count} OFFSET {offset}"

    def columns_sql(self, table: str) -> Tuple[str, Dict[str, Any]]:
        sql = """
            SELECT *
            FROM information_schema.columns
            WHERE table_name = :table_name
            ORDER BY ordinal_position
        """
        return sql, {"table_name": table.strip()}

    def tables_sql(self) -> str:
        return """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_type = 'BASE TABLE'
              AND table_schema NOT IN ('pg_catalog', 'information_schema')
        """

    def _join_delete_sql(self, table: str, join: JoinSpec, where_sql: str) -> str:
        return (
            f"DELETE FROM {join.left_table} USING {join.right_table} "
            f"WHERE {join.condition}{fold_where(where_sql)}"
        )

    def connect(self, settings: ConnectionSettings) -> DbApiClient:
        try:
            import psycopg2
        except ImportError as e:
            raise DatabaseConnectionError(
                "psycopg2 is not installed. Install with: pip install dataforge-sql[postgresql]"
            ) from e

        try:
            connection = psycopg2.connect(
                host=settings.host,
                port=settings.port or self.default_port,
                user=settings.user,
                password=settings.password,
                dbname=settings.database,
                connect_timeout=CONNECTION_TIMEOUT_S,
            )
            if settings.charset:
                connection.set_client_encoding(settings.charset)
        except Exception as e:
            raise DatabaseConnectionError(str(e)) from e

        logger.info(f"Connected to PostgreSQL database {settings.database} on {settings.host}")
        return self._client(connection, psycopg2.paramstyle)
