"""
Oracle Dialect - Oracle specific SQL
"""

from typing import Any, Dict, List, Optional, Tuple

from .base import DatabaseDialect
from .odbc import build_connection_string, connect_odbc
from ..client import DbApiClient
from ..settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


class OracleDialect(DatabaseDialect):
    """Oracle dialect implementation (12c+ row limiting)."""

    name = "oci"
    column_name_key = "COLUMN_NAME"
    supports_last_insert_id = False
    default_port = 1521
    odbc_driver = "Oracle ODBC Driver"

    def _render_limit(self, count: int, offset: Optional[int]) -> str:
        if offset is None:
            return f" FETCH NEXT {count} ROWS ONLY"
        return f" OFFSET {offset} ROWS FETCH NEXT {count} ROWS ONLY"

    def columns_sql(self, table: str) -> Tuple[str, Dict[str, Any]]:
        sql = """
            SELECT *
            FROM USER_TAB_COLUMNS
            WHERE TABLE_NAME = :table_name
            ORDER BY COLUMN_ID
        """
        return sql, {"table_name": table.strip().upper()}

    def tables_sql(self) -> str:
        return "SELECT table_name FROM user_tables ORDER BY table_name"

    def session_setup_sql(self) -> List[str]:
        return ["ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD'"]

    def connect(self, settings: ConnectionSettings) -> DbApiClient:
        conn_str = build_connection_string({
            "DRIVER": f"{{{settings.odbc_driver or self.odbc_driver}}}",
            "DBQ": f"{settings.host}:{settings.port or self.default_port}/{settings.database}",
            "UID": settings.user,
            "PWD": settings.password,
        })
        connection = connect_odbc(conn_str)
        logger.info(f"Connected to Oracle service {settings.database} on {settings.host}")
        return self._client(connection, "qmark")
