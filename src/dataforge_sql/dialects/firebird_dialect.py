"""
Firebird Dialect - Firebird specific SQL

Firebird limits rows with ``FIRST n SKIP m`` placed right after SELECT,
and its catalog lives in the RDB$ system tables.
"""

from typing import Any, Dict, Optional, Tuple

from .base import DatabaseDialect
from .odbc import build_connection_string, connect_odbc
from ..client import DbApiClient
from ..settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


class FirebirdDialect(DatabaseDialect):
    """Firebird dialect implementation."""

    name = "firebird"
    column_name_key = "FIELD_NAME"
    supports_last_insert_id = False
    limit_position = "prefix"
    column_case = "upper"
    default_port = 3050
    odbc_driver = "Firebird/InterBase(r) driver"

    def _render_limit(self, count: int, offset: Optional[int]) -> str:
        if offset is None:
            return f"FIRST {count} "
        return f"FIRST {count} SKIP {offset} "

    def columns_sql(self, table: str) -> Tuple[str, Dict[str, Any]]:
        sql = """
            SELECT
                TRIM(R.RDB$FIELD_NAME) AS FIELD_NAME,
                TRIM(R.RDB$DEFAULT_VALUE) AS DEFAULT_VALUE,
                TRIM(R.RDB$NULL_FLAG) AS NULL_FLAG,
                TRIM(F.RDB$FIELD_LENGTH) AS FIELD_LENGTH,
                TRIM(F.RDB$FIELD_PRECISION) AS FIELD_PRECISION,
                TRIM(F.RDB$FIELD_SCALE) AS FIELD_SCALE,
                TRIM(CASE F.RDB$FIELD_TYPE
                    WHEN 7 THEN 'SMALLINT'
                    WHEN 8 THEN 'INTEGER'
                    WHEN 10 THEN 'FLOAT'
                    WHEN 12 THEN 'DATE'
                    WHEN 13 THEN 'TIME'
                    WHEN 14 THEN 'CHAR'
                    WHEN 16 THEN 'BIGINT'
                    WHEN 27 THEN 'DOUBLE'
                    WHEN 35 THEN 'TIMESTAMP'
                    WHEN 37 THEN 'VARCHAR'
                    WHEN 261 THEN 'BLOB'
                    ELSE 'UNKNOWN'
                END) AS FIELD_TYPE
            FROM RDB$RELATION_FIELDS R
            JOIN RDB$FIELDS F ON F.RDB$FIELD_NAME = R.RDB$FIELD_SOURCE
            WHERE R.RDB$RELATION_NAME = :table_name
            ORDER BY R.RDB$FIELD_POSITION
        """
        return sql, {"table_name": table.strip().upper()}

    def tables_sql(self) -> str:
        return (
            "SELECT TRIM(RDB$RELATION_NAME) FROM RDB$RELATIONS "
            "WHERE RDB$VIEW_BLR IS NULL AND (RDB$SYSTEM_FLAG IS NULL OR RDB$SYSTEM_FLAG = 0)"
        )

    def connect(self, settings: ConnectionSettings) -> DbApiClient:
        conn_str = build_connection_string({
            "DRIVER": f"{{{settings.odbc_driver or self.odbc_driver}}}",
            "DBNAME": f"{settings.host}/{settings.port or self.default_port}:{settings.database}",
            "UID": settings.user,
            "PWD": settings.password,
            "CHARSET": settings.charset or "UTF8",
        })
        connection = connect_odbc(conn_str)
        logger.info(f"Connected to Firebird database {settings.database} on {settings.host}")
        return self._client(connection, "qmark")
