"""
ODBC helpers shared by the dialects that connect through pyodbc.
"""

from typing import Any, Dict

from ..constants import CONNECTION_TIMEOUT_S
from ..exceptions import DatabaseConnectionError

import logging
logger = logging.getLogger(__name__)


def build_connection_string(parts: Dict[str, Any]) -> str:
    """Join ODBC attributes, skipping empty ones."""
    return ";".join(f"{key}={value}" for key, value in parts.items() if value not in (None, ""))


def connect_odbc(conn_str: str) -> Any:
    """
    Open a pyodbc connection with autocommit off.

    Raises:
        DatabaseConnectionError: If pyodbc is missing or the connect fails
    """
    try:
        import pyodbc
    except ImportError as e:
        raise DatabaseConnectionError(
            "pyodbc is not installed. Install with: pip install dataforge-sql[odbc]"
        ) from e

    try:
        return pyodbc.connect(conn_str, timeout=CONNECTION_TIMEOUT_S, autocommit=False)
    except Exception as e:
        raise DatabaseConnectionError(str(e)) from e
