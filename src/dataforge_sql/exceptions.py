"""
DataForge SQL exceptions.

Every error raised by the toolkit derives from DataForgeSQLError so callers
can catch the whole family at once. Backend driver exceptions are chained
(``raise ... from exc``) rather than replaced.
"""

from typing import Any, Dict, Optional


class DataForgeSQLError(Exception):
    """Base exception for all DataForge SQL errors."""
    pass


class DatabaseConnectionError(DataForgeSQLError):
    """Driver unavailable or connection failure."""

    def __init__(self, message: str):
        super().__init__(f"Database Connection Error: {message}")


class UnsupportedDialectError(DatabaseConnectionError):
    """No dialect is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        DataForgeSQLError.__init__(self, f"Unsupported driver: {name}")


class ConditionCompileError(DataForgeSQLError):
    """Malformed WHERE condition."""
    pass


class InvalidParameterError(DataForgeSQLError):
    """Unknown parameter name or malformed parameter value."""
    pass


class ExecutionError(DataForgeSQLError):
    """The backend rejected a statement."""

    def __init__(self, message: str, sql: str = "",
                 placeholders: Optional[Dict[Any, Any]] = None):
        self.sql = sql
        self.placeholders = dict(placeholders or {})
        if sql:
            message = f"{message}\n{sql}"
        super().__init__(message)


class CapabilityError(DataForgeSQLError):
    """Operation not supported by the active dialect."""
    pass


class QuerySequenceError(DataForgeSQLError):
    """Operation called out of order (e.g. last insert id before an INSERT)."""
    pass


class EmptyValuesError(DataForgeSQLError):
    """INSERT or UPDATE called without any values."""
    pass


class TransactionError(DataForgeSQLError):
    """Invalid transaction state transition."""
    pass


class PaginationError(DataForgeSQLError):
    """Pagination count or page fetch failed."""
    pass
