"""
DataForge SQL - Multi-dialect query builder with transactions and pagination
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("dataforge-sql")
except PackageNotFoundError:
    # Package not installed
    __version__ = "0.1.0"

__author__ = "Lestat2Lioncourt"

from .client import DatabaseClient, DbApiClient, FetchMode, Statement
from .connection import connect
from .db import Db
from .dialects import DatabaseDialect, DialectFactory
from .exceptions import (
    CapabilityError,
    ConditionCompileError,
    DatabaseConnectionError,
    DataForgeSQLError,
    EmptyValuesError,
    ExecutionError,
    InvalidParameterError,
    PaginationError,
    QuerySequenceError,
    TransactionError,
    UnsupportedDialectError,
)
from .pagination import Pagination, PaginationOptions
from .query import DebugMode, QueryParameters, QueryType, WhereClause
from .query_builder import QueryBuilder
from .result import ExecutionResult, ResultCursor
from .settings import ConnectionSettings

__all__ = [
    "__version__",
    "connect",
    # Core
    "QueryBuilder",
    "Db",
    "Pagination",
    "PaginationOptions",
    "ConnectionSettings",
    # Building blocks
    "WhereClause",
    "QueryParameters",
    "QueryType",
    "DebugMode",
    "ExecutionResult",
    "ResultCursor",
    # Dialects and clients
    "DatabaseDialect",
    "DialectFactory",
    "DatabaseClient",
    "DbApiClient",
    "Statement",
    "FetchMode",
    # Exceptions
    "DataForgeSQLError",
    "DatabaseConnectionError",
    "UnsupportedDialectError",
    "ConditionCompileError",
    "InvalidParameterError",
    "ExecutionError",
    "CapabilityError",
    "QuerySequenceError",
    "EmptyValuesError",
    "TransactionError",
    "PaginationError",
]
