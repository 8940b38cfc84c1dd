"""
Database Client - DB-API 2.0 adapter used by the query builder

The builder talks to a small capability interface (prepare, bind, execute,
fetch, transactions, last insert id, exec). DbApiClient implements it over
any DB-API 2.0 connection (sqlite3, PyMySQL, psycopg2, pyodbc):

- ``:name`` and ``?`` markers are located with the sqlparse lexer, so text
  inside string literals and comments is never mistaken for a marker
- markers are rewritten to the driver's ``paramstyle``
- statements run outside an explicit transaction are committed at once
"""

from abc import ABC, abstractmethod
from enum import Enum
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlparse import lexer
from sqlparse import tokens as T

from .exceptions import InvalidParameterError, TransactionError
from .query.utilities import ParamType, format_value

import logging
logger = logging.getLogger(__name__)


PlaceholderKey = Union[str, int]

PARAMSTYLES = ("qmark", "numeric", "named", "format", "pyformat")


class FetchMode(Enum):
    """Row shape returned by fetch()/fetch_all()."""
    OBJECT = "object"   # attribute access
    ASSOC = "assoc"     # dict keyed by column name
    NUM = "num"         # tuple in column order
    COLUMN = "column"   # first column value only


# ==================== Capability interface ====================

class Statement(ABC):
    """A prepared statement and, once executed, its result stream."""

    @abstractmethod
    def bind_value(self, key: PlaceholderKey, value: Any,
                   param_type: ParamType = ParamType.STR) -> None:
        """Bind a value by name or by 1-based position."""

    @abstractmethod
    def execute(self) -> None:
        """Execute; driver errors propagate."""

    @abstractmethod
    def fetch(self, mode: FetchMode = FetchMode.OBJECT) -> Any:
        """Next row, or None when exhausted."""

    @abstractmethod
    def fetch_all(self, mode: FetchMode = FetchMode.OBJECT) -> List[Any]:
        """All remaining rows."""

    @abstractmethod
    def row_count(self) -> int:
        """Rows affected by the last execution."""


class DatabaseClient(ABC):
    """Connection-level capabilities consumed by the query builder."""

    @abstractmethod
    def prepare(self, sql: str) -> Statement:
        pass

    @abstractmethod
    def begin_transaction(self) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    @abstractmethod
    def in_transaction(self) -> bool:
        pass

    @abstractmethod
    def last_insert_id(self) -> Any:
        pass

    @abstractmethod
    def exec(self, sql: str) -> int:
        """Run a statement without parameters (session setup)."""


# ==================== Placeholder translation ====================

def _marker(paramstyle: str, name: str, index: int) -> str:
    if paramstyle == "qmark":
        return "?"
    if paramstyle == "format":
        return "%s"
    if paramstyle == "numeric":
        return f":{index}"
    if paramstyle == "named":
        return f":{name}"
    return f"%({name})s"


def translate_placeholders(sql: str, paramstyle: str) -> Tuple[str, List[PlaceholderKey]]:
    """
    Rewrite ``:name`` and ``?`` markers into a driver paramstyle.

    Args:
        sql: SQL text using ``:name`` and/or ``?`` markers
        paramstyle: Target DB-API paramstyle

    Returns:
        (translated_sql, keys) where keys lists the bound key of each
        marker in order (names as str, ``?`` positions as int from 1).
        SQL without markers is returned unchanged with an empty list.
    """
    if paramstyle not in PARAMSTYLES:
        raise InvalidParameterError(f"Unknown DB-API paramstyle: {paramstyle}")

    escape_percent = paramstyle in ("format", "pyformat")
    parts = []
    keys: List[PlaceholderKey] = []
    position = 0

    for ttype, value in lexer.tokenize(sql):
        is_named = value.startswith(":") and len(value) > 1
        if ttype in T.Name.Placeholder and (value == "?" or is_named):
            if value == "?":
                position += 1
                key: PlaceholderKey = position
                name = f"p{position}"
            else:
                key = value[1:]
                name = key
            keys.append(key)
            parts.append(_marker(paramstyle, name, len(keys)))
        elif escape_percent:
            parts.append(value.replace("%", "%%"))
        else:
            parts.append(value)

    if not keys:
        return sql, []
    return "".join(parts), keys


def _coerce(value: Any, param_type: ParamType) -> Any:
    if param_type is ParamType.NULL:
        return None
    if param_type is ParamType.BOOL:
        return bool(value)
    if param_type is ParamType.INT:
        return int(value)
    return format_value(value)


# ==================== DB-API implementation ====================

class DbApiStatement(Statement):
    """Statement over a DB-API cursor."""

    def __init__(self, client: "DbApiClient", sql: str):
        self._client = client
        self.sql = sql
        self._bindings: Dict[PlaceholderKey, Any] = {}
        self._cursor = None

    def bind_value(self, key: PlaceholderKey, value: Any,
                   param_type: ParamType = ParamType.STR) -> None:
        if isinstance(key, str):
            key = key.lstrip(":")
        self._bindings[key] = _coerce(value, param_type)

    def _arguments(self, keys: List[PlaceholderKey]) -> Union[List[Any], Dict[str, Any]]:
        missing = [key for key in keys if key not in self._bindings]
        if missing:
            raise InvalidParameterError(
                f"No value bound for placeholder(s): {', '.join(str(k) for k in missing)}"
            )
        if self._client.paramstyle in ("named", "pyformat"):
            return {
                (key if isinstance(key, str) else f"p{key}"): self._bindings[key]
                for key in keys
            }
        return [self._bindings[key] for key in keys]

    def execute(self) -> None:
        sql, keys = translate_placeholders(self.sql, self._client.paramstyle)
        arguments = self._arguments(keys) if keys else None
        self._cursor = self._client._run(sql, arguments)

    def _columns(self) -> List[str]:
        return [self._client.fold_case(d[0]) for d in self._cursor.description]

    def _shape(self, row: Any, columns: List[str], mode: FetchMode) -> Any:
        if mode is FetchMode.NUM:
            return tuple(row)
        if mode is FetchMode.COLUMN:
            return row[0]
        values = dict(zip(columns, row))
        if mode is FetchMode.ASSOC:
            return values
        return SimpleNamespace(**values)

    def fetch(self, mode: FetchMode = FetchMode.OBJECT) -> Any:
        if self._cursor is None or self._cursor.description is None:
            return None
        row = self._cursor.fetchone()
        if row is None:
            return None
        return self._shape(row, self._columns(), mode)

    def fetch_all(self, mode: FetchMode = FetchMode.OBJECT) -> List[Any]:
        if self._cursor is None or self._cursor.description is None:
            return []
        columns = self._columns()
        return [self._shape(row, columns, mode) for row in self._cursor.fetchall()]

    def row_count(self) -> int:
        if self._cursor is None:
            return 0
        return self._cursor.rowcount


class DbApiClient(DatabaseClient):
    """
    DatabaseClient over a DB-API 2.0 connection.

    Usage:
        client = DbApiClient(sqlite3.connect(":memory:"), paramstyle="qmark")
        stmt = client.prepare("SELECT * FROM users WHERE id = :id")
        stmt.bind_value("id", 1, ParamType.INT)
        stmt.execute()
        row = stmt.fetch(FetchMode.ASSOC)
    """

    def __init__(self, connection: Any, paramstyle: str = "qmark",
                 column_case: Optional[str] = None):
        """
        Args:
            connection: Open DB-API connection
            paramstyle: The driver's DB-API paramstyle
            column_case: "upper" or "lower" to fold result column names
        """
        if paramstyle not in PARAMSTYLES:
            raise InvalidParameterError(f"Unknown DB-API paramstyle: {paramstyle}")
        self.connection = connection
        self.paramstyle = paramstyle
        self.column_case = column_case
        self._in_transaction = False
        self._last_cursor = None

    def fold_case(self, name: str) -> str:
        if self.column_case == "upper":
            return name.upper()
        if self.column_case == "lower":
            return name.lower()
        return name

    def prepare(self, sql: str) -> DbApiStatement:
        return DbApiStatement(self, sql)

    def _run(self, sql: str, arguments: Any = None) -> Any:
        """
        Execute on a fresh cursor and settle the implicit transaction.

        Outside an explicit transaction a success is committed and a
        failure rolled back, so drivers that abort the open transaction
        on error (psycopg2) stay usable for the next statement.
        """
        cursor = self.connection.cursor()
        try:
            if arguments is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, arguments)
        except Exception:
            if not self._in_transaction:
                self._rollback_implicit()
            raise
        self._last_cursor = cursor
        if not self._in_transaction:
            self._commit_implicit()
        return cursor

    def _commit_implicit(self) -> None:
        # sqlite3 exposes in_transaction; other drivers always hold one open
        if getattr(self.connection, "in_transaction", True):
            self.connection.commit()

    def _rollback_implicit(self) -> None:
        if getattr(self.connection, "in_transaction", True):
            logger.debug("Rolling back implicit transaction after failed statement")
            self.connection.rollback()

    # ==================== Transactions ====================

    def begin_transaction(self) -> None:
        if self._in_transaction:
            raise TransactionError("There is already an active transaction")
        self._in_transaction = True
        logger.debug("Transaction started")

    def commit(self) -> None:
        if not self._in_transaction:
            raise TransactionError("There is no active transaction")
        try:
            self.connection.commit()
        finally:
            self._in_transaction = False
        logger.debug("Transaction committed")

    def rollback(self) -> None:
        if not self._in_transaction:
            raise TransactionError("There is no active transaction")
        try:
            self.connection.rollback()
        finally:
            self._in_transaction = False
        logger.debug("Transaction rolled back")

    def in_transaction(self) -> bool:
        return self._in_transaction

    # ==================== Misc ====================

    def last_insert_id(self) -> Any:
        if self._last_cursor is None:
            return None
        return getattr(self._last_cursor, "lastrowid", None)

    def exec(self, sql: str) -> int:
        return self._run(sql).rowcount

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()
