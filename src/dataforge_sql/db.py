"""
Db - Convenience facade over a QueryBuilder

One-call helpers for the common statements, metadata introspection and
transaction control:

    db = connect("sqlite:///app.db")
    db.insert("users", {"name": "Ann", "age": 31})
    row = db.select_row("users", "*", {"name": "Ann"})
    total = db.select_value("users", "COUNT(*)")

Column-name lookups are cached per table with a TTL.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union
import re
import threading

from cachetools import TTLCache

from .client import DatabaseClient, FetchMode
from .constants import COLUMNS_CACHE_MAXSIZE, COLUMNS_CACHE_TTL_S
from .dialects.base import DatabaseDialect
from .query.debugger import DebugEntry, DebugMode
from .query.where import Condition
from .query_builder import QueryBuilder
from .result import ExecutionResult

import logging
logger = logging.getLogger(__name__)


DebugFlag = Union[DebugMode, bool, str]
CountFields = Union[str, Mapping[str, str]]

_AS_RE = re.compile(r"\s+AS\s+", re.IGNORECASE)


def count_fields_sql(fields: CountFields) -> str:
    """
    Build the COUNT() list of a select_count().

    ``{"*": "total"}`` gives ``COUNT(*) AS total``; the string
    ``"id AS ids, DISTINCT email AS emails"`` gives
    ``COUNT(id) AS ids, COUNT(DISTINCT email) AS emails``.
    """
    if isinstance(fields, Mapping):
        return ", ".join(f"COUNT({expr}) AS {alias}" for expr, alias in fields.items())

    counts = []
    for part in str(fields).split(", "):
        part = part.strip()
        if not part:
            continue
        pieces = _AS_RE.split(part, maxsplit=1)
        if len(pieces) == 2:
            counts.append(f"COUNT({pieces[0]}) AS {pieces[1]}")
        else:
            counts.append(f"COUNT({part})")
    return ", ".join(counts)


def convert_to_simple_array(rows: Sequence[Any], value_field: str,
                            key_field: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
    """
    Flatten rows into a list of one field, or a dict keyed by another field.

    Rows may be dicts, objects with attributes, or sequences (integer fields).
    """
    def pick(row: Any, name: Any) -> Any:
        if isinstance(row, Mapping):
            return row[name]
        if isinstance(name, int):
            return row[name]
        return getattr(row, name)

    if key_field is None:
        return [pick(row, value_field) for row in rows]
    return {pick(row, key_field): pick(row, value_field) for row in rows}


class Db:
    """
    Database facade.

    Usage:
        db = Db(QueryBuilder(dialect, client))
        db.update("users", {"age": 32}, {"id": 7})
        with db.transaction():
            db.insert("audit", {"action": "update"})
    """

    # Cache configuration
    DEFAULT_TTL = COLUMNS_CACHE_TTL_S
    DEFAULT_MAXSIZE = COLUMNS_CACHE_MAXSIZE

    def __init__(self, query_builder: QueryBuilder,
                 ttl: int = DEFAULT_TTL, maxsize: int = DEFAULT_MAXSIZE):
        """
        Args:
            query_builder: Builder all statements go through
            ttl: Column-name cache time-to-live in seconds
            maxsize: Maximum number of cached tables
        """
        self.query_builder = query_builder
        self._columns_cache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.RLock()
        self._pending_debug: Optional[DebugMode] = None

    @property
    def dialect(self) -> DatabaseDialect:
        return self.query_builder.dialect

    @property
    def client(self) -> DatabaseClient:
        return self.query_builder.client

    # ==================== Raw queries ====================

    def query(self, sql: str, placeholders: Any = None,
              debug: DebugFlag = False) -> ExecutionResult:
        """Execute raw SQL with optional placeholder values."""
        return (
            self.query_builder.raw_query(sql)
            .placeholders(placeholders)
            .debug_once(self._take_debug(debug))
            .execute()
        )

    def query_row(self, sql: str, placeholders: Any = None,
                  fetch_mode: FetchMode = FetchMode.OBJECT, debug: DebugFlag = False) -> Any:
        """First row of a raw query, or None."""
        self.query(sql, placeholders, debug)
        return self.fetch(fetch_mode)

    def query_value(self, sql: str, placeholders: Any = None, debug: DebugFlag = False) -> Any:
        """First column of the first row of a raw query, or None."""
        row = self.query_row(sql, placeholders, FetchMode.NUM, debug)
        return row[0] if row else None

    # ==================== SELECT ====================

    def select(self, from_: str, fields: Union[str, Sequence[str]] = "*",
               where: Condition = None, parameters: Optional[Mapping[str, Any]] = None,
               debug: DebugFlag = False) -> ExecutionResult:
        return (
            self.query_builder.select(fields)
            .from_(from_)
            .where(where)
            .parameters(parameters)
            .debug_once(self._take_debug(debug))
            .execute()
        )

    def select_count(self, from_: str, fields: CountFields = None,
                     where: Condition = None, parameters: Optional[Mapping[str, Any]] = None,
                     debug: DebugFlag = False,
                     fetch_mode: FetchMode = FetchMode.OBJECT) -> Any:
        """
        Row of COUNT() values.

        Args:
            from_: FROM expression
            fields: ``{expression: alias}`` mapping or ``"expr AS alias, ..."``
                string; defaults to ``{"*": "rowsCount"}``
            where: WHERE condition
            parameters: Auxiliary parameters
            debug: Debug mode for this query
            fetch_mode: Shape of the returned row

        Returns:
            The count row, or None
        """
        fields = {"*": "rowsCount"} if fields is None else fields
        self.select(from_, count_fields_sql(fields), where, parameters, debug)
        return self.fetch(fetch_mode)

    def select_row(self, from_: str, fields: Union[str, Sequence[str]] = "*",
                   where: Condition = None, fetch_mode: FetchMode = FetchMode.OBJECT,
                   debug: DebugFlag = False,
                   parameters: Optional[Mapping[str, Any]] = None) -> Any:
        """First row of a SELECT (limited to one row), or None."""
        parameters = dict(parameters or {})
        parameters["limit"] = 1
        self.select(from_, fields, where, parameters, debug)
        return self.fetch(fetch_mode)

    def select_value(self, from_: str, field: str, where: Condition = None,
                     debug: DebugFlag = False) -> Any:
        """First column of the first row of a SELECT, or None."""
        row = self.select_row(from_, field, where, FetchMode.NUM, debug)
        return row[0] if row else None

    # ==================== Writes ====================

    def insert(self, table: str, values: Mapping[str, Any], debug: DebugFlag = False) -> int:
        """
        Insert one row.

        Returns:
            Number of rows inserted

        Raises:
            EmptyValuesError: If ``values`` is empty (nothing is sent)
        """
        return (
            self.query_builder.insert(table, values)
            .debug_once(self._take_debug(debug))
            .execute()
            .affected_rows
        )

    def update(self, table: str, values: Mapping[str, Any], where: Condition = None,
               debug: DebugFlag = False) -> int:
        """
        Update rows matching ``where``.

        Raises:
            EmptyValuesError: If ``values`` is empty (nothing is sent)
        """
        return (
            self.query_builder.update(table, values, where)
            .debug_once(self._take_debug(debug))
            .execute()
            .affected_rows
        )

    def delete(self, table: str, where: Condition = None, debug: DebugFlag = False) -> int:
        """Delete rows matching ``where``; ``table`` may be a two-table JOIN."""
        return (
            self.query_builder.delete(table, where)
            .debug_once(self._take_debug(debug))
            .execute()
            .affected_rows
        )

    # ==================== Metadata ====================

    def get_columns(self, table: str, fetch_mode: FetchMode = FetchMode.OBJECT,
                    debug: DebugFlag = False) -> List[Any]:
        """Introspection rows describing the columns of ``table``."""
        sql, placeholders = self.dialect.columns_sql(table)
        self.query(sql, placeholders, debug)
        return self.fetch_all(fetch_mode)

    def get_columns_names(self, table: str) -> List[str]:
        """Column names of ``table`` (cached)."""
        key = table.strip().lower()
        with self._lock:
            if key in self._columns_cache:
                return list(self._columns_cache[key])

            columns = self.get_columns(table, FetchMode.ASSOC)
            names = convert_to_simple_array(columns, self.dialect.column_name_key)
            self._columns_cache[key] = names
            return list(names)

    def invalidate_columns_cache(self, table: Optional[str] = None) -> None:
        """Forget cached column names for one table, or for all tables."""
        with self._lock:
            if table is None:
                self._columns_cache.clear()
            else:
                self._columns_cache.pop(table.strip().lower(), None)

    def get_tables(self, debug: DebugFlag = False) -> List[str]:
        """Names of the base tables of the database."""
        self.query(self.dialect.tables_sql(), None, debug)
        return self.fetch_all(FetchMode.COLUMN)

    # ==================== Transactions ====================

    def transaction_begin(self) -> None:
        self.query_builder.transaction_begin()

    def transaction_commit(self) -> None:
        self.query_builder.transaction_commit()

    def transaction_rollback(self) -> None:
        self.query_builder.transaction_rollback()

    @contextmanager
    def transaction(self) -> Iterator["Db"]:
        """
        Group several statements in one transaction.

        Commits on successful exit, rolls back on exception.

        Example:
            with db.transaction():
                db.insert("orders", {...})
                db.update("stock", {...}, {...})
        """
        self.transaction_begin()
        try:
            yield self
        except Exception:
            self.transaction_rollback()
            raise
        self.transaction_commit()

    # ==================== Results ====================

    def fetch(self, fetch_mode: FetchMode = FetchMode.OBJECT) -> Any:
        return self.query_builder.fetch(fetch_mode)

    def fetch_all(self, fetch_mode: FetchMode = FetchMode.OBJECT) -> List[Any]:
        return self.query_builder.fetch_all(fetch_mode)

    def get_last_insert_id(self) -> Any:
        return self.query_builder.get_last_insert_id()

    def get_maximum_value(self, table: str, field: str) -> Any:
        return self.query_builder.get_maximum_value(table, field)

    def num_rows(self) -> int:
        return self.query_builder.num_rows()

    # ==================== Debug ====================

    def debug_once(self, mode: DebugFlag = True) -> "Db":
        """Debug mode for the next facade call only."""
        self._pending_debug = DebugMode.coerce(mode)
        return self

    def _take_debug(self, debug: DebugFlag) -> DebugFlag:
        pending, self._pending_debug = self._pending_debug, None
        if pending is not None and not DebugMode.coerce(debug).enabled:
            return pending
        return debug

    def set_debug(self, mode: DebugFlag) -> None:
        self.query_builder.set_debug(mode)

    def get_debug(self) -> List[DebugEntry]:
        return self.query_builder.get_debug()

    @property
    def debug_mode(self) -> DebugMode:
        return self.query_builder.debug_mode

    def convert_to_simple_array(self, rows: Sequence[Any], value_field: str,
                                key_field: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        return convert_to_simple_array(rows, value_field, key_field)
