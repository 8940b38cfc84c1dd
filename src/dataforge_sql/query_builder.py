"""
Query Builder - Compose, execute and inspect SQL statements

The builder keeps one query descriptor at a time. Every entry point
(raw_query, select, insert, update, delete) starts a fresh descriptor,
the fluent methods fill it in, and execute() renders it through the
active dialect and runs it on the client:

    builder.select(["id", "name"]).from_("users").where({"age >": 30}) \\
        .order_by("name").limit("20,10").execute()
    rows = builder.fetch_all(FetchMode.ASSOC)

Reads run without a transaction. Writes run inside a transaction the
builder opens itself unless one is already open or the statement is
committed implicitly by the backend (DDL-like statements).
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union
import re
import time

from .client import DatabaseClient, FetchMode, Statement
from .dialects.base import DatabaseDialect
from .exceptions import (
    CapabilityError,
    DataForgeSQLError,
    EmptyValuesError,
    ExecutionError,
    InvalidParameterError,
    QuerySequenceError,
)
from .query.debugger import DebugEntry, DebugMode, Debugger
from .query.parameters import LimitSpec, QueryParameters
from .query.query_type import QueryType
from .query.utilities import (
    format_value,
    format_values,
    get_data_type,
    interpolate_query,
    is_insert_statement,
    is_select_statement,
    is_sql_autocommit,
)
from .query.where import Condition, WhereClause
from .result import ExecutionResult, ResultCursor

import logging
logger = logging.getLogger(__name__)


_VALUE_KEY_RE = re.compile(r"^[A-Za-z_][\w-]*(\.[A-Za-z_][\w-]*)?$")

# Statements whose row count cannot be probed with a COUNT() rewrite
_NO_COUNT_REWRITE_RE = re.compile(
    r"LIMIT[\s0-9]+|FIRST[\s0-9]+|SKIP[\s0-9]+|OFFSET[\s0-9]+|NEXT[\s0-9]+|HAVING SUM"
    r"|GROUP\s+BY|\bUNION\b",
    re.IGNORECASE,
)
_SELECT_FROM_RE = re.compile(r"^\s*SELECT\s+(.*?)\s+FROM\s+(.*)$", re.IGNORECASE | re.DOTALL)
_TRAILING_ORDER_BY_RE = re.compile(r"^(.*)\s+ORDER\s+BY\s+.*$", re.IGNORECASE | re.DOTALL)


def count_probe_sql(sql: str, count_expression: Optional[str] = None) -> Optional[str]:
    """
    Rewrite a SELECT into a ``SELECT COUNT(...) AS row_count`` probe.

    Args:
        sql: The executed SELECT
        count_expression: Expression to count; defaults to the selected
            column list of ``sql``

    Returns:
        The probe SQL, or None when the statement limits rows, groups,
        unions, or is not a plain ``SELECT ... FROM ...``
    """
    if _NO_COUNT_REWRITE_RE.search(sql):
        return None
    match = _SELECT_FROM_RE.match(sql)
    if match is None:
        return None

    columns, rest = match.groups()
    order_by = _TRAILING_ORDER_BY_RE.match(rest)
    if order_by:
        rest = order_by.group(1)
    expression = count_expression or columns.strip()
    return f"SELECT COUNT({expression}) AS row_count FROM {rest.strip()}"


def value_placeholder(key: str) -> str:
    """Placeholder name for an INSERT/UPDATE column key."""
    if not isinstance(key, str) or not _VALUE_KEY_RE.match(key.strip()):
        raise InvalidParameterError(f"Invalid column name: {key!r}")
    return re.sub(r"[.-]", "_", key.strip())


@dataclass
class QueryDescriptor:
    """Everything needed to render one statement."""
    query_type: QueryType = QueryType.SELECT
    raw_sql: str = ""
    fields: str = "*"
    table: str = ""
    values: Dict[str, Any] = field(default_factory=dict)
    where: WhereClause = field(default_factory=WhereClause)
    parameters: QueryParameters = field(default_factory=QueryParameters)
    placeholders: Dict[Any, Any] = field(default_factory=dict)

    def value_placeholders(self) -> Dict[str, Any]:
        return {value_placeholder(key): value for key, value in self.values.items()}

    def bound_placeholders(self) -> Dict[Any, Any]:
        """Values to bind: explicit placeholders, then column values, then WHERE."""
        merged: Dict[Any, Any] = dict(self.placeholders)
        merged.update(self.value_placeholders())
        merged.update(self.where.placeholders)
        return merged


class TransactionScope:
    """Handle yielded by QueryBuilder.transaction_scope()."""

    def __init__(self, owned: bool):
        self.owned = owned
        self.rollback_only = False


class QueryBuilder:
    """
    Fluent SQL builder bound to one dialect and one client.

    Usage:
        builder = QueryBuilder(DialectFactory.create("mysql"), client)
        builder.insert("users", {"name": "Ann", "age": 31}).execute()
        user_id = builder.get_last_insert_id()
    """

    def __init__(self, dialect: DatabaseDialect, client: DatabaseClient,
                 debug: Union[DebugMode, bool, str] = False):
        """
        Args:
            dialect: Dialect used to render SQL
            client: Client the statements run on
            debug: Default debug mode (False, True or "silent")
        """
        self.dialect = dialect
        self.client = client
        self.result = ResultCursor()
        self.debugger = Debugger()
        self._debug_mode = DebugMode.coerce(debug)
        self._debug_once: Optional[DebugMode] = None
        self._descriptor = QueryDescriptor()

        # Last executed statement
        self._last_descriptor: Optional[QueryDescriptor] = None
        self._last_sql: Optional[str] = None
        self._last_placeholders: Dict[Any, Any] = {}
        self._last_was_read = False
        self._last_was_insert = False
        self._last_affected = 0
        self._last_insert_id: Any = None

    # ==================== Descriptor ====================

    def clear(self) -> "QueryBuilder":
        """Start a new descriptor and drop the current cursor."""
        self._descriptor = QueryDescriptor()
        self._debug_once = None
        self.result.reset()
        return self

    def raw_query(self, sql: str) -> "QueryBuilder":
        """Use caller-supplied SQL verbatim."""
        self.clear()
        self._descriptor.query_type = QueryType.RAW
        self._descriptor.raw_sql = sql
        return self

    def select(self, fields: Union[str, Sequence[str]] = "*") -> "QueryBuilder":
        """Start a SELECT of ``fields`` (a string or a list of column expressions)."""
        self.clear()
        self._descriptor.query_type = QueryType.SELECT
        if isinstance(fields, str):
            self._descriptor.fields = fields.strip() or "*"
        else:
            self._descriptor.fields = ", ".join(str(f).strip() for f in fields) or "*"
        return self

    def from_(self, table: str) -> "QueryBuilder":
        """Set the FROM expression (may contain JOIN clauses)."""
        self._descriptor.table = table.strip()
        return self

    def where(self, condition: Condition) -> "QueryBuilder":
        """Compile the WHERE condition."""
        reserved = self._descriptor.value_placeholders().keys()
        self._descriptor.where.set(condition, reserved=reserved)
        return self

    def distinct(self, flag: bool = True) -> "QueryBuilder":
        self._descriptor.parameters.set("select_distinct", flag)
        return self

    def group_by(self, group_by: Optional[str]) -> "QueryBuilder":
        self._descriptor.parameters.set("group_by", group_by)
        return self

    def order_by(self, order_by: Optional[str]) -> "QueryBuilder":
        self._descriptor.parameters.set("order_by", order_by)
        return self

    def limit(self, limit: LimitSpec) -> "QueryBuilder":
        """Set a row count or an ``"offset,count"`` pair."""
        if limit not in (None, ""):
            self.dialect.parse_limit(limit)
        self._descriptor.parameters.set("limit", limit)
        return self

    def parameters(self, parameters: Optional[Mapping[str, Any]]) -> "QueryBuilder":
        """Set several auxiliary parameters (select_distinct, group_by, order_by, limit)."""
        parameters = dict(parameters or {})
        if parameters.get("limit") not in (None, ""):
            self.dialect.parse_limit(parameters["limit"])
        self._descriptor.parameters.update(parameters)
        return self

    def placeholders(self, placeholders: Union[Mapping[Any, Any], Sequence[Any], None]) -> "QueryBuilder":
        """
        Add values for markers written in raw SQL.

        A mapping binds by name (str keys) or by 1-based position (int keys);
        a list binds by position.
        """
        if placeholders is None:
            return self
        if isinstance(placeholders, Mapping):
            values = format_values(placeholders)
        else:
            values = {index: format_value(value) for index, value in enumerate(placeholders, 1)}
        self._descriptor.placeholders.update(values)
        return self

    def insert(self, table: str, values: Mapping[str, Any]) -> "QueryBuilder":
        """
        Start an INSERT.

        Raises:
            EmptyValuesError: If ``values`` is empty
        """
        self.clear()
        if not values:
            raise EmptyValuesError(
                f"Failed to insert data into table {table}. "
                "The array of values to be inserted cannot be empty."
            )
        self._descriptor.query_type = QueryType.INSERT
        self._descriptor.table = table.strip()
        self._descriptor.values = format_values(values)
        self._descriptor.value_placeholders()  # validates column names
        return self

    def update(self, table: str, values: Mapping[str, Any],
               where: Condition = None) -> "QueryBuilder":
        """
        Start an UPDATE.

        Raises:
            EmptyValuesError: If ``values`` is empty
        """
        self.clear()
        if not values:
            raise EmptyValuesError(
                f"Failed to update data in table {table}. "
                "The array of values to be updated cannot be empty."
            )
        self._descriptor.query_type = QueryType.UPDATE
        self._descriptor.table = table.strip()
        self._descriptor.values = format_values(values)
        return self.where(where)

    def delete(self, table: str, where: Condition = None) -> "QueryBuilder":
        """Start a DELETE; ``table`` may be a two-table JOIN expression."""
        self.clear()
        self._descriptor.query_type = QueryType.DELETE
        self._descriptor.table = table.strip()
        return self.where(where)

    # ==================== Accessors ====================

    @property
    def query_type(self) -> QueryType:
        return self._descriptor.query_type

    def get_fields(self) -> str:
        return self._descriptor.fields

    def get_table(self) -> str:
        return self._descriptor.table

    def get_values(self) -> Dict[str, Any]:
        return dict(self._descriptor.values)

    def get_where_sql(self) -> str:
        return self._descriptor.where.sql

    def get_parameters(self) -> QueryParameters:
        return self._descriptor.parameters

    def get_placeholders(self) -> Dict[Any, Any]:
        return self._descriptor.bound_placeholders()

    # ==================== SQL rendering ====================

    def get_sql(self) -> str:
        """Render the current descriptor."""
        d = self._descriptor
        if d.query_type is QueryType.RAW:
            return d.raw_sql

        if not d.table:
            raise QuerySequenceError(f"{d.query_type.value} statement has no table")

        if d.query_type is QueryType.SELECT:
            return self._select_sql(d)
        if d.query_type is QueryType.INSERT:
            keys = list(d.values)
            names = d.value_placeholders()
            return (
                f"INSERT INTO {d.table} ({', '.join(keys)}) "
                f"VALUES ({', '.join(':' + name for name in names)})"
            )
        if d.query_type is QueryType.UPDATE:
            assignments = ", ".join(f"{key} = :{value_placeholder(key)}" for key in d.values)
            return f"UPDATE {d.table} SET {assignments}{d.where.sql}"
        return self.dialect.delete_sql(d.table, d.where.sql)

    def _select_sql(self, d: QueryDescriptor) -> str:
        params = d.parameters
        limit = ""
        if params.limit not in (None, ""):
            limit = self.dialect.limit_clause(params.limit)
        prefix = self.dialect.limit_position == "prefix"

        sql = "SELECT "
        if prefix:
            sql += limit
        if params.select_distinct:
            sql += "DISTINCT "
        sql += f"{d.fields} FROM {d.table}{d.where.sql}"
        if params.group_by:
            sql += f" GROUP BY {params.group_by}"
        if params.order_by:
            sql += f" ORDER BY {params.order_by}"
        if not prefix:
            sql += limit
        return sql

    # ==================== Execution ====================

    def execute(self) -> ExecutionResult:
        """
        Run the current descriptor.

        SELECT statements, and raw statements starting with a row-returning
        keyword, take the read path; everything else takes the write path.

        Raises:
            ExecutionError: If the backend rejects the statement
        """
        d = self._descriptor
        if d.query_type is QueryType.SELECT:
            return self.execute_query()
        if d.query_type is QueryType.RAW and is_select_statement(d.raw_sql):
            return self.execute_query()
        return self.execute_statement()

    def execute_query(self) -> ExecutionResult:
        """Read path: prepare, bind, execute and keep the cursor."""
        d = self._descriptor
        sql = self.get_sql()
        placeholders = d.bound_placeholders()
        mode = self.debug_mode

        started = time.perf_counter()
        try:
            statement = self._run(sql, placeholders)
        except DataForgeSQLError:
            raise
        except Exception as e:
            raise self._execution_error(e, d.query_type, sql, placeholders, mode, started) from e
        elapsed = time.perf_counter() - started

        self.result.set(statement)
        self._remember(d, sql, placeholders, is_read=True)
        self.debugger.record(mode, d.query_type, sql, placeholders, elapsed)
        return ExecutionResult(d.query_type, sql, elapsed=elapsed, is_read=True)

    def execute_statement(self) -> ExecutionResult:
        """
        Write path: run inside a transaction owned by the builder when possible.

        In debug mode the owned transaction is always rolled back; writes
        that would run outside an owned transaction are recorded but not sent.
        """
        d = self._descriptor
        sql = self.get_sql()
        placeholders = d.bound_placeholders()
        mode = self.debug_mode
        insert_like = d.query_type is QueryType.INSERT or (
            d.query_type is QueryType.RAW and is_insert_statement(sql)
        )

        owns_transaction = not self.client.in_transaction() and not is_sql_autocommit(sql)
        if mode.enabled and not owns_transaction:
            self.debugger.record(mode, d.query_type, sql, placeholders,
                                 simulated=True, executed=False)
            self._debug_once = None
            return ExecutionResult(d.query_type, sql, simulated=True)

        started = time.perf_counter()
        try:
            with self.transaction_scope(owns_transaction) as scope:
                statement = self._run(sql, placeholders)
                affected = statement.row_count()
                last_id = None
                if insert_like and self.dialect.supports_last_insert_id:
                    last_id = self.client.last_insert_id()
                scope.rollback_only = mode.enabled
        except DataForgeSQLError:
            raise
        except Exception as e:
            raise self._execution_error(e, d.query_type, sql, placeholders, mode, started) from e
        elapsed = time.perf_counter() - started

        self.result.set(statement)
        self._remember(d, sql, placeholders, is_read=False)
        self._last_was_insert = insert_like
        self._last_affected = max(affected, 0)
        self._last_insert_id = last_id
        self.debugger.record(mode, d.query_type, sql, placeholders, elapsed,
                             affected_rows=affected, simulated=mode.enabled)
        return ExecutionResult(
            d.query_type, sql,
            affected_rows=max(affected, 0),
            last_insert_id=last_id,
            elapsed=elapsed,
            simulated=mode.enabled,
        )

    @contextmanager
    def transaction_scope(self, owned: bool = True) -> Iterator[TransactionScope]:
        """
        Transaction guard around one write.

        When ``owned``, begins a transaction, commits on success (or rolls
        back when ``rollback_only`` was set) and rolls back then re-raises
        on error. When not owned, the caller's transaction is left alone.
        """
        scope = TransactionScope(owned)
        if owned:
            self.client.begin_transaction()
        try:
            yield scope
        except Exception:
            if owned and self.client.in_transaction():
                self.client.rollback()
                logger.debug("Write failed, transaction rolled back")
            raise
        if owned:
            if scope.rollback_only:
                self.client.rollback()
            else:
                self.client.commit()

    def _run(self, sql: str, placeholders: Mapping[Any, Any]) -> Statement:
        logger.debug(f"Executing: {sql}")
        statement = self.client.prepare(sql)
        self._bind_values(statement, placeholders)
        statement.execute()
        return statement

    @staticmethod
    def _bind_values(statement: Statement, placeholders: Mapping[Any, Any]) -> None:
        """Bind by name for str keys, by 1-based position for int keys."""
        for key, value in placeholders.items():
            statement.bind_value(key, value, get_data_type(value))

    def _execution_error(self, error: Exception, query_type: QueryType, sql: str,
                         placeholders: Dict[Any, Any], mode: DebugMode,
                         started: float) -> ExecutionError:
        elapsed = time.perf_counter() - started
        rendered = interpolate_query(sql, placeholders)
        logger.error(f"{query_type.value} failed: {error}")
        self.debugger.record(mode, query_type, sql, placeholders, elapsed, error=str(error))
        return ExecutionError(f"Database error: {error}", rendered, placeholders)

    def _remember(self, d: QueryDescriptor, sql: str, placeholders: Dict[Any, Any],
                  is_read: bool) -> None:
        self._last_descriptor = d
        self._last_sql = sql
        self._last_placeholders = placeholders
        self._last_was_read = is_read
        self._last_was_insert = False
        self._debug_once = None

    # ==================== Results ====================

    def fetch(self, mode: FetchMode = FetchMode.OBJECT) -> Any:
        return self.result.fetch(mode)

    def fetch_all(self, mode: FetchMode = FetchMode.OBJECT) -> List[Any]:
        return self.result.fetch_all(mode)

    def num_rows(self) -> int:
        """
        Number of rows returned by the last read.

        Tries a ``COUNT()`` rewrite of the last SELECT first; falls back to
        re-running the statement and counting the rows. For a write, returns
        its affected-row count.

        Raises:
            QuerySequenceError: If nothing has been executed yet
            ExecutionError: If the backend rejects the counting query
        """
        if self._last_sql is None:
            raise QuerySequenceError("num_rows() requires an executed query")
        if not self._last_was_read:
            return self._last_affected

        sql = self._last_sql
        placeholders = self._last_placeholders
        probe = count_probe_sql(sql, self._count_expression())
        mode = self.debug_mode

        if probe is not None:
            started = time.perf_counter()
            try:
                statement = self._run(probe, placeholders)
                row = statement.fetch(FetchMode.NUM)
            except DataForgeSQLError:
                raise
            except Exception as e:
                logger.warning(f"Row count probe failed, counting rows instead: {e}")
            else:
                self.debugger.record(mode, QueryType.RAW, probe, placeholders,
                                     time.perf_counter() - started)
                return int(row[0]) if row else 0

        started = time.perf_counter()
        try:
            rows = self._run(sql, placeholders).fetch_all(FetchMode.NUM)
        except DataForgeSQLError:
            raise
        except Exception as e:
            raise self._execution_error(e, QueryType.RAW, sql, placeholders, mode, started) from e
        return len(rows)

    def _count_expression(self) -> Optional[str]:
        d = self._last_descriptor
        if d is None or d.query_type is QueryType.RAW:
            return None
        if d.query_type is QueryType.SELECT and d.fields != "*":
            distinct = "DISTINCT " if d.parameters.select_distinct else ""
            return f"{distinct}{d.fields}"
        return "*"

    def get_last_insert_id(self) -> Any:
        """
        Id generated by the last INSERT.

        Raises:
            QuerySequenceError: If the last execution was not an INSERT
            CapabilityError: If the dialect cannot report it
        """
        if not self._last_was_insert:
            raise QuerySequenceError("get_last_insert_id() requires an executed INSERT statement")
        if not self.dialect.supports_last_insert_id:
            raise CapabilityError(
                f"The {self.dialect.name} driver does not support last insert id. "
                "Use get_maximum_value(table, field) instead."
            )
        return self._last_insert_id

    def get_maximum_value(self, table: str, field: str) -> Any:
        """Largest value of ``field`` in ``table``, or None for an empty table."""
        self.select(f"MAX({field})").from_(table).execute_query()
        row = self.fetch(FetchMode.NUM)
        return row[0] if row else None

    # ==================== Transactions ====================

    def transaction_begin(self) -> None:
        self.client.begin_transaction()

    def transaction_commit(self) -> None:
        self.client.commit()

    def transaction_rollback(self) -> None:
        self.client.rollback()

    # ==================== Debug ====================

    def debug_once(self, mode: Union[DebugMode, bool, str] = True) -> "QueryBuilder":
        """Debug mode for the next execution only."""
        self._debug_once = DebugMode.coerce(mode)
        return self

    def set_debug(self, mode: Union[DebugMode, bool, str]) -> None:
        self._debug_mode = DebugMode.coerce(mode)

    @property
    def debug_mode(self) -> DebugMode:
        """Mode applying to the next execution."""
        if self._debug_once is not None and self._debug_once.enabled:
            return self._debug_once
        return self._debug_mode

    def get_debug(self) -> List[DebugEntry]:
        return list(self.debugger.entries)
