"""
Base Database Dialect - Abstract base class for backend-specific SQL

Dialects handle backend syntax differences such as:
- Row limiting (LIMIT vs FETCH NEXT vs FIRST/SKIP)
- Column and table introspection queries
- DELETE statements whose table expression embeds a JOIN
- Last insert id support
- Opening a client connection
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import re

from ..client import DbApiClient
from ..exceptions import InvalidParameterError
from ..query.parameters import LimitSpec
from ..settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


_JOIN_RE = re.compile(
    r"([\w$-]+)\s+(INNER|LEFT|RIGHT)(?:\s+OUTER)?\s+JOIN\s+([\w$-]+)"
    r"\s+ON\s+([\w$.-]+)\s*=\s*([\w$.-]+)",
    re.IGNORECASE,
)
_LEADING_WHERE_RE = re.compile(r"^\s*WHERE\s+", re.IGNORECASE)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][\w$]*(\.[A-Za-z_][\w$]*)?$")


@dataclass(frozen=True)
class JoinSpec:
    """Two-table join parsed from a DELETE table expression."""
    left_table: str
    join_type: str
    right_table: str
    left_column: str
    right_column: str

    @property
    def condition(self) -> str:
        return f"{self.left_column} = {self.right_column}"


def parse_join(table: str) -> Optional[JoinSpec]:
    """Detect ``t1 (INNER|LEFT|RIGHT) JOIN t2 ON c1 = c2`` in a table expression."""
    match = _JOIN_RE.search(table)
    if match is None:
        return None
    left, join_type, right, c1, c2 = match.groups()
    return JoinSpec(left, join_type.upper(), right, c1, c2)


def fold_where(where_sql: str) -> str:
    """
    Turn ``" WHERE cond"`` into ``" AND (cond)"`` for appending to a join condition.

    Returns an empty string for an empty where.
    """
    condition = _LEADING_WHERE_RE.sub("", where_sql or "").strip()
    if not condition:
        return ""
    return f" AND ({condition})"


def references_table(sql: str, table: str) -> bool:
    """True if ``sql`` names a column qualified by ``table`` (``table.col``)."""
    pattern = r"(?<![\w$])" + re.escape(table) + r"\s*\."
    return re.search(pattern, sql or "", re.IGNORECASE) is not None


class DatabaseDialect(ABC):
    """
    Abstract base class for database dialects.

    Each dialect knows how to:
    1. Render its row-limiting clause from a limit spec
    2. Query system catalogs for columns and tables
    3. Rewrite DELETE statements over a JOIN into a valid form
    4. Open a client connection

    Usage:
        dialect = DialectFactory.create("pgsql")
        dialect.limit_clause("20,10")   # " LIMIT 10 OFFSET 20"
        client = dialect.connect(settings)
    """

    name: str = ""
    column_name_key: str = "column_name"
    supports_last_insert_id: bool = False
    limit_position: str = "suffix"      # "prefix" renders right after SELECT
    column_case: Optional[str] = None
    default_port: Optional[int] = None

    # ==================== Identifier Quoting ====================

    quote_char = '"'

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote a (possibly schema-qualified) identifier.

        Raises:
            InvalidParameterError: If the name is not a plain identifier
        """
        identifier = identifier.strip()
        if not _IDENTIFIER_RE.match(identifier):
            raise InvalidParameterError(f"Invalid identifier: {identifier!r}")
        return ".".join(f"{self.quote_char}{part}{self.quote_char}" for part in identifier.split("."))

    # ==================== Row Limiting ====================

    @staticmethod
    def parse_limit(spec: LimitSpec) -> Tuple[Optional[int], int]:
        """
        Split a limit spec into (offset, count).

        Accepts a count (``10`` / ``"10"``) or an ``"offset,count"`` pair.

        Raises:
            InvalidParameterError: If the spec is not one or two
                non-negative integers
        """
        if isinstance(spec, bool) or not isinstance(spec, (int, str)):
            raise InvalidParameterError(f"Invalid limit: {spec!r}")

        if isinstance(spec, int):
            parts = [str(spec)]
        else:
            parts = [part.strip() for part in spec.split(",")]

        if len(parts) not in (1, 2) or not all(part.isdigit() for part in parts):
            raise InvalidParameterError(f"Invalid limit: {spec!r}")

        if len(parts) == 1:
            return None, int(parts[0])
        return int(parts[0]), int(parts[1])

    def limit_clause(self, spec: LimitSpec) -> str:
        """Render the row-limiting fragment for a limit spec."""
        offset, count = self.parse_limit(spec)
        return self._render_limit(count, offset)

    @abstractmethod
    def _render_limit(self, count: int, offset: Optional[int]) -> str:
        pass

    # ==================== Introspection ====================

    @abstractmethod
    def columns_sql(self, table: str) -> Tuple[str, Dict[str, Any]]:
        """SQL and placeholders listing the columns of a table."""
        pass

    @abstractmethod
    def tables_sql(self) -> str:
        """SQL listing base tables (first column is the table name)."""
        pass

    # ==================== DELETE ====================

    def delete_sql(self, table: str, where_sql: str = "") -> str:
        """
        Render a DELETE for a plain table or a two-table JOIN expression.

        A LEFT JOIN keeps every left row, so when the condition names no
        ``<right_table>.`` column it becomes a plain delete of the left
        table with that condition. Conditions on right-table columns go
        through the dialect's join form, which only deletes left rows that
        have a match; an anti-join such as ``right.id IS NULL`` cannot be
        expressed that way.
        """
        where_sql = where_sql or ""
        join = parse_join(table)
        if join is None:
            return f"DELETE FROM {table.strip()}{where_sql}"
        if join.join_type == "LEFT" and not references_table(where_sql, join.right_table):
            return f"DELETE FROM {join.left_table}{where_sql}"
        return self._join_delete_sql(table.strip(), join, where_sql)

    def _join_delete_sql(self, table: str, join: JoinSpec, where_sql: str) -> str:
        """Correlated EXISTS rewrite, valid on every backend."""
        return (
            f"DELETE FROM {join.left_table} WHERE EXISTS "
            f"(SELECT * FROM {join.right_table} WHERE {join.condition}{fold_where(where_sql)})"
        )

    # ==================== Connection ====================

    def session_setup_sql(self) -> List[str]:
        """Statements run once right after connecting."""
        return []

    @abstractmethod
    def connect(self, settings: ConnectionSettings) -> DbApiClient:
        """
        Open a connection and wrap it in a client.

        Raises:
            DatabaseConnectionError: If the driver is missing or the
                connection fails
        """
        pass

    def _client(self, connection: Any, paramstyle: str) -> DbApiClient:
        client = DbApiClient(connection, paramstyle=paramstyle, column_case=self.column_case)
        for sql in self.session_setup_sql():
            client.exec(sql)
        return client
