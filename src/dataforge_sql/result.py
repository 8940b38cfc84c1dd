"""
Result - executed statement wrappers

ResultCursor holds the one live statement of a query builder.
ExecutionResult is the value returned by QueryBuilder.execute().
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from .client import FetchMode, Statement
from .query.query_type import QueryType


class ResultCursor:
    """Row stream of the last executed statement."""

    def __init__(self):
        self._statement: Optional[Statement] = None

    def set(self, statement: Statement) -> None:
        self._statement = statement

    def reset(self) -> None:
        self._statement = None

    @property
    def has_statement(self) -> bool:
        return self._statement is not None

    def fetch(self, mode: FetchMode = FetchMode.OBJECT) -> Any:
        """Next row, or None when there is no statement or no more rows."""
        if self._statement is None:
            return None
        return self._statement.fetch(mode)

    def fetch_all(self, mode: FetchMode = FetchMode.OBJECT) -> List[Any]:
        """Remaining rows, or an empty list when there is no statement."""
        if self._statement is None:
            return []
        return self._statement.fetch_all(mode)


@dataclass
class ExecutionResult:
    """
    Outcome of one execute() call.

    Truthy for reads, and for writes that affected at least one row.
    ``simulated`` marks debug-mode writes that were rolled back or not sent.
    """
    query_type: QueryType
    sql: str
    affected_rows: int = 0
    last_insert_id: Any = None
    elapsed: float = 0.0
    is_read: bool = False
    simulated: bool = False

    def __bool__(self) -> bool:
        return self.is_read or self.affected_rows > 0
