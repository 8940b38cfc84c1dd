"""
Debugger - Capture of executed statements for inspection

Each execution under debug mode appends a DebugEntry holding the
interpolated SQL, bound values, timing and outcome. ``ON`` also logs each
entry at INFO level; ``SILENT`` only buffers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import sqlparse

from ..constants import DEBUG_NO_QUERY, DEBUG_SIMULATION_NOTICE
from ..exceptions import InvalidParameterError
from .query_type import QueryType
from .utilities import interpolate_query

import logging
logger = logging.getLogger(__name__)


class DebugMode(Enum):
    """Debug capture mode."""
    OFF = "off"
    ON = "on"
    SILENT = "silent"

    @classmethod
    def coerce(cls, value: Union["DebugMode", bool, str]) -> "DebugMode":
        """
        Accept a DebugMode, True/False or "silent".

        Raises:
            InvalidParameterError: For any other value
        """
        if isinstance(value, DebugMode):
            return value
        if value is True:
            return cls.ON
        if value is False:
            return cls.OFF
        if isinstance(value, str) and value.lower() == "silent":
            return cls.SILENT
        raise InvalidParameterError(
            f"Invalid debug mode: {value!r}. Expected True, False or 'silent'"
        )

    @property
    def enabled(self) -> bool:
        return self is not DebugMode.OFF


@dataclass
class DebugEntry:
    """One captured statement."""
    query_type: QueryType
    sql: str
    placeholders: Dict[Any, Any] = field(default_factory=dict)
    elapsed: float = 0.0
    error: Optional[str] = None
    affected_rows: Optional[int] = None
    simulated: bool = False
    executed: bool = True

    def render(self) -> str:
        """Plain-text block describing the entry."""
        lines = []
        if self.simulated:
            lines.append(DEBUG_SIMULATION_NOTICE)
        if self.error:
            lines.append(f"ERROR: {self.error}")
        lines.append(f"TIMER: {self.elapsed:.6f} s")
        lines.append("SQL:")
        lines.append(_pretty(self.sql))
        if self.placeholders:
            lines.append("PARAMS:")
            lines.extend(f"  {key} = {value!r}" for key, value in self.placeholders.items())
        if not self.executed:
            lines.append(DEBUG_NO_QUERY)
        elif self.affected_rows is not None:
            lines.append(f"AFFECTED ROWS: {self.affected_rows}")
        return "\n".join(lines)


def _pretty(sql: str) -> str:
    try:
        return sqlparse.format(sql, reindent=True, keyword_case="upper", indent_width=2)
    except Exception:
        return sql


class Debugger:
    """Accumulating buffer of DebugEntry items."""

    def __init__(self):
        self.entries: List[DebugEntry] = []

    def record(self, mode: DebugMode, query_type: QueryType, sql: str,
               placeholders: Optional[Dict[Any, Any]] = None, elapsed: float = 0.0,
               error: Optional[str] = None, affected_rows: Optional[int] = None,
               simulated: bool = False, executed: bool = True) -> Optional[DebugEntry]:
        """Append an entry when ``mode`` is enabled; log it when ``mode`` is ON."""
        if not mode.enabled:
            return None

        entry = DebugEntry(
            query_type=query_type,
            sql=interpolate_query(sql, placeholders),
            placeholders=dict(placeholders or {}),
            elapsed=elapsed,
            error=error,
            affected_rows=affected_rows,
            simulated=simulated,
            executed=executed,
        )
        self.entries.append(entry)
        if mode is DebugMode.ON:
            logger.info(f"[{query_type.value}]\n{entry.render()}")
        return entry

    def render(self) -> str:
        return "\n\n".join(entry.render() for entry in self.entries)

    def clear(self) -> None:
        self.entries = []
