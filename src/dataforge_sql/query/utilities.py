"""
Query Utilities - Statement classification and value helpers

Provides:
- Bind type inference for placeholder values
- Date/datetime normalization for bound values
- Parameter interpolation for human-readable debug output
- Leading-keyword classification (read vs write, INSERT-like)
- Detection of statements the backend commits implicitly (DDL-like)
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import re

import sqlparse

from ..constants import DATE_FORMAT, DATETIME_FORMAT

import logging
logger = logging.getLogger(__name__)


class ParamType(Enum):
    """Wire type hint attached to each bound value."""
    INT = "int"
    BOOL = "bool"
    NULL = "null"
    STR = "str"


# Statement families that end any open transaction on MySQL-like backends
_AUTOCOMMIT_PATTERNS = [
    re.compile(
        r"ALTER\s+(DATABASE|EVENT|PROCEDURE|SERVER|TABLE|TABLESPACE|VIEW)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"CREATE\s+(DATABASE|EVENT|INDEX|PROCEDURE|SERVER|TABLE|TABLESPACE|TRIGGER|VIEW)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"DROP\s+(DATABASE|EVENT|INDEX|PROCEDURE|SERVER|TABLE|TABLESPACE|TRIGGER|VIEW)\b"
        r"|INSTALL\s+PLUGIN|LOCK\s+TABLES|RENAME\s+TABLE|TRUNCATE\s+TABLE|UNINSTALL\s+PLUGIN",
        re.IGNORECASE,
    ),
]

# Leading keywords of statements that produce a result set
READ_KEYWORDS = {"SELECT", "WITH", "SHOW", "DESCRIBE", "DESC", "EXPLAIN", "PRAGMA"}
INSERT_KEYWORDS = {"INSERT", "REPLACE"}


def get_data_type(value: Any) -> ParamType:
    """
    Infer the bind type of a value.

    bool is tested before int since bool is an int subclass.
    """
    if isinstance(value, bool):
        return ParamType.BOOL
    if isinstance(value, int):
        return ParamType.INT
    if value is None:
        return ParamType.NULL
    return ParamType.STR


def format_value(value: Any) -> Any:
    """Normalize datetime/date values to their SQL text form."""
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return value


def format_values(values: Mapping[Any, Any]) -> Dict[Any, Any]:
    """Apply format_value() to every entry of a placeholder mapping."""
    return {key: format_value(value) for key, value in values.items()}


def _literal(value: Any) -> str:
    """Render one value as a SQL literal for display."""
    value = format_value(value)
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple, set)):
        return ",".join(_literal(item) for item in value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


def interpolate_query(sql: str, placeholders: Optional[Mapping[Any, Any]]) -> str:
    """
    Substitute placeholder values into SQL text.

    The result is for logs and debug output only, never for execution.
    Named keys are replaced longest-first so ``:a_id`` never clobbers
    ``:a_id_parent``; positional keys fill ``?`` markers in order.

    Args:
        sql: SQL text containing ``:name`` or ``?`` markers
        placeholders: Values keyed by name or 1-based position

    Returns:
        SQL text with literals in place of the markers
    """
    if not placeholders:
        return sql

    named = [key for key in placeholders if isinstance(key, str)]
    for key in sorted(named, key=len, reverse=True):
        name = key.lstrip(":")
        pattern = re.compile(rf":{re.escape(name)}(?!\w)")
        literal = _literal(placeholders[key])
        sql = pattern.sub(lambda _m: literal, sql)

    positional = [key for key in placeholders if not isinstance(key, str)]
    for key in sorted(positional):
        literal = _literal(placeholders[key])
        sql = sql.replace("?", literal, 1)

    return sql


def leading_keyword(sql: str) -> str:
    """Return the first keyword of a statement, upper-cased, comments ignored."""
    try:
        cleaned = sqlparse.format(sql, strip_comments=True).strip().upper()
    except Exception:
        cleaned = sql.strip().upper()

    words = cleaned.replace("(", " ").split()
    return words[0] if words else ""


def is_select_statement(sql: str) -> bool:
    """True when the statement returns rows and should take the read path."""
    return leading_keyword(sql) in READ_KEYWORDS


def is_insert_statement(sql: str) -> bool:
    """True for INSERT-shaped raw statements."""
    return leading_keyword(sql) in INSERT_KEYWORDS


def is_sql_autocommit(sql: str) -> bool:
    """
    Check if the backend commits this statement implicitly.

    DDL-like statements cannot be rolled back on most backends, so the
    write path skips explicit transaction wrapping for them.
    """
    return any(pattern.search(sql) for pattern in _AUTOCOMMIT_PATTERNS)
