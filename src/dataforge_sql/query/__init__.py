"""
Query - building blocks of the query builder

Where clause compilation, auxiliary parameters, query kinds, debug
capture and statement classification helpers.
"""

from .debugger import DebugEntry, DebugMode, Debugger
from .parameters import QueryParameters
from .query_type import QueryType
from .utilities import (
    ParamType,
    get_data_type,
    interpolate_query,
    is_select_statement,
    is_sql_autocommit,
)
from .where import WhereClause

__all__ = [
    "DebugEntry",
    "DebugMode",
    "Debugger",
    "ParamType",
    "QueryParameters",
    "QueryType",
    "WhereClause",
    "get_data_type",
    "interpolate_query",
    "is_select_statement",
    "is_sql_autocommit",
]
