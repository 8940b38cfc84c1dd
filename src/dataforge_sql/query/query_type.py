"""
Query kinds handled by the query builder.
"""

from enum import Enum


class QueryType(Enum):
    """Kind of statement held by the current query descriptor."""
    RAW = "RAW"
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @property
    def is_write(self) -> bool:
        """True for the structured write kinds."""
        return self in (QueryType.INSERT, QueryType.UPDATE, QueryType.DELETE)
