"""
Query Parameters - Auxiliary clause settings for SELECT statements
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional, Union

from ..exceptions import InvalidParameterError

LimitSpec = Union[None, int, str]


@dataclass
class QueryParameters:
    """
    DISTINCT flag, GROUP BY, ORDER BY and limit for one query.

    ``limit`` is a row count (``10`` or ``"10"``) or an ``"offset,count"``
    pair (``"20,10"``); dialects render it.

    Usage:
        params = QueryParameters()
        params.set("order_by", "name ASC")
        params.set("limit", "20,10")
        params.set("oder_by", "x")   # raises InvalidParameterError
    """
    select_distinct: bool = False
    group_by: Optional[str] = None
    order_by: Optional[str] = None
    limit: LimitSpec = None

    @classmethod
    def names(cls) -> tuple:
        """Declared parameter names."""
        return tuple(f.name for f in fields(cls))

    def _check(self, name: str) -> None:
        if name not in self.names():
            raise InvalidParameterError(
                f"Invalid parameter '{name}'. Expected one of: {', '.join(self.names())}"
            )

    def set(self, name: str, value: Any) -> "QueryParameters":
        """Set a parameter by name."""
        self._check(name)
        setattr(self, name, value)
        return self

    def get(self, name: str) -> Any:
        """Get a parameter by name."""
        self._check(name)
        return getattr(self, name)

    def update(self, values: Optional[Mapping[str, Any]]) -> "QueryParameters":
        """Set several parameters at once."""
        for name, value in (values or {}).items():
            self.set(name, value)
        return self

    def reset(self) -> "QueryParameters":
        """Restore every parameter to its default."""
        for f in fields(self):
            setattr(self, f.name, f.default)
        return self

    def get_all(self) -> Dict[str, Any]:
        """All parameters as a dict."""
        return asdict(self)
