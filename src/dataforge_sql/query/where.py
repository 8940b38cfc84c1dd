"""
Where Clause - Compile condition sets into parameterized WHERE SQL

A condition is either a raw SQL string or an ordered mapping of
``"<column> [operator]"`` keys to values:

    where.set({"status": "open", "age >": 30, 0: "deleted_at IS NULL"})
    where.sql           # " WHERE status = :a_status AND age > :a_age AND deleted_at IS NULL"
    where.placeholders  # {"a_status": "open", "a_age": 30}

Integer keys (or bare strings inside a list condition) are raw fragments
and produce no placeholder.
"""

from string import ascii_lowercase
from typing import Any, Dict, Iterable, List, Mapping, Set, Tuple, Union
import re

from ..exceptions import ConditionCompileError
from .utilities import format_value

import logging
logger = logging.getLogger(__name__)


Condition = Union[None, str, Mapping[Any, Any], List[Any], Tuple[Any, ...]]

# Leading identifier of a condition key, up to the first space or operator
_IDENTIFIER_RE = re.compile(r"^\s*([^\s=<>!]*)")
_NON_WORD_RE = re.compile(r"\W")


def _is_empty(value: Any) -> bool:
    """Null and empty values are dropped; 0 and False are kept."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, dict)):
        return len(value) == 0
    return False


class WhereClause:
    """
    Compiled WHERE clause with collision-free placeholder names.

    Placeholder names are ``<letter>_<column>`` where the letter is the first
    of a..z not already taken by this compile, by the previous compile of
    the same instance, or by the ``reserved`` names passed in (the value
    placeholders of an INSERT/UPDATE sharing the statement).
    """

    def __init__(self):
        self.sql: str = ""
        self.placeholders: Dict[str, Any] = {}
        self._previous_names: Set[str] = set()

    def set(self, condition: Condition, reserved: Iterable[str] = ()) -> "WhereClause":
        """
        Compile a condition into SQL and placeholders.

        Args:
            condition: Raw SQL string, mapping, or list of raw fragments
                and (key, value) pairs
            reserved: Placeholder names already used by the statement

        Returns:
            self

        Raises:
            ConditionCompileError: If a key yields no column name, the
                condition type is unsupported, or names are exhausted
        """
        self._retire()

        if condition is None:
            return self

        if isinstance(condition, str):
            text = condition.strip()
            if text:
                self.sql = f" WHERE {text}"
            return self

        if isinstance(condition, Mapping):
            entries = list(condition.items())
        elif isinstance(condition, (list, tuple)):
            entries = [self._as_entry(item) for item in condition]
        else:
            raise ConditionCompileError(
                f"Unsupported condition type: {type(condition).__name__}"
            )

        taken = set(reserved)
        fragments = []
        for key, value in entries:
            if _is_empty(value):
                continue
            if isinstance(key, str):
                fragments.append(self._compile_keyed(key, value, taken))
            elif isinstance(key, int) and not isinstance(key, bool):
                if not isinstance(value, str):
                    raise ConditionCompileError(
                        f"Raw condition fragment must be a string, got {type(value).__name__}"
                    )
                fragments.append(value.strip())
            else:
                raise ConditionCompileError(f"Invalid condition key: {key!r}")

        if fragments:
            self.sql = " WHERE " + " AND ".join(fragments)
        logger.debug(f"Compiled where clause: {self.sql!r}")
        return self

    def reset(self) -> "WhereClause":
        """Clear SQL and placeholders."""
        self._retire()
        return self

    # ==================== Internals ====================

    @staticmethod
    def _as_entry(item: Any) -> Tuple[Any, Any]:
        if isinstance(item, str):
            return 0, item
        if isinstance(item, tuple) and len(item) == 2:
            return item
        raise ConditionCompileError(f"Invalid condition entry: {item!r}")

    def _retire(self) -> None:
        """Forget the current compile but remember its names."""
        if self.placeholders:
            self._previous_names = set(self.placeholders)
        self.sql = ""
        self.placeholders = {}

    def _compile_keyed(self, key: str, value: Any, taken: Set[str]) -> str:
        match = _IDENTIFIER_RE.match(key)
        identifier = match.group(1) if match else ""
        if not identifier:
            raise ConditionCompileError(f"No column name in condition key: {key!r}")

        name = self._allocate_name(_NON_WORD_RE.sub("_", identifier), taken)
        self.placeholders[name] = format_value(value)

        trimmed = key.strip()
        if trimmed == identifier:
            return f"{trimmed} = :{name}"
        return f"{trimmed} :{name}"

    def _allocate_name(self, base: str, taken: Set[str]) -> str:
        for letter in ascii_lowercase:
            name = f"{letter}_{base}"
            if name in self.placeholders or name in self._previous_names or name in taken:
                continue
            return name
        raise ConditionCompileError(f"No free placeholder name left for column: {base}")
