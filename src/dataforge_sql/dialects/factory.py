"""
Dialect Factory - Create the dialect registered under a driver name
"""

from typing import Dict, List, Type

from .base import DatabaseDialect
from ..exceptions import UnsupportedDialectError

import logging
logger = logging.getLogger(__name__)


class DialectFactory:
    """
    Factory for creating database dialects.

    Usage:
        dialect = DialectFactory.create("pgsql")
        sql = dialect.delete_sql("orders", " WHERE id = :a_id")
    """

    # Registry of supported driver names
    _dialects: Dict[str, Type[DatabaseDialect]] = {}

    @classmethod
    def create(cls, driver: str) -> DatabaseDialect:
        """
        Create a dialect for the specified driver name.

        Args:
            driver: Driver name (mysql, pgsql, oci, firebird, sqlite or an alias)

        Returns:
            DatabaseDialect instance

        Raises:
            UnsupportedDialectError: If no dialect is registered for the name
        """
        dialect_class = cls._dialects.get(driver.strip().lower())
        if dialect_class is None:
            logger.warning(f"No dialect for driver: {driver}")
            raise UnsupportedDialectError(driver)

        return dialect_class()

    @classmethod
    def is_supported(cls, driver: str) -> bool:
        """Check if a driver name is supported."""
        return driver.strip().lower() in cls._dialects

    @classmethod
    def supported_types(cls) -> List[str]:
        """Get list of supported driver names (aliases included)."""
        return list(cls._dialects.keys())

    @classmethod
    def register(cls, driver: str, dialect_class: Type[DatabaseDialect]):
        """
        Register a new dialect.

        Args:
            driver: Driver name
            dialect_class: DatabaseDialect subclass
        """
        cls._dialects[driver.lower()] = dialect_class
        logger.debug(f"Registered dialect for: {driver}")


def _register_default_dialects():
    """Register built-in dialects. Called on module import."""
    from .mysql_dialect import MySQLDialect
    from .postgresql_dialect import PostgreSQLDialect
    from .oracle_dialect import OracleDialect
    from .firebird_dialect import FirebirdDialect
    from .sqlite_dialect import SQLiteDialect

    DialectFactory.register("mysql", MySQLDialect)
    DialectFactory.register("mariadb", MySQLDialect)  # Alias
    DialectFactory.register("pgsql", PostgreSQLDialect)
    DialectFactory.register("postgresql", PostgreSQLDialect)  # Alias
    DialectFactory.register("postgres", PostgreSQLDialect)  # Alias
    DialectFactory.register("oci", OracleDialect)
    DialectFactory.register("oracle", OracleDialect)  # Alias
    DialectFactory.register("firebird", FirebirdDialect)
    DialectFactory.register("sqlite", SQLiteDialect)


# Register on module import
_register_default_dialects()
