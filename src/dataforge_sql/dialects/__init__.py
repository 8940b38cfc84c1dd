"""
Database Dialects - Backend-specific SQL rendering and connection

Usage:
    from dataforge_sql.dialects import DialectFactory

    dialect = DialectFactory.create("oci")
    dialect.limit_clause("20,10")       # " OFFSET 20 ROWS FETCH NEXT 10 ROWS ONLY"
    dialect.delete_sql(
        "orders LEFT JOIN customers ON orders.customer_id = customers.id",
        " WHERE customers.country = :a_customers_country",
    )
"""

from .base import DatabaseDialect, JoinSpec, parse_join
from .factory import DialectFactory

from .mysql_dialect import MySQLDialect
from .postgresql_dialect import PostgreSQLDialect
from .oracle_dialect import OracleDialect
from .firebird_dialect import FirebirdDialect
from .sqlite_dialect import SQLiteDialect

__all__ = [
    # Base classes
    "DatabaseDialect",
    "JoinSpec",
    "parse_join",

    # Factory
    "DialectFactory",

    # Implementations
    "MySQLDialect",
    "PostgreSQLDialect",
    "OracleDialect",
    "FirebirdDialect",
    "SQLiteDialect",
]
