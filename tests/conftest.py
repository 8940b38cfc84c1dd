"""
Pytest configuration and fixtures for DataForge SQL tests.
"""
import sqlite3
from unittest.mock import MagicMock

import pytest

from dataforge_sql.client import DatabaseClient, DbApiClient, Statement
from dataforge_sql.db import Db
from dataforge_sql.dialects.sqlite_dialect import SQLiteDialect
from dataforge_sql.query_builder import QueryBuilder


SCHEMA = """
    CREATE TABLE customers (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        country TEXT
    );
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        customer_id INTEGER,
        amount REAL
    );
    CREATE TABLE products (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        price REAL,
        category TEXT
    );
"""


@pytest.fixture
def connection():
    """In-memory SQLite connection with the test schema."""
    conn = sqlite3.connect(":memory:")
    conn.executescript(SCHEMA)
    conn.commit()
    yield conn
    conn.close()


class AbortingCursor:
    """Cursor that refuses every statement once its connection has failed."""

    def __init__(self, owner):
        self._owner = owner
        self._cursor = owner.connection.cursor()

    def execute(self, sql, arguments=()):
        if self._owner.aborted:
            raise sqlite3.InternalError(
                "current transaction is aborted, commands ignored until end of transaction block"
            )
        try:
            self._cursor.execute(sql, arguments)
        except sqlite3.Error:
            self._owner.aborted = True
            raise

    def __getattr__(self, name):
        return getattr(self._cursor, name)


class AbortingConnection:
    """
    DB-API connection that behaves like psycopg2 after an error.

    A failed statement aborts the open transaction, and only rollback()
    makes the connection usable again. There is no in_transaction
    attribute, as on most drivers.
    """

    def __init__(self, connection):
        self.connection = connection
        self.aborted = False
        self.rollbacks = 0

    def cursor(self):
        return AbortingCursor(self)

    def commit(self):
        self.connection.commit()

    def rollback(self):
        self.connection.rollback()
        self.aborted = False
        self.rollbacks += 1


@pytest.fixture
def aborting_connection(connection):
    """Aborting wrapper around the in-memory connection."""
    return AbortingConnection(connection)


@pytest.fixture
def client(connection):
    """DB-API client over the in-memory connection."""
    return DbApiClient(connection, paramstyle="qmark")


@pytest.fixture
def builder(client):
    """QueryBuilder on SQLite."""
    return QueryBuilder(SQLiteDialect(), client)


@pytest.fixture
def db(builder):
    """Db facade on SQLite."""
    return Db(builder)


@pytest.fixture
def shop_db(db, connection):
    """Db with customers, orders and 47 products."""
    connection.executemany(
        "INSERT INTO customers (id, name, country) VALUES (?, ?, ?)",
        [(1, "Alice", "FR"), (2, "Bob", "US"), (3, "Chloe", "FR")],
    )
    connection.executemany(
        "INSERT INTO orders (id, customer_id, amount) VALUES (?, ?, ?)",
        [(1, 1, 10.0), (2, 2, 20.0), (3, 3, 30.0), (4, 99, 40.0), (5, 1, 50.0)],
    )
    connection.executemany(
        "INSERT INTO products (id, name, price, category) VALUES (?, ?, ?, ?)",
        [
            (i, f"Product {i:02d}", float(i), "books" if i % 2 else "games")
            for i in range(1, 48)
        ],
    )
    connection.commit()
    return db


@pytest.fixture
def spy_client():
    """Mock client: records every call, never touches a database."""
    mock = MagicMock(spec=DatabaseClient)
    mock.in_transaction.return_value = False
    statement = MagicMock(spec=Statement)
    statement.row_count.return_value = 1
    mock.prepare.return_value = statement
    return mock
