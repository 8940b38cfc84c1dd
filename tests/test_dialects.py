"""
Unit tests for the database dialects and DialectFactory.

The MySQL `DELETE t1 FROM` and PostgreSQL `USING` join-delete forms cannot
run on the SQLite fixture, so they are only checked as SQL strings here.
Deleted rows are checked against a live database for the EXISTS dialects
in test_join_delete.py.
"""
import sys
from unittest.mock import MagicMock, patch

import pytest

from dataforge_sql.client import DbApiClient
from dataforge_sql.dialects import (
    DialectFactory,
    FirebirdDialect,
    MySQLDialect,
    OracleDialect,
    PostgreSQLDialect,
    SQLiteDialect,
    parse_join,
)
from dataforge_sql.dialects.base import fold_where
from dataforge_sql.dialects.odbc import build_connection_string
from dataforge_sql.exceptions import (
    DatabaseConnectionError,
    InvalidParameterError,
    UnsupportedDialectError,
)
from dataforge_sql.settings import ConnectionSettings


JOIN_TABLE = "orders INNER JOIN customers ON orders.customer_id = customers.id"
LEFT_JOIN_TABLE = "orders LEFT JOIN customers ON orders.customer_id = customers.id"
WHERE_FR = " WHERE customers.country = :a_customers_country"


class TestDialectFactory:
    """Test dialect lookup by driver name."""

    @pytest.mark.parametrize("driver,expected", [
        ("mysql", MySQLDialect),
        ("mariadb", MySQLDialect),
        ("pgsql", PostgreSQLDialect),
        ("postgresql", PostgreSQLDialect),
        ("oci", OracleDialect),
        ("oracle", OracleDialect),
        ("firebird", FirebirdDialect),
        ("sqlite", SQLiteDialect),
        ("  MySQL ", MySQLDialect),
    ])
    def test_create(self, driver, expected):
        """Test that every registered name and alias creates its dialect."""
        assert isinstance(DialectFactory.create(driver), expected)

    def test_unknown_driver(self):
        """Test that an unknown name raises with the driver in the message."""
        with pytest.raises(UnsupportedDialectError) as exc_info:
            DialectFactory.create("mssql")

        assert "Unsupported driver: mssql" in str(exc_info.value)
        assert isinstance(exc_info.value, DatabaseConnectionError)

    def test_is_supported(self):
        """Test support checks for known and unknown names."""
        assert DialectFactory.is_supported("pgsql")
        assert not DialectFactory.is_supported("db2")

    def test_supported_types_lists_primary_names(self):
        """Test that the five primary driver names are registered."""
        names = DialectFactory.supported_types()

        for name in ("mysql", "pgsql", "oci", "firebird", "sqlite"):
            assert name in names


class TestLimitClauses:
    """Test row-limiting fragments of each dialect."""

    @pytest.mark.parametrize("dialect,spec,expected", [
        (MySQLDialect(), 10, " LIMIT 10"),
        (MySQLDialect(), "20,10", " LIMIT 20, 10"),
        (PostgreSQLDialect(), "10", " LIMIT 10"),
        (PostgreSQLDialect(), "20, 10", " LIMIT 10 OFFSET 20"),
        (SQLiteDialect(), "20,10", " LIMIT 10 OFFSET 20"),
        (OracleDialect(), 10, " FETCH NEXT 10 ROWS ONLY"),
        (OracleDialect(), "20,10", " OFFSET 20 ROWS FETCH NEXT 10 ROWS ONLY"),
        (FirebirdDialect(), 5, "FIRST 5 "),
        (FirebirdDialect(), "20,10", "FIRST 10 SKIP 20 "),
    ])
    def test_limit_clause(self, dialect, spec, expected):
        """Test each dialect's limit fragment for counts and offset pairs."""
        assert dialect.limit_clause(spec) == expected

    @pytest.mark.parametrize("spec", ["abc", "1,2,3", "-5", "10,", True, 2.5, None])
    def test_invalid_limit(self, spec):
        """Test that malformed limits are rejected."""
        with pytest.raises(InvalidParameterError):
            MySQLDialect().limit_clause(spec)

    def test_parse_limit(self):
        """Test splitting a limit spec into offset and count."""
        assert MySQLDialect.parse_limit(7) == (None, 7)
        assert MySQLDialect.parse_limit(" 40 , 20 ") == (40, 20)

    def test_firebird_limit_goes_first(self):
        """Test that only Firebird places the limit right after SELECT."""
        assert FirebirdDialect.limit_position == "prefix"
        assert MySQLDialect.limit_position == "suffix"
        assert OracleDialect.limit_position == "suffix"


class TestIntrospection:
    """Test column and table listing queries."""

    def test_mysql_columns(self):
        """Test that MySQL quotes the table name with backticks."""
        sql, placeholders = MySQLDialect().columns_sql("users")

        assert sql == "SHOW COLUMNS FROM `users`"
        assert placeholders == {}

    def test_postgresql_columns_binds_table_name(self):
        """Test that PostgreSQL passes the table name as a placeholder."""
        sql, placeholders = PostgreSQLDialect().columns_sql("users")

        assert ":table_name" in sql
        assert "information_schema.columns" in sql
        assert placeholders == {"table_name": "users"}

    @pytest.mark.parametrize("dialect", [OracleDialect(), FirebirdDialect()])
    def test_catalog_names_are_upper_case(self, dialect):
        """Test that Oracle and Firebird look up upper-cased table names."""
        _sql, placeholders = dialect.columns_sql("users")

        assert placeholders == {"table_name": "USERS"}

    def test_sqlite_columns(self):
        """Test the SQLite pragma form."""
        assert SQLiteDialect().columns_sql("users") == ('PRAGMA table_info("users")', {})

    def test_column_name_keys(self):
        """Test the key holding the column name in each introspection row."""
        assert MySQLDialect.column_name_key == "Field"
        assert PostgreSQLDialect.column_name_key == "column_name"
        assert OracleDialect.column_name_key == "COLUMN_NAME"
        assert FirebirdDialect.column_name_key == "FIELD_NAME"

    def test_tables_sql_excludes_views(self):
        """Test that MySQL filters views and Firebird filters system relations."""
        assert "Table_Type != 'VIEW'" in MySQLDialect().tables_sql()
        assert "RDB$VIEW_BLR IS NULL" in FirebirdDialect().tables_sql()
        assert "BASE TABLE" in PostgreSQLDialect().tables_sql()

    def test_quote_identifier_rejects_injection(self):
        """Test that non-identifiers are refused before reaching SQL."""
        with pytest.raises(InvalidParameterError):
            MySQLDialect().columns_sql("users; DROP TABLE users")

    def test_quote_schema_qualified(self):
        """Test quoting of schema.table names."""
        assert PostgreSQLDialect().quote_identifier("public.users") == '"public"."users"'


class TestJoinParsing:
    """Test detection of JOIN expressions in DELETE table strings."""

    def test_parse_join(self):
        """Test that the five parts of a join are extracted."""
        join = parse_join(LEFT_JOIN_TABLE)

        assert join.left_table == "orders"
        assert join.join_type == "LEFT"
        assert join.right_table == "customers"
        assert join.condition == "orders.customer_id = customers.id"

    def test_outer_keyword_and_case(self):
        """Test that 'left outer join' in lower case is recognised."""
        join = parse_join("a left outer join b on a.id=b.a_id")

        assert join.join_type == "LEFT"
        assert join.condition == "a.id = b.a_id"

    def test_plain_table(self):
        """Test that a plain table name has no join."""
        assert parse_join("orders") is None

    def test_fold_where(self):
        """Test folding a WHERE clause into an AND group."""
        assert fold_where(" WHERE a = :a_a OR b = 1") == " AND (a = :a_a OR b = 1)"
        assert fold_where("") == ""


class TestDeleteSql:
    """Test DELETE rendering for plain and joined tables."""

    @pytest.mark.parametrize("dialect", [
        MySQLDialect(), PostgreSQLDialect(), OracleDialect(), FirebirdDialect(), SQLiteDialect(),
    ])
    def test_plain_delete(self, dialect):
        """Test that a plain table renders the same on every backend."""
        assert dialect.delete_sql("orders", " WHERE id = :a_id") == "DELETE FROM orders WHERE id = :a_id"

    def test_mysql_keeps_join(self):
        """Test the MySQL multi-table DELETE form."""
        sql = MySQLDialect().delete_sql(LEFT_JOIN_TABLE, WHERE_FR)

        assert sql == (
            "DELETE orders FROM orders LEFT JOIN customers "
            "ON orders.customer_id = customers.id WHERE customers.country = :a_customers_country"
        )

    def test_postgresql_using(self):
        """Test the PostgreSQL USING form."""
        sql = PostgreSQLDialect().delete_sql(JOIN_TABLE, WHERE_FR)

        assert sql == (
            "DELETE FROM orders USING customers WHERE orders.customer_id = customers.id "
            "AND (customers.country = :a_customers_country)"
        )

    @pytest.mark.parametrize("dialect", [OracleDialect(), FirebirdDialect(), SQLiteDialect()])
    def test_exists_form(self, dialect):
        """Test the correlated EXISTS form used by the other backends."""
        sql = dialect.delete_sql(JOIN_TABLE, WHERE_FR)

        assert sql == (
            "DELETE FROM orders WHERE EXISTS (SELECT * FROM customers "
            "WHERE orders.customer_id = customers.id "
            "AND (customers.country = :a_customers_country))"
        )

    @pytest.mark.parametrize("dialect", [
        MySQLDialect(), PostgreSQLDialect(), OracleDialect(), FirebirdDialect(), SQLiteDialect(),
    ])
    def test_left_join_without_where_deletes_left_table(self, dialect):
        """Test that an unconditioned LEFT JOIN deletes every left-table row."""
        assert dialect.delete_sql(LEFT_JOIN_TABLE, "") == "DELETE FROM orders"

    @pytest.mark.parametrize("dialect", [
        MySQLDialect(), PostgreSQLDialect(), OracleDialect(), FirebirdDialect(), SQLiteDialect(),
    ])
    def test_left_join_on_left_columns_is_plain_delete(self, dialect):
        """Test that a LEFT JOIN conditioned only on left-table columns drops the join."""
        sql = dialect.delete_sql(LEFT_JOIN_TABLE, " WHERE orders.amount > :a_orders_amount")

        assert sql == "DELETE FROM orders WHERE orders.amount > :a_orders_amount"

    def test_right_table_reference_is_case_insensitive(self):
        """Test that an upper-case right-table qualifier still selects the join form."""
        sql = SQLiteDialect().delete_sql(LEFT_JOIN_TABLE, " WHERE CUSTOMERS.country = :a_CUSTOMERS_country")

        assert sql.startswith("DELETE FROM orders WHERE EXISTS")


class TestConnect:
    """Test opening connections (drivers mocked where not bundled)."""

    def test_sqlite_connect(self):
        """Test that SQLite connects to an in-memory database."""
        client = SQLiteDialect().connect(ConnectionSettings(driver="sqlite", database=":memory:"))

        assert isinstance(client, DbApiClient)
        assert client.paramstyle == "qmark"
        client.close()

    def test_mysql_driver_missing(self):
        """Test that a missing PyMySQL raises a connection error."""
        with patch.dict(sys.modules, {"pymysql": None}):
            with pytest.raises(DatabaseConnectionError) as exc_info:
                MySQLDialect().connect(ConnectionSettings(driver="mysql"))

        assert "PyMySQL is not installed" in str(exc_info.value)

    def test_postgresql_connect_failure_is_wrapped(self):
        """Test that driver connect errors become DatabaseConnectionError."""
        fake = MagicMock()
        fake.connect.side_effect = RuntimeError("could not connect to server")

        with patch.dict(sys.modules, {"psycopg2": fake}):
            with pytest.raises(DatabaseConnectionError) as exc_info:
                PostgreSQLDialect().connect(ConnectionSettings(driver="pgsql"))

        assert "could not connect to server" in str(exc_info.value)

    def test_mysql_connect_uses_settings(self):
        """Test the arguments passed to pymysql.connect."""
        fake = MagicMock()
        fake.paramstyle = "pyformat"

        with patch.dict(sys.modules, {"pymysql": fake}):
            client = MySQLDialect().connect(ConnectionSettings(
                driver="mysql", host="db", database="shop", user="app", password="pw",
            ))

        kwargs = fake.connect.call_args.kwargs
        assert kwargs["host"] == "db"
        assert kwargs["port"] == 3306
        assert kwargs["database"] == "shop"
        assert kwargs["charset"] == "utf8mb4"
        assert client.paramstyle == "pyformat"

    def test_oracle_runs_session_setup(self):
        """Test that Oracle sets the session date format after connecting."""
        connection = MagicMock()
        cursor = connection.cursor.return_value

        with patch("dataforge_sql.dialects.oracle_dialect.connect_odbc",
                   return_value=connection) as connect_odbc:
            OracleDialect().connect(ConnectionSettings(
                driver="oci", host="ora", database="XE", user="app", password="pw",
            ))

        conn_str = connect_odbc.call_args.args[0]
        assert "DBQ=ora:1521/XE" in conn_str
        assert "DRIVER={Oracle ODBC Driver}" in conn_str
        cursor.execute.assert_called_once_with("ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD'")

    def test_odbc_driver_missing(self):
        """Test that a missing pyodbc raises a connection error."""
        with patch.dict(sys.modules, {"pyodbc": None}):
            with pytest.raises(DatabaseConnectionError) as exc_info:
                FirebirdDialect().connect(ConnectionSettings(driver="firebird", database="/db/shop.fdb"))

        assert "pyodbc is not installed" in str(exc_info.value)

    def test_build_connection_string_skips_empty(self):
        """Test that empty ODBC attributes are left out."""
        conn_str = build_connection_string({"DRIVER": "{X}", "UID": "", "PWD": None, "DBQ": "h/db"})

        assert conn_str == "DRIVER={X};DBQ=h/db"
