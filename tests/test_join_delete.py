"""
Integration tests for DELETE over a JOIN, executed on SQLite.

The correlated EXISTS rewrite is shared by SQLite, Oracle and Firebird,
so all three renderings run against the same in-memory database.
"""
import pytest

from dataforge_sql.db import Db
from dataforge_sql.dialects import FirebirdDialect, OracleDialect, SQLiteDialect
from dataforge_sql.query_builder import QueryBuilder


def remaining_order_ids(connection):
    return [row[0] for row in connection.execute("SELECT id FROM orders ORDER BY id")]


@pytest.fixture(params=[SQLiteDialect, OracleDialect, FirebirdDialect],
                ids=["sqlite", "oci", "firebird"])
def join_db(request, shop_db, client):
    """Db rendering with each EXISTS-based dialect over the SQLite client."""
    return Db(QueryBuilder(request.param(), client))


class TestJoinDelete:
    """Test that joined deletes remove exactly the matching left-table rows."""

    def test_inner_join_with_condition(self, join_db, connection):
        """Test deleting orders of French customers."""
        deleted = join_db.delete(
            "orders INNER JOIN customers ON orders.customer_id = customers.id",
            {"customers.country": "FR"},
        )

        assert deleted == 3
        assert remaining_order_ids(connection) == [2, 4]

    def test_left_join_with_condition(self, join_db, connection):
        """Test that the condition applies to the joined table and orphans survive."""
        join_db.delete(
            "orders LEFT JOIN customers ON orders.customer_id = customers.id",
            {"customers.country": "FR"},
        )

        assert remaining_order_ids(connection) == [2, 4]

    def test_left_join_without_condition(self, join_db, connection):
        """Test that an unconditioned LEFT JOIN empties the left table."""
        deleted = join_db.delete("orders LEFT JOIN customers ON orders.customer_id = customers.id")

        assert deleted == 5
        assert remaining_order_ids(connection) == []

    def test_left_join_with_left_table_condition_reaches_orphans(self, join_db, connection):
        """Test that a LEFT JOIN filtered on left columns also deletes unmatched rows."""
        deleted = join_db.delete(
            "orders LEFT JOIN customers ON orders.customer_id = customers.id",
            {"orders.amount >": 35},
        )

        assert deleted == 2
        assert remaining_order_ids(connection) == [1, 2, 3]

    def test_inner_join_without_condition_keeps_orphans(self, join_db, connection):
        """Test that an INNER JOIN without a condition spares rows with no match."""
        join_db.delete("orders INNER JOIN customers ON orders.customer_id = customers.id")

        assert remaining_order_ids(connection) == [4]

    def test_joined_table_is_untouched(self, join_db, connection):
        """Test that only the left table loses rows."""
        join_db.delete(
            "orders INNER JOIN customers ON orders.customer_id = customers.id",
            {"customers.country": "FR"},
        )

        assert join_db.query_value("SELECT COUNT(*) FROM customers") == 3
