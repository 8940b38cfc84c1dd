"""
Unit tests for QueryParameters.
"""
import pytest

from dataforge_sql.exceptions import InvalidParameterError
from dataforge_sql.query.parameters import QueryParameters


class TestQueryParameters:
    """Test named access to the auxiliary SELECT parameters."""

    @pytest.fixture
    def params(self):
        return QueryParameters()

    def test_defaults(self, params):
        """Test the default of every parameter."""
        assert params.get_all() == {
            "select_distinct": False,
            "group_by": None,
            "order_by": None,
            "limit": None,
        }

    def test_set_and_get(self, params):
        """Test round trip through set() and get()."""
        params.set("order_by", "name ASC").set("limit", "20,10")

        assert params.get("order_by") == "name ASC"
        assert params.limit == "20,10"

    @pytest.mark.parametrize("name", ["oder_by", "offset", ""])
    def test_unknown_name(self, params, name):
        """Test that misspelt names are rejected on set and get."""
        with pytest.raises(InvalidParameterError, match="Expected one of"):
            params.set(name, 1)
        with pytest.raises(InvalidParameterError):
            params.get(name)

    def test_update_and_reset(self, params):
        """Test bulk update followed by a reset to defaults."""
        params.update({"select_distinct": True, "group_by": "country"})
        assert params.select_distinct is True

        params.reset()
        assert params.get_all() == QueryParameters().get_all()

    def test_update_stops_at_unknown_name(self, params):
        """Test that an unknown name in a bulk update raises."""
        with pytest.raises(InvalidParameterError):
            params.update({"order_by": "id", "having": "x"})
