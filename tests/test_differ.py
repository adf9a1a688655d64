"""Tests for the structural differ."""

import pytest

from apitrail.diffing import diff, values_equal
from apitrail.models import Added, Changed, Nested, Removed


class TestDiff:
    """Tests for diff()."""

    def test_changed_scalar_field(self):
        """Test a renamed item produces a single Changed leaf."""
        result = diff({"name": "Old Item"}, {"name": "New Item"})
        assert result == Nested({"name": Changed("Old Item", "New Item")})

    @pytest.mark.parametrize(
        "value",
        [None, 1, "x", True, [1, 2], {"a": {"b": [1, {"c": 2}]}}],
    )
    def test_equal_values_have_no_diff(self, value):
        assert diff(value, value) is None

    def test_key_order_is_irrelevant(self):
        assert diff({"a": 1, "b": 2}, {"b": 2, "a": 1}) is None

    def test_added_and_removed_keys(self):
        result = diff({"a": 1, "gone": True}, {"a": 1, "new": "v"})
        assert result == Nested({"gone": Removed(True), "new": Added("v")})

    def test_nested_objects_recurse(self):
        previous = {"meta": {"color": "red", "size": 1}}
        current = {"meta": {"color": "blue", "size": 1}}
        assert diff(previous, current) == Nested(
            {"meta": Nested({"color": Changed("red", "blue")})}
        )

    def test_arrays_are_atomic(self):
        """Test that any array difference replaces the whole array."""
        result = diff({"tags": [1, 2, 3]}, {"tags": [1, 2, 4]})
        assert result == Nested({"tags": Changed([1, 2, 3], [1, 2, 4])})

    def test_type_change_is_changed(self):
        assert diff({"a": 1}, "a") == Changed({"a": 1}, "a")
        assert diff(1, True) == Changed(1, True)

    def test_integral_float_equals_int(self):
        """Test that 10 and 10.0 are the same JSON number."""
        assert diff({"price": 10}, {"price": 10.0}) is None
        assert diff({"items": [1, 2.0]}, {"items": [1.0, 2]}) is None

    def test_fractional_float_still_changes(self):
        assert diff({"price": 10}, {"price": 10.5}) == Nested({"price": Changed(10, 10.5)})

    def test_bool_is_not_a_number(self):
        assert diff({"flag": 1.0}, {"flag": True}) == Nested({"flag": Changed(1.0, True)})

    def test_null_to_value(self):
        assert diff({"a": None}, {"a": 0}) == Nested({"a": Changed(None, 0)})

    def test_missing_vs_null_differ(self):
        assert diff({}, {"a": None}) == Nested({"a": Added(None)})


class TestDiffSerialization:
    """Tests for DiffNode.to_dict()."""

    def test_serialized_shape(self):
        result = diff(
            {"name": "a", "old": 1, "meta": {"x": 1}},
            {"name": "b", "new": 2, "meta": {"x": 2}},
        )
        assert result.to_dict() == {
            "name": {"previous": "a", "current": "b"},
            "old": {"removed": 1},
            "meta": {"x": {"previous": 1, "current": 2}},
            "new": {"added": 2},
        }

    def test_empty_nested_rejected(self):
        with pytest.raises(ValueError):
            Nested({})


class TestValuesEqual:
    """Tests for values_equal()."""

    def test_deep_equality(self):
        assert values_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})

    def test_array_order_matters(self):
        assert not values_equal([1, 2], [2, 1])
