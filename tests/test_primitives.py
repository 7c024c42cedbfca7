"""
Tests for subcollection/views/primitives.py: OrderSpec, Ordering, Window.
"""
import pytest

from subcollection.models import Record
from subcollection.views.primitives import OrderSpec, Ordering, Window


class MockWidget:
    """Mock record for ordering tests."""
    def __init__(self, id: int, name=None):
        self.id = id
        self.name = name


class TestOrderSpec:
    """Tests for OrderSpec parsing and keys."""

    def test_from_string_ascending(self):
        spec = OrderSpec.from_string("awesomeness")
        assert spec.field == "awesomeness"
        assert spec.direction == "asc"

    def test_from_string_descending(self):
        spec = OrderSpec.from_string("id DESC")
        assert spec.direction == "desc"
        assert str(spec) == "id desc"

    @pytest.mark.parametrize("value", ["", "   ", "id up", "id desc extra"])
    def test_from_string_invalid(self, value):
        with pytest.raises(ValueError):
            OrderSpec.from_string(value)

    def test_nulls_sort_last(self):
        """Records missing the field sort after all others, either direction."""
        widgets = [MockWidget(1, None), MockWidget(2, "b"), MockWidget(3, "a")]

        asc = sorted(widgets, key=OrderSpec("name").key)
        desc = sorted(widgets, key=OrderSpec("name", "desc").key)

        assert [w.id for w in asc] == [3, 2, 1]
        assert [w.id for w in desc] == [2, 3, 1]


class TestOrdering:
    """Tests for compiled comparators."""

    def test_field_name(self):
        ordering = Ordering("id desc")
        widgets = ordering.sort([MockWidget(1), MockWidget(3), MockWidget(2)])
        assert [w.id for w in widgets] == [3, 2, 1]
        assert ordering.field == "id"

    def test_record_accessor(self):
        ordering = Ordering("name")
        records = ordering.sort([Record(id=1, name="b"), Record(id=2, name="a")])
        assert [r.id for r in records] == [2, 1]

    def test_key_function(self):
        ordering = Ordering(lambda w: -w.id)
        widgets = ordering.sort([MockWidget(1), MockWidget(2)])
        assert [w.id for w in widgets] == [2, 1]
        assert ordering.field is None

    def test_compare_function(self):
        def by_id_desc(a, b):
            return b.id - a.id

        widgets = Ordering(by_id_desc).sort([MockWidget(1), MockWidget(3), MockWidget(2)])
        assert [w.id for w in widgets] == [3, 2, 1]

    def test_compare_function_keys_are_comparable(self):
        ordering = Ordering(lambda a, b: a.id - b.id)
        assert ordering.key(MockWidget(1)) < ordering.key(MockWidget(2))

    def test_builtin_key(self):
        assert Ordering(abs).sort([-3, 1, -2]) == [1, -2, -3]

    def test_stable(self):
        widgets = [MockWidget(i, "same") for i in range(5)]
        assert [w.id for w in Ordering("name").sort(widgets)] == [0, 1, 2, 3, 4]

    def test_invalid(self):
        with pytest.raises(TypeError):
            Ordering(42)


class TestWindow:
    """Tests for offset/limit windows."""

    def test_unbounded(self):
        window = Window()
        assert window.apply([1, 2, 3]) == [1, 2, 3]
        assert not window.is_bounded

    def test_limit(self):
        assert Window(limit=2).apply([1, 2, 3]) == [1, 2]

    def test_offset_and_limit(self):
        window = Window(offset=1, limit=2)
        assert window.apply([1, 2, 3, 4]) == [2, 3]
        assert window.start == 1
        assert window.stop == 3

    def test_zero_limit(self):
        window = Window(limit=0)
        assert window.apply([1, 2]) == []
        assert window.is_bounded

    def test_offset_past_end(self):
        assert Window(offset=10).apply([1, 2]) == []

    def test_contains(self):
        window = Window(offset=2, limit=2)
        assert not window.contains(1)
        assert window.contains(2)
        assert window.contains(3)
        assert not window.contains(4)
        assert Window(offset=2).contains(1000)
