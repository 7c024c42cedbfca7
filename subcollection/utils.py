"""
Small helpers shared by records, collections and views.
"""

from typing import Any, Hashable, Optional


def read_property(record: Any, name: str, default: Optional[Any] = None) -> Any:
    """
    Read a named property from a record.

    Records exposing a ``get(name)`` accessor (Record instances, plain
    dicts) are read through it; anything else falls back to attribute
    access. Missing properties yield ``default``.
    """
    getter = getattr(record, "get", None)
    if callable(getter):
        value = getter(name)
        return default if value is None else value
    return getattr(record, name, default)


def is_hashable(value: Any) -> bool:
    """Check whether a value can be used as a dictionary key."""
    if not isinstance(value, Hashable):
        return False
    try:
        hash(value)
    except TypeError:
        return False
    return True


def as_list(value: Any) -> list:
    """Wrap a single item in a list; copy lists and tuples; None is empty."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def strict_equal(left: Any, right: Any) -> bool:
    """
    Equality that keeps booleans apart from numbers.

    ``True == 1`` holds in Python; here a bool only equals a bool. Ints and
    floats still compare by value, so ``1`` matches ``1.0``.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right
