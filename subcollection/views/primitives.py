"""
Ordering and windowing primitives.

- OrderSpec: a single sort field with a direction
- Ordering: a compiled comparator (field string, key function or
  two-argument compare function) producing sort keys
- Window: the offset/limit slice applied to the filtered records
"""

import inspect
from dataclasses import dataclass
from functools import cmp_to_key, total_ordering
from typing import Any, Callable, List, Optional, Sequence, Union

from subcollection.utils import read_property

Comparator = Union[str, Callable[..., Any]]


@total_ordering
class _Descending:
    """Sort key wrapper inverting the natural order of a value."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other: Any) -> bool:
        return self.value == other.value

    def __lt__(self, other: Any) -> bool:
        return other.value < self.value

    def __repr__(self) -> str:
        return f"_Descending({self.value!r})"


@dataclass(frozen=True)
class OrderSpec:
    """Specification for a single sort field."""
    field: str
    direction: str = "asc"  # 'asc' or 'desc'

    @classmethod
    def from_string(cls, spec_str: str) -> "OrderSpec":
        """
        Parse an order specification.

        Examples:
            "awesomeness"
            "id desc"
        """
        tokens = spec_str.split()
        if not tokens:
            raise ValueError("Empty comparator string")
        if len(tokens) > 2:
            raise ValueError(f"Invalid comparator string: {spec_str!r}")

        direction = tokens[1].lower() if len(tokens) > 1 else "asc"
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid sort direction {tokens[1]!r} in {spec_str!r}")

        return cls(field=tokens[0], direction=direction)

    def key(self, record: Any) -> tuple:
        value = read_property(record, self.field)

        # Nulls always sort last
        if value is None:
            return (1, 0)

        if self.direction == "desc":
            return (0, _Descending(value))
        return (0, value)

    def __str__(self) -> str:
        return self.field if self.direction == "asc" else f"{self.field} {self.direction}"


def _positional_arity(func: Callable) -> int:
    """Number of required positional parameters, 1 when unknown."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return 1

    required = 0
    for param in signature.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            if param.default is param.empty:
                required += 1
        elif param.kind == param.VAR_POSITIONAL:
            return max(required, 1)
    return required


class Ordering:
    """
    A compiled comparator.

    Accepts a field name (``"id"``, ``"id desc"``), a one-argument key
    function, or a two-argument compare function returning a negative,
    zero or positive number.
    """

    def __init__(self, comparator: Comparator):
        self.comparator = comparator
        self.spec: Optional[OrderSpec] = None

        if isinstance(comparator, str):
            self.spec = OrderSpec.from_string(comparator)
            self._key = self.spec.key
        elif callable(comparator):
            if _positional_arity(comparator) >= 2:
                self._key = cmp_to_key(comparator)
            else:
                self._key = comparator
        else:
            raise TypeError(
                f"Comparator must be a field name or a callable, got {type(comparator).__name__}"
            )

    @property
    def field(self) -> Optional[str]:
        """The sort field when the comparator is a field name."""
        return self.spec.field if self.spec else None

    def key(self, record: Any) -> Any:
        return self._key(record)

    def sort(self, records: Sequence[Any]) -> List[Any]:
        """Stable ascending sort by this ordering."""
        return sorted(records, key=self._key)

    def __repr__(self) -> str:
        if self.spec:
            return f"Ordering({str(self.spec)!r})"
        return f"Ordering({getattr(self.comparator, '__name__', self.comparator)!r})"


@dataclass
class Window:
    """
    Offset/limit slice over the filtered records.

    ``limit`` of None means unbounded; ``limit`` of 0 means empty.
    ``offset`` of None means 0.
    """
    offset: Optional[int] = None
    limit: Optional[int] = None

    @property
    def start(self) -> int:
        return self.offset or 0

    @property
    def stop(self) -> Optional[int]:
        if self.limit is None:
            return None
        return self.start + self.limit

    @property
    def is_bounded(self) -> bool:
        return self.limit is not None or self.start > 0

    def apply(self, records: Sequence[Any]) -> List[Any]:
        return list(records[self.start:self.stop])

    def contains(self, position: int) -> bool:
        """Whether a filtered position falls inside the window."""
        if position < self.start:
            return False
        stop = self.stop
        return stop is None or position < stop

    def __repr__(self) -> str:
        return f"Window(offset={self.offset}, limit={self.limit})"
