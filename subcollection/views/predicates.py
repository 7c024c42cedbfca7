"""
Predicate system for view membership.

A predicate is any callable ``record -> bool``. Plain functions work as
they are; the classes here add declarative equality tests (compiled from
``where`` clauses) and logical composition with ``&``, ``|`` and ``~``.

A record belongs to a view iff every predicate in its PredicateSet
accepts it. Predicates are identified by reference: removing one
removes the exact object that was added.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List

from subcollection.utils import read_property, strict_equal

logger = logging.getLogger(__name__)

PredicateFunc = Callable[[Any], bool]


class Predicate(ABC):
    """
    Abstract base for declarative predicates.

    Predicates are callable, so they can sit in a PredicateSet next to
    plain functions, and combine with &, |, ~ operators.
    """

    @abstractmethod
    def matches(self, record: Any) -> bool:
        """Test if a record matches this predicate."""
        pass

    def __call__(self, record: Any) -> bool:
        return self.matches(record)

    def __and__(self, other: PredicateFunc) -> "Predicate":
        """Logical AND: self & other"""
        return CompoundPredicate("all", [self, other])

    def __or__(self, other: PredicateFunc) -> "Predicate":
        """Logical OR: self | other"""
        return CompoundPredicate("any", [self, other])

    def __invert__(self) -> "Predicate":
        """Logical NOT: ~self"""
        return CompoundPredicate("not", [self])


@dataclass(eq=False)
class WherePredicate(Predicate):
    """Match records whose property equals a value (one ``where`` entry)."""
    field: str
    value: Any

    def matches(self, record: Any) -> bool:
        return strict_equal(read_property(record, self.field), self.value)

    def __repr__(self) -> str:
        return f"WherePredicate({self.field}={self.value!r})"


@dataclass(eq=False)
class CompoundPredicate(Predicate):
    """
    Logical combination of predicates.

    Operators:
    - 'all': AND (all must match)
    - 'any': OR (at least one must match)
    - 'not': NOT (negate single predicate)
    """
    operator: str  # 'all', 'any', 'not'
    predicates: List[PredicateFunc]

    def __post_init__(self):
        if self.operator not in ("all", "any", "not"):
            raise ValueError(f"Unknown predicate operator: {self.operator!r}")

    def matches(self, record: Any) -> bool:
        if self.operator == "all":
            return all(p(record) for p in self.predicates)
        elif self.operator == "any":
            return any(p(record) for p in self.predicates)
        if self.predicates:
            return not self.predicates[0](record)
        return True


@dataclass(eq=False)
class FunctionPredicate(Predicate):
    """Wrap a named function, e.g. one registered in a SpecRegistry."""
    func: PredicateFunc
    name: str = "custom predicate"

    def matches(self, record: Any) -> bool:
        return bool(self.func(record))

    def __repr__(self) -> str:
        return f"FunctionPredicate({self.name!r})"


class PredicateSet:
    """
    Ordered collection of predicates combined with logical AND.

    An empty set accepts every record.
    """

    def __init__(self, predicates: Iterable[PredicateFunc] = ()):
        self._predicates: List[PredicateFunc] = []
        for predicate in predicates:
            self.add(predicate)

    def add(self, predicate: PredicateFunc) -> None:
        if not callable(predicate):
            raise TypeError(f"Predicate must be callable, got {type(predicate).__name__}")
        self._predicates.append(predicate)

    def remove(self, predicate: PredicateFunc) -> bool:
        """Remove the first reference-equal predicate. Returns False if absent."""
        for i, candidate in enumerate(self._predicates):
            if candidate is predicate:
                del self._predicates[i]
                return True
        logger.debug(f"Predicate {predicate!r} not in set, nothing removed")
        return False

    def swap(self, new: Iterable[PredicateFunc], old: Iterable[PredicateFunc]) -> None:
        """Remove each of ``old`` then add each of ``new``."""
        new = list(new)
        for predicate in new:
            if not callable(predicate):
                raise TypeError(f"Predicate must be callable, got {type(predicate).__name__}")
        for predicate in list(old):
            self.remove(predicate)
        for predicate in new:
            self._predicates.append(predicate)

    def clear(self) -> None:
        self._predicates = []

    def test(self, record: Any) -> bool:
        """True iff every predicate accepts the record."""
        for predicate in self._predicates:
            if not predicate(record):
                return False
        return True

    def apply(self, records: Iterable[Any]) -> List[Any]:
        """Records passing every predicate, in input order."""
        if not self._predicates:
            return list(records)
        return [r for r in records if self.test(r)]

    def to_list(self) -> List[PredicateFunc]:
        return list(self._predicates)

    def __len__(self) -> int:
        return len(self._predicates)

    def __iter__(self) -> Iterator[PredicateFunc]:
        return iter(list(self._predicates))

    def __contains__(self, predicate: Any) -> bool:
        return any(p is predicate for p in self._predicates)

    def __repr__(self) -> str:
        return f"PredicateSet({self._predicates!r})"
