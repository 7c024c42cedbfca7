"""
Read-only sequence helpers shared by Collection and SubCollection.

Everything here works off ``self.models``, the ordered list of records an
object currently exposes.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from subcollection.utils import read_property

KeyFunc = Union[str, Callable[[Any], Any]]


def _key_func(key: KeyFunc) -> Callable[[Any], Any]:
    if isinstance(key, str):
        return lambda record: read_property(record, key)
    return key


class CollectionMixin:
    """Query helpers over ``self.models``."""

    models: List[Any]

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self.models))

    def __getitem__(self, index):
        return self.models[index]

    def __contains__(self, record: Any) -> bool:
        return any(r is record for r in self.models)

    def at(self, index: int) -> Optional[Any]:
        """Record at a position, or None when out of range (negatives included)."""
        if index < 0 or index >= len(self.models):
            return None
        return self.models[index]

    def first(self) -> Optional[Any]:
        return self.models[0] if self.models else None

    def last(self) -> Optional[Any]:
        return self.models[-1] if self.models else None

    def index_of(self, record: Any) -> int:
        """Position of a record by identity, -1 if absent."""
        for i, candidate in enumerate(self.models):
            if candidate is record:
                return i
        return -1

    def find(self, predicate: Callable[[Any], bool]) -> Optional[Any]:
        for record in self.models:
            if predicate(record):
                return record
        return None

    def filter(self, predicate: Callable[[Any], bool]) -> List[Any]:
        return [r for r in self.models if predicate(r)]

    def reject(self, predicate: Callable[[Any], bool]) -> List[Any]:
        return [r for r in self.models if not predicate(r)]

    def map(self, func: Callable[[Any], Any]) -> List[Any]:
        return [func(r) for r in self.models]

    def pluck(self, name: str) -> List[Any]:
        return [read_property(r, name) for r in self.models]

    def where(self, **attrs: Any) -> List[Any]:
        """Records whose properties equal every given value."""
        return [
            r for r in self.models
            if all(read_property(r, k) == v for k, v in attrs.items())
        ]

    def sort_by(self, key: KeyFunc) -> List[Any]:
        return sorted(self.models, key=_key_func(key))

    def group_by(self, key: KeyFunc) -> Dict[Any, List[Any]]:
        func = _key_func(key)
        groups: Dict[Any, List[Any]] = {}
        for record in self.models:
            groups.setdefault(func(record), []).append(record)
        return groups

    def to_list(self) -> List[Any]:
        return list(self.models)
