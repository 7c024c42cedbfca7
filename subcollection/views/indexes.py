"""
Secondary indexes over a view's filtered records.

Each declared index name (the base collection's identity field, its
transient ``cid`` field, and any other declared fields) maps a key value
to the member record holding it. The store is private to one view and
is never shared with the base collection.
"""

from typing import Any, Dict, Iterable, List, Optional

from subcollection.utils import is_hashable, read_property


class IndexStore:
    """
    O(1) lookup of member records by indexed key.

    Besides the named indexes, members are tracked by object identity so
    records without any usable key still answer ``contains``.

    Args:
        names: Index field names
        main_index: Default index for lookups
        fallback_index: Identity index consulted when the main lookup
            misses (transient instance ids)
    """

    def __init__(self, names: Iterable[str], main_index: str = "id", fallback_index: str = "cid"):
        self.main_index = main_index
        self.fallback_index = fallback_index
        self.names: List[str] = list(dict.fromkeys([main_index, *names, fallback_index]))
        self._indexes: Dict[str, Dict[Any, Any]] = self._empty()
        self._members: Dict[int, Any] = {}

    def _empty(self) -> Dict[str, Dict[Any, Any]]:
        return {name: {} for name in self.names}

    def rebuild(self, records: Iterable[Any]) -> None:
        """Clear every index and repopulate from the full membership."""
        indexes = self._empty()
        members = {}
        for record in records:
            self._put_into(indexes, record)
            members[id(record)] = record
        self._indexes = indexes
        self._members = members

    def clear(self) -> None:
        self._indexes = self._empty()
        self._members = {}

    def put(self, record: Any) -> None:
        self._put_into(self._indexes, record)
        self._members[id(record)] = record

    def delete(self, record: Any) -> None:
        """Drop every index entry pointing at this record."""
        self._members.pop(id(record), None)
        for name, index in self._indexes.items():
            value = read_property(record, name)
            if value is not None and is_hashable(value) and index.get(value) is record:
                del index[value]
                continue
            # Indexed value changed after the record was stored
            for key in [k for k, v in index.items() if v is record]:
                del index[key]

    def reindex(self, record: Any) -> None:
        """Refresh the keys of a member whose indexed properties changed."""
        if self.contains(record):
            self.delete(record)
            self.put(record)

    def lookup(self, query: Any, index_name: Optional[str] = None) -> Optional[Any]:
        """
        Find a member by key or by record.

        Checks the named index (default: main index) with the query, then
        with the query's own key for that index, then the fallback identity
        index. Returns None when nothing matches.
        """
        if query is None:
            return None

        name = index_name or self.main_index
        index = self._indexes.get(name, {})
        fallback = self._indexes.get(self.fallback_index, {})

        if is_hashable(query):
            # Keys may be any hashable value, e.g. UUID or Enum ids
            if query in index:
                return index[query]
            if query in fallback:
                return fallback[query]
            if _is_key(query):
                return None

        if self._members.get(id(query)) is query:
            return query

        key = read_property(query, name)
        if key is not None and is_hashable(key) and key in index:
            return index[key]

        cid = read_property(query, self.fallback_index)
        if cid is not None and is_hashable(cid):
            return fallback.get(cid)
        return None

    def contains(self, record: Any) -> bool:
        """Whether this exact record is a member."""
        return self._members.get(id(record)) is record

    def __len__(self) -> int:
        return len(self._members)

    def _put_into(self, indexes: Dict[str, Dict[Any, Any]], record: Any) -> None:
        for name, index in indexes.items():
            value = read_property(record, name)
            if value is not None and is_hashable(value):
                index[value] = record


def _is_key(value: Any) -> bool:
    return isinstance(value, (str, bytes, int, float, tuple)) and is_hashable(value)
