"""
Records and base collections.

A Record is an observable property bag: assigning a property fires
``change:<name>`` and ``change`` events. A Collection is an ordered,
indexed set of records that re-emits its records' events and fires
``add``, ``remove``, ``reset`` and ``sort`` for its own mutations.

Views (see ``subcollection.views``) consume collections only through
``models``, the event API and the declared ``main_index``/``indexes``.

Example:
    >>> widgets = Collection(comparator="awesomeness")
    >>> widgets.add({"id": 1, "name": "a", "awesomeness": 3})
    >>> widgets.get(1).name
    'a'
"""

import itertools
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Type

from subcollection.events import Events
from subcollection.mixins import CollectionMixin
from subcollection.utils import as_list, is_hashable, read_property
from subcollection.views.primitives import Comparator, Ordering

logger = logging.getLogger(__name__)

_cid_counter = itertools.count(1)


class Record(Events):
    """
    An observable bag of named properties.

    Properties are readable as attributes or through ``get``. Writing a
    property (attribute assignment or ``set``) fires ``change:<name>``
    with ``(record, value)`` for each changed property, then a single
    ``change`` with ``(record,)``. Every record gets a transient ``cid``.
    """

    def __init__(self, attrs: Optional[Mapping] = None, **kwargs: Any):
        self.__dict__["cid"] = f"record{next(_cid_counter)}"
        self.__dict__["_attributes"] = {}
        self.__dict__["_previous"] = {}
        initial = dict(attrs or {})
        initial.update(kwargs)
        self._attributes.update(initial)

    def __getattr__(self, name: str) -> Any:
        attributes = self.__dict__.get("_attributes", {})
        if name in attributes:
            return attributes[name]
        raise AttributeError(f"{type(self).__name__} has no property {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or name == "cid":
            object.__setattr__(self, name, value)
        else:
            self.set({name: value})

    def get(self, name: str, default: Optional[Any] = None) -> Any:
        """Get a property value with optional default."""
        if name == "cid":
            return self.cid
        return self._attributes.get(name, default)

    def has(self, name: str) -> bool:
        return name in self._attributes

    def previous(self, name: str) -> Any:
        """Value of a property before the most recent change to it."""
        return self._previous.get(name)

    def set(self, attrs: Optional[Mapping] = None, silent: bool = False, **kwargs: Any) -> "Record":
        """
        Assign one or more properties.

        All values are stored before any event fires, so handlers always
        observe the fully updated record.
        """
        updates = dict(attrs or {})
        updates.update(kwargs)

        changed = []
        for name, value in updates.items():
            if name == "cid" or name.startswith("_"):
                raise ValueError(f"Cannot set reserved property {name!r}")
            old = self._attributes.get(name)
            if name in self._attributes and (old is value or old == value):
                continue
            self._previous[name] = old
            self._attributes[name] = value
            changed.append(name)

        if changed and not silent:
            for name in changed:
                self.trigger(f"change:{name}", self, self._attributes[name])
            self.trigger("change", self)

        return self

    def unset(self, name: str, silent: bool = False) -> "Record":
        """Remove a property, firing change events if it existed."""
        if name not in self._attributes:
            return self
        self._previous[name] = self._attributes.pop(name)
        if not silent:
            self.trigger(f"change:{name}", self, None)
            self.trigger("change", self)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def __repr__(self) -> str:
        ident = self._attributes.get("id", self.cid)
        return f"{type(self).__name__}(id={ident!r})"


class Collection(Events, CollectionMixin):
    """
    An ordered, indexed set of records.

    Args:
        records: Initial records (added silently)
        comparator: Optional field name / key / compare function keeping
            the collection sorted
        main_index: Primary identity field
        indexes: Additional index fields; ``main_index`` and ``cid`` are
            always indexed
        model: Factory used to turn mappings into records
    """

    def __init__(
        self,
        records: Optional[Iterable[Any]] = None,
        comparator: Optional[Comparator] = None,
        main_index: str = "id",
        indexes: Optional[Iterable[str]] = None,
        model: Type[Record] = Record,
    ):
        self.main_index = main_index
        names = [main_index, *(indexes or []), "cid"]
        self.indexes: List[str] = list(dict.fromkeys(names))
        self.model = model
        self.models: List[Any] = []
        self._index: Dict[str, Dict[Any, Any]] = {name: {} for name in self.indexes}
        self._ordering: Optional[Ordering] = None
        self.comparator = comparator

        if records:
            self.add(records, silent=True)

    @property
    def comparator(self) -> Optional[Comparator]:
        return self._ordering.comparator if self._ordering else None

    @comparator.setter
    def comparator(self, value: Optional[Comparator]) -> None:
        self._ordering = Ordering(value) if value is not None else None

    @property
    def is_collection(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, query: Any, index_name: Optional[str] = None) -> Optional[Any]:
        """
        Look up a member by key or by record.

        Tries the named index (default: main index) with the query itself,
        then with the query's main-index value, then the ``cid`` index.
        """
        if query is None:
            return None

        index = self._index.get(index_name or self.main_index, {})
        if is_hashable(query) and query in index:
            return index[query]

        if not isinstance(query, (str, int, float)):
            key = read_property(query, self.main_index)
            if key is not None and is_hashable(key) and key in index:
                return index[key]
            cid = read_property(query, "cid")
            if cid is not None and cid in self._index["cid"]:
                return self._index["cid"][cid]

        if is_hashable(query):
            return self._index["cid"].get(query)
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, records: Any, silent: bool = False) -> List[Any]:
        """
        Add one record or a list of records.

        Mappings are converted with ``model``. Records already present (by
        main index or cid) are skipped. Returns the records actually added.
        """
        added = []
        for item in as_list(records):
            record = self._prepare(item)
            if self.get(record) is not None or any(r is record for r in added):
                continue
            added.append(record)

        if not added:
            return []

        for record in added:
            self.models.append(record)
            self._add_index(record)
            if isinstance(record, Events):
                record.on("all", self._on_record_event)

        sorted_now = False
        if self._ordering is not None:
            self.models = self._ordering.sort(self.models)
            sorted_now = True

        logger.debug(f"Added {len(added)} records ({len(self.models)} total)")

        if not silent:
            for record in added:
                self.trigger("add", record, self)
            if sorted_now:
                self.trigger("sort", self)

        return added

    def remove(self, records: Any, silent: bool = False) -> List[Any]:
        """Remove one record (or key) or a list of them. Returns removed records."""
        removed = []
        for item in as_list(records):
            record = self.get(item)
            if record is None or any(r is record for r in removed):
                continue
            removed.append(record)

        removed_ids = {id(r) for r in removed}
        self.models = [r for r in self.models if id(r) not in removed_ids]
        for record in removed:
            self._remove_index(record)
            if isinstance(record, Events):
                record.off("all", self._on_record_event)

        if removed:
            logger.debug(f"Removed {len(removed)} records ({len(self.models)} total)")

        if not silent:
            for record in removed:
                self.trigger("remove", record, self)

        return removed

    def reset(self, records: Optional[Any] = None, silent: bool = False) -> None:
        """Replace every member, firing a single ``reset`` event."""
        for record in self.models:
            if isinstance(record, Events):
                record.off("all", self._on_record_event)

        self.models = []
        self._index = {name: {} for name in self.indexes}

        if records:
            self.add(records, silent=True)

        logger.debug(f"Reset collection to {len(self.models)} records")

        if not silent:
            self.trigger("reset", self)

    def set(self, records: Any, remove: bool = True) -> None:
        """
        Smart update: merge existing records, add new ones, and (unless
        ``remove`` is False) remove members missing from ``records``.
        """
        keep = []
        to_add = []
        for item in as_list(records):
            existing = self.get(item) if not isinstance(item, Mapping) else self._get_by_key(item)
            if existing is None:
                to_add.append(item)
                continue
            keep.append(existing)
            if isinstance(item, Mapping) and isinstance(existing, Record):
                existing.set(item)

        if remove:
            stale = [
                r for r in self.models
                if not any(r is k for k in keep)
            ]
            if stale:
                self.remove(stale)

        if to_add:
            self.add(to_add)

    def sort(self, comparator: Optional[Comparator] = None) -> None:
        """Re-sort by the collection comparator (or a one-off comparator)."""
        if comparator is not None:
            ordering = Ordering(comparator)
        elif self._ordering is not None:
            ordering = self._ordering
        else:
            raise ValueError("Cannot sort a collection without a comparator")

        self.models = ordering.sort(self.models)
        self.trigger("sort", self)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(self, item: Any) -> Any:
        if isinstance(item, Mapping):
            existing = self._get_by_key(item)
            if existing is not None:
                return existing
            return self.model(item)
        return item

    def _get_by_key(self, attrs: Mapping) -> Optional[Any]:
        key = attrs.get(self.main_index)
        if key is None or not is_hashable(key):
            return None
        return self._index[self.main_index].get(key)

    def _add_index(self, record: Any) -> None:
        for name in self.indexes:
            value = read_property(record, name)
            if value is not None and is_hashable(value):
                self._index[name][value] = record

    def _remove_index(self, record: Any) -> None:
        for name in self.indexes:
            index = self._index[name]
            value = read_property(record, name)
            if value is not None and is_hashable(value) and index.get(value) is record:
                del index[value]
                continue
            # The indexed value changed since it was stored
            for key in [k for k, v in index.items() if v is record]:
                del index[key]

    def _on_record_event(self, name: str, *args: Any) -> None:
        if name.startswith("change:") and name.split(":", 1)[1] in self.indexes:
            record = args[0] if args else None
            if record is not None:
                self._remove_index(record)
                self._add_index(record)
        self.trigger(name, *args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self.models)} records)"
