"""
SubCollection: a live, filtered, sorted and windowed view of a collection.

The view listens to every event of its base collection and keeps three
pieces of derived state:

- ``filtered``: every base record accepted by all predicates, in
  comparator order (ties and the no-comparator case follow base order)
- ``models``: ``filtered[offset:offset + limit]``, the visible members
- an IndexStore over ``filtered`` for O(1) membership and lookup

Configuration changes always re-materialize from scratch. Single-record
notifications are reconciled in place (insert, delete or reposition) and
fall back to a full pass only when there is no prior state to reason
about. Every change is committed before any event is emitted, so
subscribers that mutate the base collection re-enter a consistent view.

Example:
    widgets = Collection(records, comparator="awesomeness")
    sweet = SubCollection(widgets, where={"sweet": True}, limit=10)
    sweet.on("add", lambda record, view: print("added", record.id))
"""

import logging
from bisect import bisect_right
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple

from subcollection.config import SubcollectionConfig, get_config
from subcollection.events import CollectionEvent, EventKind, Events, decode_event
from subcollection.mixins import CollectionMixin
from subcollection.views.indexes import IndexStore
from subcollection.views.parser import (
    PredicateResolver,
    SpecParser,
    ViewConfigError,
    ViewSpec,
)
from subcollection.views.predicates import PredicateFunc, PredicateSet
from subcollection.views.primitives import Comparator, Ordering, Window

logger = logging.getLogger(__name__)

# Reconciler decisions
ADD = "add"
REMOVE = "remove"
REPOSITION = "reposition"
RESET = "reset"
RESORT = "resort"
IGNORE = "ignore"


def _same_sequence(a: List[Any], b: List[Any]) -> bool:
    return len(a) == len(b) and all(x is y for x, y in zip(a, b))


def _as_predicates(value: Any) -> List[PredicateFunc]:
    if value is None:
        return []
    if callable(value):
        return [value]
    return list(value)


class SubCollection(Events, CollectionMixin):
    """
    A filtered, sorted, offset/limited view over a base collection.

    Accepts either calling convention:

        SubCollection(base, {"where": {"sweet": True}})
        SubCollection({"collection": base, "where": {"sweet": True}})

    and spec keys as keyword arguments: ``SubCollection(base, limit=10)``.

    Events:
        add(record, view), remove(record, view), sort(view), plus base
        events about current members (``change:<field>``, ...) and
        ``reset``, re-emitted verbatim.
    """

    def __init__(
        self,
        collection: Any = None,
        spec: Optional[Mapping] = None,
        config: Optional[SubcollectionConfig] = None,
        resolver: Optional[PredicateResolver] = None,
        **spec_kwargs: Any,
    ):
        if isinstance(collection, Mapping):
            options = dict(collection)
            options.update(spec or {})
            collection = options.pop("collection", None)
        else:
            options = dict(spec or {})
        options.update(spec_kwargs)
        if collection is None:
            collection = options.get("collection")
        options.pop("collection", None)

        if collection is None:
            raise ViewConfigError("SubCollection requires a base collection")
        if not hasattr(collection, "models") or not hasattr(collection, "on"):
            raise ViewConfigError(
                f"Base collection must expose 'models' and 'on', got {type(collection).__name__}"
            )

        config = config or get_config()

        # Binding to the base collection is fixed for the view's lifetime
        self._collection = collection
        self.main_index: str = getattr(collection, "main_index", None) or config.main_index
        index_names = getattr(collection, "indexes", None) or config.index_names()

        # Private copy, never the base collection's own index storage
        self._index = IndexStore(list(index_names), main_index=self.main_index)
        self._parser = SpecParser(resolver=resolver, strict=config.strict_specs)

        self._predicates = PredicateSet()
        self._watched: List[str] = []
        self._ordering: Optional[Ordering] = None
        self._window = Window()

        self._filtered: List[Any] = []
        self.models: List[Any] = []
        self._visible: Dict[int, Any] = {}
        self._attached = False

        self.configure(options, clear=True)

        self.listen_to(collection, "all", self._on_collection_event)
        self._attached = True

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def collection(self) -> Any:
        return self._collection

    @property
    def is_collection(self) -> bool:
        return True

    @property
    def indexes(self) -> List[str]:
        """Index fields, so views can be stacked on views."""
        return list(self._index.names)

    @property
    def length(self) -> int:
        return len(self.models)

    @property
    def filtered(self) -> List[Any]:
        """All records passing the predicates, before windowing."""
        return list(self._filtered)

    @property
    def filtered_length(self) -> int:
        return len(self._filtered)

    @property
    def comparator(self) -> Optional[Comparator]:
        return self._ordering.comparator if self._ordering else None

    @property
    def limit(self) -> Optional[int]:
        return self._window.limit

    @limit.setter
    def limit(self, value: Optional[int]) -> None:
        self.set_limit(value)

    @property
    def offset(self) -> Optional[int]:
        return self._window.offset

    @offset.setter
    def offset(self, value: Optional[int]) -> None:
        self.set_offset(value)

    @property
    def predicates(self) -> List[PredicateFunc]:
        return self._predicates.to_list()

    @property
    def watched(self) -> List[str]:
        return list(self._watched)

    @property
    def attached(self) -> bool:
        return self._attached

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(self, spec: Optional[Mapping] = None, clear: bool = False, **spec_kwargs: Any) -> None:
        """
        Update the view specification and re-materialize.

        Keys absent from ``spec`` keep their current value; with ``clear``
        the view starts from a blank specification (no predicates, no
        watched fields, no comparator, no window).
        """
        options = dict(spec or {})
        options.update(spec_kwargs)
        parsed = self._parser.parse(options)

        def apply():
            if clear:
                self._reset_filters(reset_comparator=True)
            self._apply_spec(parsed)

        self._reconfigure(apply)

    def reset(self) -> None:
        """Clear the whole specification, comparator included."""
        self.configure({}, clear=True)

    def add_filter(self, predicate: PredicateFunc) -> None:
        self.swap_filters([predicate], [])

    def remove_filter(self, predicate: PredicateFunc) -> None:
        self.swap_filters([], [predicate])

    def clear_filters(self) -> None:
        """Drop predicates, watched fields and the window; keep the comparator."""
        self._reconfigure(lambda: self._reset_filters(reset_comparator=False))

    def swap_filters(self, new_filters: Any = None, old_filters: Any = None) -> None:
        """
        Replace ``old_filters`` with ``new_filters`` in one materialization.

        ``old_filters`` defaults to every current predicate. Either argument
        may be a single callable or a sequence of them.
        """
        new = _as_predicates(new_filters)
        old = self._predicates.to_list() if old_filters is None else _as_predicates(old_filters)

        for predicate in new:
            if not callable(predicate):
                raise ViewConfigError(f"Filter must be callable, got {type(predicate).__name__}")

        self._reconfigure(lambda: self._predicates.swap(new, old))

    def set_limit(self, limit: Optional[int]) -> None:
        """Set the window size; None means unbounded."""
        value = self._parser.parse({"limit": limit}).limit

        def apply():
            self._window.limit = value

        self._reconfigure(apply)

    def set_offset(self, offset: Optional[int]) -> None:
        """Set the window start; None means 0."""
        value = self._parser.parse({"offset": offset}).offset

        def apply():
            self._window.offset = value

        self._reconfigure(apply)

    def watch(self, fields: Any) -> None:
        """Re-test membership when any of these properties change."""
        for name in self._parser.parse({"watched": fields}).watched:
            if name not in self._watched:
                self._watched.append(name)

    def unwatch(self, fields: Any) -> None:
        names = set(self._parser.parse({"watched": fields}).watched)
        self._watched = [w for w in self._watched if w not in names]

    def detach(self) -> None:
        """Stop listening to the base collection."""
        self.stop_listening(self._collection)
        self._attached = False
        logger.debug(f"{self!r} detached from {type(self._collection).__name__}")

    close = detach

    def _reset_filters(self, reset_comparator: bool) -> None:
        self._predicates.clear()
        self._watched = []
        self._window = Window()
        if reset_comparator:
            self._ordering = None

    def _apply_spec(self, spec: ViewSpec) -> None:
        for name in spec.watched:
            if name not in self._watched:
                self._watched.append(name)
        if spec.has_comparator:
            self._ordering = Ordering(spec.comparator) if spec.comparator is not None else None
        for predicate in spec.predicates:
            self._predicates.add(predicate)
        if spec.has_limit:
            self._window.limit = spec.limit
        if spec.has_offset:
            self._window.offset = spec.offset

    def _snapshot(self) -> Tuple[List[PredicateFunc], List[str], Optional[Ordering], Window]:
        return (
            self._predicates.to_list(),
            list(self._watched),
            self._ordering,
            Window(self._window.offset, self._window.limit),
        )

    def _restore(self, snapshot) -> None:
        predicates, watched, ordering, window = snapshot
        self._predicates = PredicateSet(predicates)
        self._watched = watched
        self._ordering = ordering
        self._window = window

    def _reconfigure(self, mutate: Callable[[], None]) -> None:
        """Apply a configuration change and re-materialize, all or nothing."""
        snapshot = self._snapshot()
        previous = self.models
        try:
            mutate()
            result = self._materialize()
        except Exception:
            # A failing predicate or comparator leaves the previous spec in force
            self._restore(snapshot)
            raise

        # Handler errors propagate with the new spec committed
        self._commit(*result)
        self._announce(previous)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, query: Any, index_name: Optional[str] = None) -> Optional[Any]:
        """
        Find a visible member by key or by record.

        Returns None for records of the base collection that this view
        excludes (filtered out or outside the window).
        """
        record = self._index.lookup(query, index_name)
        if record is not None and self.contains(record):
            return record
        return None

    def contains(self, record: Any) -> bool:
        """Whether this exact record is a visible member."""
        return self._visible.get(id(record)) is record

    def __contains__(self, record: Any) -> bool:
        return self.contains(record)

    # ------------------------------------------------------------------
    # Full materialization
    # ------------------------------------------------------------------

    def _run_filters(self) -> None:
        """Recompute filtered, indexes and models from the base collection."""
        previous = self.models
        self._commit(*self._materialize())
        self._announce(previous)

    def _materialize(self) -> Tuple[List[Any], List[Any], List[Any]]:
        """Evaluate predicates, ordering and window without touching state."""
        root = list(self._collection.models)

        if root:
            filtered = self._predicates.apply(root)
            if self._ordering is not None:
                filtered = self._ordering.sort(filtered)
        else:
            filtered = []

        return root, filtered, self._window.apply(filtered)

    def _commit(self, root: List[Any], filtered: List[Any], models: List[Any]) -> None:
        self._filtered = filtered
        if root:
            self._index.rebuild(filtered)
        else:
            self._index.clear()
        self._set_models(models)

        logger.debug(
            f"{self!r} materialized {len(filtered)} of {len(root)} records, "
            f"{len(models)} visible"
        )

    def _announce(self, previous: List[Any]) -> None:
        """Emit membership events, then sort, for a committed materialization."""
        models = self.models
        self._emit_membership(previous, models)

        if self._ordering is not None and not _same_sequence(previous, models):
            self.trigger("sort", self)

    def _set_models(self, models: List[Any]) -> None:
        self.models = models
        self._visible = {id(r): r for r in models}

    def _emit_membership(self, previous: List[Any], current: List[Any]) -> None:
        """Fire remove events, then add events, for the window difference."""
        previous_ids = {id(r) for r in previous}
        current_ids = {id(r) for r in current}

        to_remove = [r for r in previous if id(r) not in current_ids]
        to_add = [r for r in current if id(r) not in previous_ids]

        # Handlers may mutate the base mid-loop; skip records a nested pass moved
        for record in to_remove:
            if id(record) not in self._visible:
                self.trigger("remove", record, self)
        for record in to_add:
            if self._visible.get(id(record)) is record:
                self.trigger("add", record, self)

    # ------------------------------------------------------------------
    # Incremental reconciliation
    # ------------------------------------------------------------------

    def _on_collection_event(self, name: str, *args: Any) -> None:
        event = decode_event(name, args)

        if event.is_property_change and event.field in self._index.names:
            self._index.reindex(event.record)

        action = self._classify(event)
        if action != IGNORE:
            logger.debug(f"{self!r}: {event.name} -> {action}")

        if action == ADD:
            self._add_record(event.record)
        elif action == REMOVE:
            self._remove_record(event.record)
        elif action == REPOSITION:
            self._reposition_record(event.record)
        elif action == RESET:
            self._run_filters()
        elif action == RESORT:
            self._resort()

        self._proxy(event)

    def _from_base(self, event: CollectionEvent) -> bool:
        # add/remove/sort/reset carry the emitting collection as an argument
        if event.kind in (EventKind.ADD, EventKind.REMOVE):
            return len(event.args) < 2 or event.args[1] is self._collection
        return not event.args or event.args[0] is self._collection

    def _classify(self, event: CollectionEvent) -> str:
        if event.is_property_change:
            ordering_field = self._ordering.field if self._ordering else None
            if event.field != ordering_field and event.field not in self._watched:
                return IGNORE

            record = event.record
            already = self._index.contains(record)
            accepted = self._predicates.test(record)

            if accepted and not already:
                return ADD
            if already and not accepted:
                return REMOVE
            if already and self._ordering is not None:
                return REPOSITION
            return IGNORE

        if event.kind is EventKind.ADD and self._from_base(event):
            if self._index.contains(event.record) or not self._predicates.test(event.record):
                return IGNORE
            return ADD

        if event.kind is EventKind.REMOVE and self._from_base(event):
            return REMOVE

        if event.kind is EventKind.RESET and self._from_base(event):
            return RESET

        if event.kind is EventKind.SORT and self._from_base(event):
            return RESORT

        return IGNORE

    def _base_positions(self) -> Dict[int, int]:
        return {id(r): i for i, r in enumerate(self._collection.models)}

    def _sort_key(self, positions: Dict[int, int]) -> Callable[[Any], Any]:
        """Comparator key with base position breaking ties."""
        end = len(positions)
        ordering = self._ordering

        if ordering is None:
            return lambda r: positions.get(id(r), end)
        return lambda r: (ordering.key(r), positions.get(id(r), end))

    def _position_in_filtered(self, record: Any) -> int:
        for i, candidate in enumerate(self._filtered):
            if candidate is record:
                return i
        return -1

    def _add_record(self, record: Any) -> None:
        if not self._filtered:
            # Nothing to position against yet
            self._run_filters()
            return

        key = self._sort_key(self._base_positions())
        position = bisect_right(self._filtered, key(record), key=key)

        self._filtered.insert(position, record)
        self._index.put(record)
        self._apply_window()

    def _remove_record(self, record: Any) -> None:
        if not self._index.contains(record):
            return

        # Bulk base removals arrive one record at a time; drop every
        # record the base no longer holds, not just this one
        positions = self._base_positions()
        gone = [r for r in self._filtered if r is record or id(r) not in positions]

        gone_ids = {id(r) for r in gone}
        self._filtered = [r for r in self._filtered if id(r) not in gone_ids]
        for stale in gone:
            self._index.delete(stale)
        self._apply_window()

    def _reposition_record(self, record: Any) -> None:
        position = self._position_in_filtered(record)
        if position == -1:
            return

        rest = self._filtered[:position] + self._filtered[position + 1:]
        key = self._sort_key(self._base_positions())
        new_position = bisect_right(rest, key(record), key=key)

        if new_position == position:
            return

        rest.insert(new_position, record)
        self._filtered = rest
        self._apply_window()

    def _resort(self) -> None:
        """Base order changed without membership changes."""
        previous = self.models
        key = self._sort_key(self._base_positions())
        filtered = sorted(self._filtered, key=key)
        models = self._window.apply(filtered)

        self._filtered = filtered
        self._set_models(models)

        self._emit_membership(previous, models)
        if self._ordering is not None or not _same_sequence(previous, models):
            self.trigger("sort", self)

    def _apply_window(self) -> None:
        """Re-slice the window and emit boundary-crossing events."""
        previous = self.models
        models = self._window.apply(self._filtered)
        self._set_models(models)

        self._emit_membership(previous, models)

        # insertions and deletions keep survivors in order; repositioning does not
        current_ids = {id(r) for r in models}
        previous_ids = {id(r) for r in previous}
        survivors_before = [r for r in previous if id(r) in current_ids]
        survivors_after = [r for r in models if id(r) in previous_ids]
        if not _same_sequence(survivors_before, survivors_after):
            self.trigger("sort", self)

    # ------------------------------------------------------------------
    # Event proxy
    # ------------------------------------------------------------------

    def _proxy(self, event: CollectionEvent) -> None:
        """Re-emit base events about current members, and resets."""
        if event.kind in (EventKind.ADD, EventKind.REMOVE, EventKind.SORT):
            return
        if event.kind is EventKind.RESET:
            self.trigger(event.name, *event.args)
            return
        if event.record is not None and self.contains(event.record):
            self.trigger(event.name, *event.args)

    def __repr__(self) -> str:
        return f"SubCollection({len(self.models)} of {len(self._filtered)} filtered)"
