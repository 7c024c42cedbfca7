"""
Subcollection View System - live filtered views of collections

A SubCollection is a derived, read-only projection of a base collection:

1. Predicates: plain functions or ``where`` equality clauses, ANDed
2. Ordering: a field name, key function or compare function
3. Window: offset/limit slicing of the filtered records
4. Liveness: base-collection events are reconciled incrementally

Example:
    from subcollection.views import SubCollection

    sweet = SubCollection(widgets, where={"sweet": True}, comparator="id")
    sweet.on("add", handle_add)

    for widget in sweet:
        print(widget.name)
"""

from subcollection.views.core import SubCollection

from subcollection.views.predicates import (
    Predicate,
    WherePredicate,
    CompoundPredicate,
    FunctionPredicate,
    PredicateSet,
)

from subcollection.views.primitives import (
    OrderSpec,
    Ordering,
    Window,
)

from subcollection.views.indexes import IndexStore

from subcollection.views.parser import (
    SubcollectionError,
    ViewConfigError,
    ViewParseError,
    ViewSpec,
    SpecParser,
    parse_spec,
    parse_specs_file,
)

from subcollection.views.registry import SpecRegistry, SpecNotFoundError

__all__ = [
    # Core
    "SubCollection",
    # Predicates
    "Predicate",
    "WherePredicate",
    "CompoundPredicate",
    "FunctionPredicate",
    "PredicateSet",
    # Primitives
    "OrderSpec",
    "Ordering",
    "Window",
    # Indexes
    "IndexStore",
    # Parser
    "SubcollectionError",
    "ViewConfigError",
    "ViewParseError",
    "ViewSpec",
    "SpecParser",
    "parse_spec",
    "parse_specs_file",
    # Registry
    "SpecRegistry",
    "SpecNotFoundError",
]
