"""
Parser for view specifications.

A specification is a plain mapping; every key is optional:

    {
        "where": {"sweet": True},          # equality tests, one per key
        "filter": lambda r: r.x > 5,       # one predicate
        "filters": [f1, f2],               # more predicates, in order
        "comparator": "awesomeness",       # field name, key or cmp function
        "limit": 10,
        "offset": 0,
        "watched": ["name"],               # extra fields to re-test on change
    }

Specifications may also be loaded from YAML, where ``filter``/``filters``
entries name predicates registered in a SpecRegistry:

    sweet_and_awesome:
      where:
        sweet: true
      filters: [is_awesome]
      comparator: id desc
      limit: 20
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from subcollection.views.predicates import PredicateFunc, WherePredicate
from subcollection.views.primitives import Comparator, Ordering

logger = logging.getLogger(__name__)


class SubcollectionError(Exception):
    """Base error for the subcollection package."""
    pass


class ViewConfigError(SubcollectionError):
    """Invalid view construction or specification."""
    pass


class ViewParseError(ViewConfigError):
    """Error reading view specifications from a file."""
    pass


class _Unset:
    """Marker for spec keys that were not given at all."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

SPEC_KEYS = frozenset({
    "where",
    "filter",
    "filters",
    "comparator",
    "limit",
    "offset",
    "watched",
})

# Accepted in specs but consumed by the view constructor
CONSTRUCTOR_KEYS = frozenset({"collection"})


@dataclass
class ViewSpec:
    """
    A parsed specification.

    ``limit``/``offset``/``comparator`` are UNSET when the key was absent,
    so merging leaves the previous value alone; None means "clear".
    """
    predicates: List[PredicateFunc] = field(default_factory=list)
    watched: List[str] = field(default_factory=list)
    comparator: Any = UNSET
    limit: Any = UNSET
    offset: Any = UNSET
    where: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_comparator(self) -> bool:
        return self.comparator is not UNSET

    @property
    def has_limit(self) -> bool:
        return self.limit is not UNSET

    @property
    def has_offset(self) -> bool:
        return self.offset is not UNSET


PredicateResolver = Callable[[str], PredicateFunc]


class SpecParser:
    """
    Turns specification mappings into ViewSpec objects.

    Args:
        resolver: Optional lookup turning predicate names into callables
        strict: Reject unknown keys instead of ignoring them
    """

    def __init__(self, resolver: Optional[PredicateResolver] = None, strict: bool = True):
        self.resolver = resolver
        self.strict = strict

    def parse(self, spec: Optional[Mapping]) -> ViewSpec:
        """Parse a specification mapping into a ViewSpec."""
        if spec is None:
            return ViewSpec()
        if not isinstance(spec, Mapping):
            raise ViewConfigError(f"View spec must be a mapping, got {type(spec).__name__}")

        unknown = set(spec) - SPEC_KEYS - CONSTRUCTOR_KEYS
        if unknown:
            message = f"Unknown view spec keys: {', '.join(sorted(map(str, unknown)))}"
            if self.strict:
                raise ViewConfigError(message)
            logger.warning(message)

        result = ViewSpec()

        if spec.get("watched") is not None:
            result.watched.extend(self._parse_watched(spec["watched"]))

        if "comparator" in spec:
            result.comparator = self._parse_comparator(spec["comparator"])

        if spec.get("where") is not None:
            where = spec["where"]
            if not isinstance(where, Mapping):
                raise ViewConfigError(f"'where' must be a mapping, got {type(where).__name__}")
            for key, value in where.items():
                if not isinstance(key, str):
                    raise ViewConfigError(f"'where' keys must be field names, got {key!r}")
                result.predicates.append(WherePredicate(key, value))
                result.where[key] = value
            # also watch every `where` key
            result.watched.extend(k for k in where if k not in result.watched)

        if "limit" in spec:
            result.limit = self._parse_count("limit", spec["limit"])

        if "offset" in spec:
            result.offset = self._parse_count("offset", spec["offset"])

        if spec.get("filter") is not None:
            result.predicates.append(self._parse_predicate(spec["filter"]))

        if spec.get("filters") is not None:
            filters = spec["filters"]
            if isinstance(filters, (str, bytes)) or not isinstance(filters, Sequence):
                raise ViewConfigError(f"'filters' must be a sequence, got {type(filters).__name__}")
            result.predicates.extend(self._parse_predicate(f) for f in filters)

        result.watched = list(dict.fromkeys(result.watched))
        return result

    def _parse_predicate(self, value: Any) -> PredicateFunc:
        if isinstance(value, str):
            if self.resolver is None:
                raise ViewConfigError(f"Cannot resolve predicate name {value!r} without a registry")
            return self.resolver(value)
        if not callable(value):
            raise ViewConfigError(f"Filter must be callable, got {type(value).__name__}")
        return value

    def _parse_watched(self, value: Any) -> List[str]:
        if isinstance(value, str):
            return [value]
        if not isinstance(value, Sequence):
            raise ViewConfigError(f"'watched' must be a field name or a sequence, got {type(value).__name__}")
        fields = list(value)
        for name in fields:
            if not isinstance(name, str):
                raise ViewConfigError(f"'watched' entries must be field names, got {name!r}")
        return fields

    def _parse_comparator(self, value: Any) -> Optional[Comparator]:
        if value is None:
            return None
        try:
            Ordering(value)
        except (TypeError, ValueError) as e:
            raise ViewConfigError(f"Invalid comparator {value!r}: {e}") from e
        return value

    def _parse_count(self, key: str, value: Any) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ViewConfigError(f"'{key}' must be a non-negative integer, got {value!r}")
        if value < 0:
            raise ViewConfigError(f"'{key}' must be a non-negative integer, got {value}")
        return value


def parse_spec(
    spec: Optional[Mapping],
    resolver: Optional[PredicateResolver] = None,
    strict: bool = True,
) -> ViewSpec:
    """
    Parse a single view specification.

    Args:
        spec: Specification mapping
        resolver: Optional lookup for named predicates
        strict: Reject unknown keys

    Returns:
        Parsed ViewSpec
    """
    return SpecParser(resolver, strict=strict).parse(spec)


def parse_specs_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML file of named view specifications.

    Returns:
        Dictionary mapping view names to raw specification mappings
    """
    path = Path(path)

    if not path.exists():
        raise ViewParseError(f"Spec file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ViewParseError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ViewParseError(f"Spec file must contain a mapping, got {type(data).__name__}")

    return data
