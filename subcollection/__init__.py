"""
Subcollection - live filtered, sorted and paginated views of collections

Design Principles:
- A view never mutates its base collection, only its own derived state
- Single-record changes are reconciled in place; configuration changes
  re-materialize from scratch
- At most one add/remove event per record per change, removals first
- Synchronous, single-threaded event delivery

Example Usage:
    >>> from subcollection import Collection, SubCollection
    >>> widgets = Collection([{"id": i, "sweet": i % 2 == 0} for i in range(10)])
    >>> sweet = SubCollection(widgets, where={"sweet": True})
    >>> len(sweet)
    5
"""

__version__ = "1.0.0"
__author__ = "Subcollection Contributors"

# Events
from subcollection.events import Events, EventKind, CollectionEvent, decode_event

# Records and base collections
from subcollection.models import Record, Collection

# Configuration
from subcollection.config import SubcollectionConfig, ConfigError, get_config, init_config

# Views
from subcollection.views import (
    SubCollection,
    SpecRegistry,
    SubcollectionError,
    ViewConfigError,
    ViewParseError,
    SpecNotFoundError,
)

# Utilities
from subcollection.utils import read_property

__all__ = [
    # Events
    "Events",
    "EventKind",
    "CollectionEvent",
    "decode_event",
    # Models
    "Record",
    "Collection",
    # Config
    "SubcollectionConfig",
    "ConfigError",
    "get_config",
    "init_config",
    # Views
    "SubCollection",
    "SpecRegistry",
    "SubcollectionError",
    "ViewConfigError",
    "ViewParseError",
    "SpecNotFoundError",
    # Utilities
    "read_property",
]
