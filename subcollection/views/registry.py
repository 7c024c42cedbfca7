"""
Spec Registry - named predicates and named view specifications.

The registry lets view specifications live in YAML files. Since YAML
cannot hold functions, ``filter``/``filters`` entries name predicates
registered here in Python:

    registry = SpecRegistry()
    registry.register_predicate("is_awesome", lambda w: w.awesomeness > 5)
    registry.load_file("views.yaml")

    awesome = registry.create("awesome_widgets", widgets)
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from subcollection.config import SubcollectionConfig, get_config
from subcollection.views.core import SubCollection
from subcollection.views.parser import (
    SPEC_KEYS,
    SpecParser,
    SubcollectionError,
    ViewConfigError,
    ViewSpec,
    parse_specs_file,
)
from subcollection.views.predicates import FunctionPredicate, PredicateFunc

logger = logging.getLogger(__name__)


class SpecNotFoundError(SubcollectionError):
    """Raised when a spec or predicate name is not registered."""
    pass


class SpecRegistry:
    """
    Registry for named predicates and view specifications.

    Provides:
    - Predicate registration by name, for use from spec files
    - Loading specs from YAML files and directories
    - Creating SubCollection views from named specs

    Example:
        registry = SpecRegistry.from_yaml("views.yaml")
        view = registry.create("sweet", widgets, limit=5)
    """

    def __init__(self, config: Optional[SubcollectionConfig] = None):
        self.config = config or get_config()
        self._predicates: Dict[str, FunctionPredicate] = {}
        self._specs: Dict[str, Dict[str, Any]] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def register_predicate(self, name: str, func: PredicateFunc) -> PredicateFunc:
        """
        Register a predicate by name.

        The same wrapped predicate object is handed out on every lookup,
        so a view can later remove it by reference.
        """
        if not callable(func):
            raise ViewConfigError(f"Predicate {name!r} must be callable")
        if name in self._predicates:
            logger.warning(f"Predicate {name} already registered, replacing")
        predicate = FunctionPredicate(func, name)
        self._predicates[name] = predicate
        return predicate

    def predicate(self, name: str) -> PredicateFunc:
        """Look up a registered predicate."""
        try:
            return self._predicates[name]
        except KeyError:
            raise SpecNotFoundError(f"Predicate not found: {name}") from None

    def unregister_predicate(self, name: str) -> bool:
        return self._predicates.pop(name, None) is not None

    def predicates(self) -> List[str]:
        return sorted(self._predicates)

    # ------------------------------------------------------------------
    # Specs
    # ------------------------------------------------------------------

    def register_spec(
        self,
        name: str,
        definition: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Register a spec definition (parsed when a view is created).

        Args:
            name: Spec name
            definition: Raw spec mapping
            metadata: Optional metadata
        """
        if not isinstance(definition, dict):
            raise ViewConfigError(f"Spec {name!r} must be a mapping, got {type(definition).__name__}")

        definition = dict(definition)
        self._metadata[name] = dict(metadata or {})
        if "description" in definition:
            self._metadata[name]["description"] = definition.pop("description")

        self._specs[name] = definition

    def get_spec(self, name: str) -> Dict[str, Any]:
        """Raw spec mapping for a name (a copy)."""
        if name not in self._specs:
            raise SpecNotFoundError(f"Spec not found: {name}")
        return dict(self._specs[name])

    def parse(self, name: str) -> ViewSpec:
        """Parse a named spec, resolving predicate names."""
        return self._parser().parse(self.get_spec(name))

    def create(self, name: str, collection: Any, **overrides: Any) -> SubCollection:
        """
        Build a view of ``collection`` from a named spec.

        Keyword overrides replace spec keys (e.g. ``limit=5``).
        """
        spec = self.get_spec(name)
        spec.update(overrides)
        logger.debug(f"Creating view {name!r} with keys {sorted(spec)}")
        return SubCollection(collection, spec, config=self.config, resolver=self.predicate)

    def has(self, name: str) -> bool:
        return name in self._specs

    def list(self) -> List[str]:
        return sorted(self._specs)

    def get_metadata(self, name: str) -> Dict[str, Any]:
        return self._metadata.get(name, {})

    def _parser(self) -> SpecParser:
        return SpecParser(resolver=self.predicate, strict=self.config.strict_specs)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def load_file(self, path: Union[str, Path]) -> int:
        """
        Load specs from a YAML file.

        Returns:
            Number of specs loaded
        """
        data = parse_specs_file(path)
        count = 0

        for name, definition in data.items():
            if not isinstance(definition, dict):
                logger.warning(f"Skipping {name!r} in {path}: not a mapping")
                continue
            unknown = set(definition) - SPEC_KEYS - {"description"}
            if unknown and self.config.strict_specs:
                raise ViewConfigError(
                    f"Spec {name!r} in {path} has unknown keys: {', '.join(sorted(map(str, unknown)))}"
                )
            self.register_spec(name, definition, metadata={"source": str(path)})
            count += 1

        logger.info(f"Loaded {count} specs from {path}")
        return count

    def load_directory(self, path: Union[str, Path], pattern: str = "*.yaml") -> int:
        """
        Load specs from all YAML files in a directory.

        Returns:
            Total number of specs loaded
        """
        path = Path(path)
        count = 0

        for yaml_path in sorted(path.glob(pattern)):
            count += self.load_file(yaml_path)

        for yaml_path in sorted(path.glob(pattern.replace(".yaml", ".yml"))):
            count += self.load_file(yaml_path)

        return count

    @classmethod
    def from_yaml(cls, path: Union[str, Path], config: Optional[SubcollectionConfig] = None) -> "SpecRegistry":
        """Create a registry and load specs from a YAML file."""
        registry = cls(config)
        registry.load_file(path)
        return registry

    @classmethod
    def from_config(cls, config: Optional[SubcollectionConfig] = None) -> "SpecRegistry":
        """Create a registry, preloading ``views_file`` when configured."""
        registry = cls(config)
        views_file = registry.config.views_file
        if views_file:
            registry.load_file(views_file)
        return registry

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __iter__(self):
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._specs)
