"""
Configuration management for subcollection.

Provides library-wide defaults for views, loaded hierarchically.
Supports both global (~/.config/subcollection/config.toml) and local
(subcollection.toml) configurations.
"""
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli
import tomli_w

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Invalid configuration value."""
    pass


@dataclass
class SubcollectionConfig:
    """
    Subcollection configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Explicit overrides (init_config)
    2. Environment variables (SUBCOLLECTION_*)
    3. Explicit config file
    4. Local config file (./subcollection.toml or ./.subcollectionrc)
    5. User config file (~/.config/subcollection/config.toml)
    6. Defaults
    """

    # Index fields used when a base collection declares none
    main_index: str = field(default="id")
    indexes: List[str] = field(default_factory=lambda: ["id", "cid"])

    # Spec parsing
    strict_specs: bool = field(default=True)
    views_file: Optional[str] = field(default=None)

    # Logging for the subcollection logger hierarchy
    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "SubcollectionConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "subcollection" / "config.toml"
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_paths = [
            Path.cwd() / "subcollection.toml",
            Path.cwd() / ".subcollectionrc",
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file and Path(config_file).exists():
            config._merge(cls._load_toml(Path(config_file)))

        config._apply_env_vars()
        config._expand_paths()
        config.validate()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        try:
            with open(path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with SUBCOLLECTION_ prefix."""
        prefix = "SUBCOLLECTION_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if hasattr(self, config_key):
                    current_value = getattr(self, config_key)
                    if isinstance(current_value, bool):
                        setattr(self, config_key, value.lower() in ("true", "1", "yes"))
                    elif isinstance(current_value, list):
                        setattr(self, config_key, [v.strip() for v in value.split(",") if v.strip()])
                    else:
                        setattr(self, config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in paths."""
        if isinstance(self.views_file, str):
            self.views_file = os.path.expanduser(os.path.expandvars(self.views_file))

    def validate(self):
        """Check value types; raise ConfigError on bad values."""
        if not isinstance(self.main_index, str) or not self.main_index:
            raise ConfigError(f"main_index must be a non-empty string, got {self.main_index!r}")
        if not isinstance(self.indexes, list) or not all(isinstance(i, str) for i in self.indexes):
            raise ConfigError(f"indexes must be a list of field names, got {self.indexes!r}")
        if not isinstance(self.strict_specs, bool):
            raise ConfigError(f"strict_specs must be a boolean, got {self.strict_specs!r}")
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

    def index_names(self) -> List[str]:
        """Index fields with the main index first, de-duplicated."""
        return list(dict.fromkeys([self.main_index, *self.indexes]))

    def apply_log_level(self):
        """Set the level of the package logger from ``log_level``."""
        logging.getLogger("subcollection").setLevel(str(self.log_level).upper())

    def save(self, path: Optional[Path] = None):
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = Path.home() / ".config" / "subcollection" / "config.toml"

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null
        data = {k: v for k, v in asdict(self).items() if v is not None}
        with open(path, "wb") as f:
            tomli_w.dump(data, f)


# Global configuration instance
_config: Optional[SubcollectionConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> SubcollectionConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = SubcollectionConfig.load(config_file)
    return _config


def init_config(**kwargs) -> SubcollectionConfig:
    """
    Initialize configuration with explicit overrides.

    Args:
        **kwargs: Configuration overrides

    Returns:
        Configured instance
    """
    config = get_config()

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    config.validate()
    config.apply_log_level()
    return config
