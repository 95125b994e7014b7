"""
Configuration management for albumseq.

Loads and validates TOML config against strict bounds.
All tunable search parameters are bounded and validated at startup.
"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional
import toml
import logging

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config validation fails."""
    pass


class Config:
    """Configuration loader and validator."""

    PARAM_BOUNDS = {
        "context": {
            "path": None,  # String type
        },
        "propose": {
            "default_count": (1, 1000),
            "exact_track_limit": (1, 16),
            "heuristic_iterations": (100, 1_000_000),
            "heuristic_restarts": (1, 100),
            "seed": (0, 2**31 - 1),
        },
    }

    DEFAULT_CONFIG = {
        "config_version": "1.0",
        "context": {
            "path": "context.sqlite",
        },
        "propose": {
            "default_count": 15,
            "exact_track_limit": 10,
            "heuristic_iterations": 20000,
            "heuristic_restarts": 8,
            "seed": 0,
        },
    }

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self.data = config_dict
        self._validate()

    @classmethod
    def defaults(cls) -> "Config":
        return cls(copy.deepcopy(cls.DEFAULT_CONFIG))

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load config from TOML file.

        Args:
            config_path: Path to albumseq.toml. If None, uses ALBUMSEQ_CONFIG_PATH
                        env var or defaults to albumseq.toml.

        Returns:
            Config instance.

        Raises:
            ConfigError: If config is invalid or unreadable.
        """
        if config_path is None:
            config_path = os.getenv("ALBUMSEQ_CONFIG_PATH", "albumseq.toml")

        config_path = Path(config_path)

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return cls.defaults()

        try:
            config_dict = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}")

        logger.info(f"Loaded config from {config_path}")
        return cls(config_dict)

    def _validate(self) -> None:
        """
        Validate all config parameters against bounds.

        Raises:
            ConfigError: If any parameter is out of bounds or of the wrong type.
        """
        for section, params in self.PARAM_BOUNDS.items():
            if section not in self.data:
                logger.debug(f"Missing config section: {section}. Using defaults.")
                self.data[section] = copy.deepcopy(self.DEFAULT_CONFIG.get(section, {}))
                continue

            section_data = self.data[section]
            if not isinstance(section_data, dict):
                raise ConfigError(f"Config section [{section}] must be a table")

            for param, bounds in params.items():
                if param not in section_data:
                    default_val = self.DEFAULT_CONFIG.get(section, {}).get(param)
                    if default_val is not None:
                        logger.warning(f"Missing param {section}.{param}. Using default: {default_val}")
                        section_data[param] = default_val
                    continue

                value = section_data[param]

                # String parameters (no bounds check needed)
                if bounds is None:
                    if not isinstance(value, str) or not value:
                        raise ConfigError(f"Parameter {section}.{param} must be a non-empty string")
                    continue

                # Handle numeric ranges
                if isinstance(bounds, tuple) and len(bounds) == 2:
                    if isinstance(value, bool) or not isinstance(value, int):
                        raise ConfigError(
                            f"Parameter {section}.{param}={value!r} must be an integer"
                        )
                    min_val, max_val = bounds
                    if not (min_val <= value <= max_val):
                        raise ConfigError(
                            f"Parameter {section}.{param}={value} out of bounds "
                            f"[{min_val}, {max_val}]"
                        )

        logger.debug("✅ Config validation passed")

    def get(self, section: str, param: str, default: Any = None) -> Any:
        """Get a config parameter safely."""
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> Dict[str, Any]:
        """Allow dict-like access: config["propose"]"""
        return self.data.get(section, {})

    def __repr__(self) -> str:
        version = self.data.get('config_version', 'unknown')
        return f"Config(version={version})"
