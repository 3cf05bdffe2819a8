"""Configuration loading and validation for the assembly hierarchy engine.

This module provides utilities to load engine configuration from YAML files
and apply environment overrides. Every setting has a default, so a missing
config path simply yields the defaults.

Typical usage example:
    config = Config.load("config/engine_config.yaml")
    engine = AssemblyHierarchyEngine.build(records, config)
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..models.data_structures import QuantityRollup
from .error_handlers import ConfigurationError


logger = logging.getLogger(__name__)

ENV_QUANTITY_MODE = "ASSEMBLY_HIERARCHY_QUANTITY_MODE"
ENV_PATH_SEPARATOR = "ASSEMBLY_HIERARCHY_PATH_SEPARATOR"


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for hierarchy building and rollups.

    Attributes:
        path_separator: Delimiter between materialized path segments.
        quantity_mode: How occurrence counts roll up through the tree. FLAT
            sums recorded quantities, EXPLODED multiplies each quantity by
            every ancestor quantity up to the queried node. Mass is not
            affected.
        include_orphans_in_roots: If True, orphans are listed after true
            roots when callers ask for display roots.
        default_expand_level: Levels auto-expanded by default_expanded().
        warn_on_missing_mass: If True, nodes without mass data are reported
            as MISSING_MASS warnings in addition to marking totals partial.
    """

    path_separator: str = "/"
    quantity_mode: QuantityRollup = QuantityRollup.FLAT
    include_orphans_in_roots: bool = True
    default_expand_level: int = 2
    warn_on_missing_mass: bool = False

    def __post_init__(self) -> None:
        """Validates configuration parameters."""
        if not isinstance(self.path_separator, str) or not self.path_separator:
            raise ConfigurationError(
                "path_separator must be a non-empty string",
                config_key="hierarchy.path_separator",
            )

        if not isinstance(self.quantity_mode, QuantityRollup):
            try:
                object.__setattr__(
                    self, "quantity_mode", QuantityRollup.parse(self.quantity_mode)
                )
            except ValueError as e:
                raise ConfigurationError(
                    str(e), config_key="rollup.quantity_mode", original_error=e
                ) from e

        if (
            isinstance(self.default_expand_level, bool)
            or not isinstance(self.default_expand_level, int)
            or self.default_expand_level < 0
        ):
            raise ConfigurationError(
                "default_expand_level must be a non-negative integer",
                config_key="hierarchy.default_expand_level",
            )


class Config:
    """Static utility class for loading engine configuration files.

    The YAML layout groups settings in two sections::

        hierarchy:
          path_separator: "/"
          include_orphans_in_roots: true
          default_expand_level: 2
        rollup:
          quantity_mode: flat
          warn_on_missing_mass: false
    """

    # (section, key) -> EngineConfig field
    _FIELD_MAP = {
        ("hierarchy", "path_separator"): "path_separator",
        ("hierarchy", "include_orphans_in_roots"): "include_orphans_in_roots",
        ("hierarchy", "default_expand_level"): "default_expand_level",
        ("rollup", "quantity_mode"): "quantity_mode",
        ("rollup", "warn_on_missing_mass"): "warn_on_missing_mass",
    }

    @staticmethod
    def load(config_path: Optional[str] = None) -> EngineConfig:
        """Load engine configuration from a YAML file.

        Args:
            config_path: Path to the configuration YAML file. If None, the
                defaults are used. Environment overrides apply either way.

        Returns:
            Validated EngineConfig.

        Raises:
            FileNotFoundError: If config_path is given but does not exist.
            ConfigurationError: If the file is not valid YAML, is not a
                mapping, or contains invalid values.
        """
        values: Dict[str, Any] = {}

        if config_path is not None:
            config_file_path = Path(config_path)
            if not config_file_path.exists():
                raise FileNotFoundError(
                    f"Configuration file not found: {config_file_path}"
                )

            try:
                with open(config_file_path, "r", encoding="utf-8") as f:
                    config_dict = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Failed to parse configuration file: {config_file_path}",
                    original_error=e,
                ) from e

            if config_dict is None:
                config_dict = {}
            if not isinstance(config_dict, dict):
                raise ConfigurationError(
                    "Configuration file must contain a YAML dictionary"
                )

            values = Config._extract_fields(config_dict)
            logger.debug(f"Loaded configuration from {config_file_path}")

        values.update(Config._env_overrides())
        return Config.from_dict(values)

    @staticmethod
    def from_dict(values: Dict[str, Any]) -> EngineConfig:
        """Build an EngineConfig from flat field values.

        Args:
            values: Mapping of EngineConfig field names to values.

        Returns:
            Validated EngineConfig.

        Raises:
            ConfigurationError: If an unknown field is supplied.
        """
        known = {f.name for f in fields(EngineConfig)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {unknown}", config_key=unknown[0]
            )
        return EngineConfig(**values)

    @staticmethod
    def with_overrides(config: EngineConfig, **overrides: Any) -> EngineConfig:
        """Return a copy of config with non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return config
        return replace(config, **changes)

    @staticmethod
    def _extract_fields(config_dict: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for section_name, section in config_dict.items():
            if not isinstance(section, dict):
                raise ConfigurationError(
                    f"Configuration section '{section_name}' must be a mapping",
                    config_key=str(section_name),
                )
            for key, value in section.items():
                field_name = Config._FIELD_MAP.get((section_name, key))
                if field_name is None:
                    raise ConfigurationError(
                        f"Unknown configuration key: {section_name}.{key}",
                        config_key=f"{section_name}.{key}",
                    )
                values[field_name] = value
        return values

    @staticmethod
    def _env_overrides() -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        mode = os.environ.get(ENV_QUANTITY_MODE)
        if mode:
            values["quantity_mode"] = mode
        separator = os.environ.get(ENV_PATH_SEPARATOR)
        if separator:
            values["path_separator"] = separator
        return values
