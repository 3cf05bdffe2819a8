"""Utility functions for the assembly hierarchy engine."""

from .config_loader import Config, EngineConfig
from .error_handlers import (
    ConfigurationError,
    ExcludedNodeError,
    HierarchyError,
    NodeNotFoundError,
    RecordLoadError,
)
from .text_utils import natural_sort_key, normalize_part_number, normalize_whitespace

__all__ = [
    "Config",
    "EngineConfig",
    "ConfigurationError",
    "ExcludedNodeError",
    "HierarchyError",
    "NodeNotFoundError",
    "RecordLoadError",
    "natural_sort_key",
    "normalize_part_number",
    "normalize_whitespace",
]
