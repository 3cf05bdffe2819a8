"""
Assembly Hierarchy Engine

Rebuilds navigable BOM assembly trees from flat materialized-path records and
rolls up quantities and mass.
"""

__version__ = "1.0.0"
__author__ = "Assembly Hierarchy Team"

# Core exports
from .hierarchy import AssemblyHierarchyEngine
from .models import AssemblyNode, BomSummary, HierarchyWarning, NodeType, QuantityRollup
from .utils import Config, EngineConfig

__all__ = [
    "AssemblyHierarchyEngine",
    "AssemblyNode",
    "BomSummary",
    "HierarchyWarning",
    "NodeType",
    "QuantityRollup",
    "Config",
    "EngineConfig",
    "__version__",
]
