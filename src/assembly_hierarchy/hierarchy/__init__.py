"""
Hierarchy modules for the Assembly Hierarchy Engine.

This package contains the node store, path index, navigation, rollup and
query components, and the engine facade that wires them together.
"""

from .engine import AssemblyHierarchyEngine
from .hierarchy_builder import HierarchyBuilder
from .node_store import NodeStore
from .path_index import PathIndex, sibling_sort_key
from .query import HierarchyQuery, text_predicate, type_predicate
from .rollup import RollupAggregator

__all__ = [
    "AssemblyHierarchyEngine",
    "HierarchyBuilder",
    "NodeStore",
    "PathIndex",
    "sibling_sort_key",
    "HierarchyQuery",
    "text_predicate",
    "type_predicate",
    "RollupAggregator",
]
