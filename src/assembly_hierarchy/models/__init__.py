"""Data structures shared across the assembly hierarchy engine."""

from .data_structures import (
    AssemblyNode,
    BomSummary,
    ChildState,
    HierarchyWarning,
    MassTotal,
    NodeType,
    QuantityRollup,
    SearchResult,
    WarningKind,
)

__all__ = [
    "AssemblyNode",
    "BomSummary",
    "ChildState",
    "HierarchyWarning",
    "MassTotal",
    "NodeType",
    "QuantityRollup",
    "SearchResult",
    "WarningKind",
]
