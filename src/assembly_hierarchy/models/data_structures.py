"""Core data structures for the Assembly Hierarchy Engine.

This module defines the records the engine consumes (AssemblyNode), the
closed node-type enumeration, the structured warnings produced while
building a hierarchy, and the result objects returned by rollups and
queries.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple


class NodeType(str, Enum):
    """Closed classification of a BOM node.

    Anything the backend sends outside the four known values is mapped to
    UNKNOWN so it is displayed and counted as such instead of being
    misrendered as one of the known types.
    """

    ASSEMBLY = "ASSEMBLY"
    SUBASSEMBLY = "SUBASSEMBLY"
    PART = "PART"
    HARDWARE = "HARDWARE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        """Case-insensitive conversion with UNKNOWN fallback.

        Args:
            value: Raw node type (e.g. "PART", "assembly", None).

        Returns:
            The matching NodeType, or NodeType.UNKNOWN.
        """
        if isinstance(value, NodeType):
            return value
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_assembly(self) -> bool:
        """True for ASSEMBLY and SUBASSEMBLY."""
        return self in (NodeType.ASSEMBLY, NodeType.SUBASSEMBLY)


class QuantityRollup(str, Enum):
    """How occurrence counts propagate when rolling a subtree up.

    FLAT: recorded quantities are summed as-is.
    EXPLODED: each quantity is multiplied by the quantity of every ancestor
        between it and the queried node (2 sub-assemblies x 3 bolts each =
        6 bolts).

    Mass and volume always roll up as ``value * quantity`` per node, whatever
    the mode.
    """

    FLAT = "flat"
    EXPLODED = "exploded"

    @classmethod
    def parse(cls, value: Any) -> "QuantityRollup":
        """Convert a config value to a QuantityRollup.

        Raises:
            ValueError: If the value names no known mode.
        """
        if isinstance(value, QuantityRollup):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = [m.value for m in cls]
            raise ValueError(
                f"quantity_mode must be one of {valid}, got {value!r}"
            ) from None


class ChildState(Enum):
    """Whether a node's declared children are present in the node set.

    Attributes:
        LEAF: numchild is 0 and no children are present.
        COMPLETE: every declared child is present.
        PARTIAL: some, but not all, declared children are present.
        NOT_LOADED: children are declared but none are present.
    """

    LEAF = "leaf"
    COMPLETE = "complete"
    PARTIAL = "partial"
    NOT_LOADED = "not_loaded"

    @property
    def has_more(self) -> bool:
        """True when the backend holds children that were not supplied."""
        return self in (ChildState.PARTIAL, ChildState.NOT_LOADED)


class WarningKind(Enum):
    """Data-shape issues reported while building a hierarchy."""

    MALFORMED_PATH = "MALFORMED_PATH"
    ORPHAN_NODE = "ORPHAN_NODE"
    PARTIAL_SUBTREE = "PARTIAL_SUBTREE"
    CHILD_COUNT_MISMATCH = "CHILD_COUNT_MISMATCH"
    DUPLICATE_PATH = "DUPLICATE_PATH"
    DUPLICATE_ID = "DUPLICATE_ID"
    UNKNOWN_NODE_TYPE = "UNKNOWN_NODE_TYPE"
    INVALID_RECORD = "INVALID_RECORD"
    MISSING_MASS = "MISSING_MASS"


@dataclass(frozen=True)
class HierarchyWarning:
    """A recoverable data-shape issue attached to one node.

    Attributes:
        kind: Category of the issue.
        message: Human-readable description.
        design_id: Design the node belongs to, if known.
        node_id: Node the issue concerns, if known.
    """

    kind: WarningKind
    message: str
    design_id: Optional[str] = None
    node_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "design_id": self.design_id,
            "node_id": self.node_id,
        }


@dataclass(frozen=True)
class AssemblyNode:
    """A component occurrence within one design's assembly structure.

    Records carry a materialized path but no parent reference; the parent is
    the node whose path is this path minus its last segment.

    Attributes:
        id: Opaque unique identifier.
        design_id: Owning design asset.
        name: Component name.
        path: Separator-delimited segments from the root to this node.
        depth: Distance from the root (root depth is 0).
        numchild: Declared number of direct children.
        node_type: Closed node classification.
        quantity: Occurrences at this position, at least 1.
        part_number: Optional part number.
        reference_designator: Optional reference designator (e.g. "R12").
        mass: Optional mass of a single unit, non-negative.
        volume: Optional volume of a single unit, non-negative.
        component_metadata: Opaque metadata passed through untouched.
    """

    id: str
    design_id: str
    name: str
    path: str
    depth: int
    numchild: int
    node_type: NodeType
    quantity: int = 1
    part_number: Optional[str] = None
    reference_designator: Optional[str] = None
    mass: Optional[float] = None
    volume: Optional[float] = None
    component_metadata: Dict[str, Any] = field(
        default_factory=dict, compare=False, hash=False, repr=False
    )

    def __post_init__(self) -> None:
        """Validate field values."""
        if not isinstance(self.node_type, NodeType):
            object.__setattr__(self, "node_type", NodeType.parse(self.node_type))

        if not self.id:
            raise ValueError("id must be a non-empty string")
        if not isinstance(self.path, str):
            raise ValueError(f"path must be a string, got {type(self.path).__name__}")
        if _is_not_int(self.quantity) or self.quantity < 1:
            raise ValueError(f"quantity must be a positive integer, got {self.quantity!r}")
        if _is_not_int(self.depth) or self.depth < 0:
            raise ValueError(f"depth must be a non-negative integer, got {self.depth!r}")
        if _is_not_int(self.numchild) or self.numchild < 0:
            raise ValueError(
                f"numchild must be a non-negative integer, got {self.numchild!r}"
            )
        for attr in ("mass", "volume"):
            value = getattr(self, attr)
            if value is None:
                continue
            if not math.isfinite(value) or value < 0:
                raise ValueError(
                    f"{attr} must be a finite non-negative number, got {value!r}"
                )

    @property
    def has_mass(self) -> bool:
        return self.mass is not None

    def segments(self, separator: str = "/") -> List[str]:
        """Split the materialized path into its segments."""
        return self.path.split(separator)

    def parent_path(self, separator: str = "/") -> Optional[str]:
        """Path of the parent, or None for a single-segment path."""
        head, sep, _ = self.path.rpartition(separator)
        if not sep:
            return None
        return head

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AssemblyNode":
        """Build a node from an API record.

        Accepts the backend field names plus the aliases used by older
        payloads (``design_asset`` for ``design_id``, ``component_name`` for
        ``name``).

        Args:
            record: Mapping as returned by the BOM nodes endpoint.

        Returns:
            AssemblyNode built from the record.

        Raises:
            ValueError: If a required field is missing or a value is invalid.
            TypeError: If a numeric field has a non-numeric type.
        """
        missing = [key for key in ("id", "path", "depth", "numchild") if record.get(key) is None]
        if missing:
            raise ValueError(f"record is missing required fields: {missing}")

        design_id = record.get("design_id", record.get("design_asset"))
        name = record.get("name", record.get("component_name")) or ""
        quantity = record.get("quantity")

        metadata = record.get("component_metadata") or {}
        if not isinstance(metadata, dict):
            metadata = {"value": metadata}

        return cls(
            id=str(record["id"]),
            design_id="" if design_id is None else str(design_id),
            name=str(name),
            path=str(record["path"]),
            depth=_to_int(record["depth"], "depth"),
            numchild=_to_int(record["numchild"], "numchild"),
            node_type=NodeType.parse(record.get("node_type")),
            quantity=1 if quantity is None else _to_int(quantity, "quantity"),
            part_number=_optional_str(record.get("part_number")),
            reference_designator=_optional_str(record.get("reference_designator")),
            mass=_optional_float(record.get("mass"), "mass"),
            volume=_optional_float(record.get("volume"), "volume"),
            component_metadata=metadata,
        )


@dataclass(frozen=True)
class MassTotal:
    """Result of a mass (or volume) rollup.

    Attributes:
        value: Sum over the nodes that carry data.
        partial: True when at least one contributing node lacks data, so
            value is a lower bound rather than a true total.
        missing_node_ids: Ids of the nodes without data, in tree order.
    """

    value: float
    partial: bool = False
    missing_node_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "partial": self.partial,
            "missing_node_ids": list(self.missing_node_ids),
        }


@dataclass(frozen=True)
class BomSummary:
    """Whole-design aggregate metrics.

    Attributes:
        design_id: Design the summary was computed for.
        total_occurrences: Occurrence count under the configured rollup mode.
        unique_part_numbers: Number of distinct non-blank part numbers.
        total_mass: Sum of ``mass * quantity`` over every node.
        mass_partial: True when any node lacked mass data.
        counts_by_node_type: Node count per NodeType value (every type listed).
        assembly_count: ASSEMBLY plus SUBASSEMBLY nodes.
        node_count: Number of traversable nodes.
        quantity_mode: Rollup mode used for totals.
    """

    design_id: str
    total_occurrences: int = 0
    unique_part_numbers: int = 0
    total_mass: float = 0.0
    mass_partial: bool = False
    counts_by_node_type: Dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in NodeType}
    )
    assembly_count: int = 0
    node_count: int = 0
    quantity_mode: QuantityRollup = QuantityRollup.FLAT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "design_id": self.design_id,
            "total_occurrences": self.total_occurrences,
            "unique_part_numbers": self.unique_part_numbers,
            "total_mass": self.total_mass,
            "mass_partial": self.mass_partial,
            "counts_by_node_type": dict(self.counts_by_node_type),
            "assembly_count": self.assembly_count,
            "node_count": self.node_count,
            "quantity_mode": self.quantity_mode.value,
        }


@dataclass(frozen=True)
class SearchResult:
    """Outcome of a hierarchy-preserving search.

    Attributes:
        matched_ids: Nodes satisfying the predicate, in tree order.
        visible_ids: Matches plus all of their ancestors, in tree order.
    """

    matched_ids: Tuple[str, ...] = ()
    visible_ids: Tuple[str, ...] = ()
    matched_set: FrozenSet[str] = field(
        init=False, repr=False, compare=False, default=frozenset()
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "matched_set", frozenset(self.matched_ids))

    @property
    def context_ids(self) -> Tuple[str, ...]:
        """Ancestors shown only to keep matches inside their assemblies."""
        return tuple(i for i in self.visible_ids if i not in self.matched_set)

    def is_match(self, node_id: str) -> bool:
        return node_id in self.matched_set

    def __len__(self) -> int:
        return len(self.matched_ids)


def _is_not_int(value: Any) -> bool:
    return isinstance(value, bool) or not isinstance(value, int)


def _to_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be an integer, got bool")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{field_name} must be an integer, got {value!r}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{field_name} must be an integer, got {value!r}") from e


def _optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be a number, got bool")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{field_name} must be a number, got {value!r}") from e


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
