"""Rollup aggregation for the Assembly Hierarchy Engine.

Computes hierarchy-aware metrics (occurrence counts, mass, volume, per-type
counts, part-number cardinality) over a subtree or a whole design in a single
depth-first pass.

Mass and volume follow

    subtree_mass(n) = n.mass * n.quantity + sum(subtree_mass(c) for c in children)

in every mode. Occurrence counts depend on the quantity mode (see
QuantityRollup):

    FLAT      every node contributes its recorded quantity.
    EXPLODED  every node contributes ``quantity * multiplier`` where the
              multiplier is the product of the quantities of its ancestors up
              to and including the queried node.

A node without mass (or volume) contributes 0 and marks the total partial.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models.data_structures import (
    BomSummary,
    HierarchyWarning,
    MassTotal,
    NodeType,
    QuantityRollup,
    WarningKind,
)
from ..utils.text_utils import normalize_part_number
from .hierarchy_builder import HierarchyBuilder


logger = logging.getLogger(__name__)


@dataclass
class _Accumulator:
    """Running totals for one traversal."""

    occurrences: int = 0
    mass_terms: List[float] = field(default_factory=list)
    volume_terms: List[float] = field(default_factory=list)
    missing_mass: List[str] = field(default_factory=list)
    missing_volume: List[str] = field(default_factory=list)
    part_numbers: Set[str] = field(default_factory=set)
    counts: Dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in NodeType}
    )
    node_count: int = 0


class RollupAggregator:
    """Computes subtree and whole-design rollups for one design.

    Attributes:
        builder: Hierarchy navigation for the design.
        mode: Default quantity mode for every rollup.

    Example:
        >>> aggregator = RollupAggregator(builder, QuantityRollup.EXPLODED)
        >>> aggregator.subtree_quantity("gearbox-1")
        9
    """

    def __init__(
        self,
        builder: HierarchyBuilder,
        mode: QuantityRollup = QuantityRollup.FLAT,
    ) -> None:
        """Initializes the aggregator.

        Args:
            builder: Navigation over the design to aggregate.
            mode: Default quantity mode; individual calls may override it.
        """
        self.builder = builder
        self.mode = QuantityRollup.parse(mode)

    def subtree_quantity(
        self, node_id: str, mode: Optional[QuantityRollup] = None
    ) -> int:
        """Total occurrence count of a node and all of its descendants.

        Args:
            node_id: Subtree root.
            mode: Quantity mode; defaults to the aggregator mode.

        Returns:
            Occurrence count.

        Raises:
            NodeNotFoundError: If the id is not in this design.
            ExcludedNodeError: If the node is excluded from traversal.
        """
        return self._accumulate((node_id,), mode).occurrences

    def subtree_mass(self, node_id: str) -> MassTotal:
        """Mass of a node and all of its descendants.

        Each node contributes ``mass * quantity``; the quantity mode does not
        apply.

        Returns:
            MassTotal whose ``partial`` flag is set when any node in the
            subtree has no mass data.
        """
        acc = self._accumulate((node_id,), None)
        return _total(acc.mass_terms, acc.missing_mass)

    def subtree_volume(self, node_id: str) -> MassTotal:
        """Volume of a node and all of its descendants, see subtree_mass()."""
        acc = self._accumulate((node_id,), None)
        return _total(acc.volume_terms, acc.missing_volume)

    def summary(self, mode: Optional[QuantityRollup] = None) -> BomSummary:
        """Aggregate metrics for the whole design in one O(n) traversal.

        Orphans are included as synthetic roots; excluded nodes are not. An
        empty design yields an all-zero summary.
        """
        resolved = self._resolve_mode(mode)
        acc = self._accumulate(self.builder.root_ids(include_orphans=True), resolved)
        mass = _total(acc.mass_terms, acc.missing_mass)

        summary = BomSummary(
            design_id=self.builder.design_id,
            total_occurrences=acc.occurrences,
            unique_part_numbers=len(acc.part_numbers),
            total_mass=mass.value,
            mass_partial=mass.partial,
            counts_by_node_type=acc.counts,
            assembly_count=(
                acc.counts[NodeType.ASSEMBLY.value]
                + acc.counts[NodeType.SUBASSEMBLY.value]
            ),
            node_count=acc.node_count,
            quantity_mode=resolved,
        )
        logger.debug(
            f"Summary for design {summary.design_id}: "
            f"{summary.node_count} nodes, {summary.total_occurrences} occurrences"
        )
        return summary

    def missing_mass_warnings(self) -> List[HierarchyWarning]:
        """MISSING_MASS warnings for every traversable node without mass."""
        warnings = []
        for node, _ in self.builder.walk():
            if node.has_mass:
                continue
            warnings.append(
                HierarchyWarning(
                    kind=WarningKind.MISSING_MASS,
                    message=f"Node {node.name!r} has no mass data",
                    design_id=node.design_id,
                    node_id=node.id,
                )
            )
        return warnings

    def _resolve_mode(self, mode: Optional[QuantityRollup]) -> QuantityRollup:
        if mode is None:
            return self.mode
        return QuantityRollup.parse(mode)

    def _accumulate(
        self, start_ids: Iterable[str], mode: Optional[QuantityRollup]
    ) -> _Accumulator:
        exploded = self._resolve_mode(mode) is QuantityRollup.EXPLODED
        index = self.builder.index
        acc = _Accumulator()

        # (node_id, product of ancestor quantities above the node)
        stack: List[Tuple[str, int]] = [(i, 1) for i in reversed(tuple(start_ids))]
        while stack:
            node_id, multiplier = stack.pop()
            child_ids = index.child_ids(node_id)
            node = index.node(node_id)

            effective = node.quantity * multiplier if exploded else node.quantity
            acc.occurrences += effective
            acc.node_count += 1
            acc.counts[node.node_type.value] += 1

            if node.mass is None:
                acc.missing_mass.append(node_id)
            else:
                acc.mass_terms.append(node.mass * node.quantity)
            if node.volume is None:
                acc.missing_volume.append(node_id)
            else:
                acc.volume_terms.append(node.volume * node.quantity)

            part_number = normalize_part_number(node.part_number)
            if part_number is not None:
                acc.part_numbers.add(part_number)

            child_multiplier = effective if exploded else 1
            for child_id in reversed(child_ids):
                stack.append((child_id, child_multiplier))

        return acc


def _total(terms: List[float], missing: List[str]) -> MassTotal:
    return MassTotal(
        value=math.fsum(terms),
        partial=bool(missing),
        missing_node_ids=tuple(missing),
    )
