"""Node store for the assembly hierarchy engine.

An immutable id -> AssemblyNode mapping built from an unordered record list.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from ..models.data_structures import AssemblyNode, HierarchyWarning, WarningKind
from ..utils.error_handlers import NodeNotFoundError


logger = logging.getLogger(__name__)


class NodeStore:
    """Unordered mapping from node id to AssemblyNode.

    Input order is irrelevant: when the same id occurs more than once, the
    record that sorts first by path, then name, design and the remaining
    fields is kept and the other distinct records are reported as
    DUPLICATE_ID warnings. Exact repeats are ignored silently.

    Attributes:
        warnings: DUPLICATE_ID warnings raised while storing.
    """

    def __init__(self, nodes: Iterable[AssemblyNode]) -> None:
        """Initializes the store.

        Args:
            nodes: Nodes in any order.
        """
        self._nodes: Dict[str, AssemblyNode] = {}
        self._by_design: Dict[str, List[str]] = {}
        self.warnings: List[HierarchyWarning] = []

        candidates: Dict[str, List[AssemblyNode]] = {}
        for node in nodes:
            group = candidates.setdefault(node.id, [])
            # identical repeats are not conflicts
            if node not in group:
                group.append(node)

        for node_id, group in candidates.items():
            group.sort(key=_record_key)
            kept = group[0]
            self._nodes[node_id] = kept
            if len(group) == 1:
                continue
            for dropped in group[1:]:
                self.warnings.append(
                    HierarchyWarning(
                        kind=WarningKind.DUPLICATE_ID,
                        message=(
                            f"Duplicate id {node_id!r}: kept record at path "
                            f"{kept.path!r}, ignored conflicting record at path "
                            f"{dropped.path!r}"
                        ),
                        design_id=dropped.design_id,
                        node_id=node_id,
                    )
                )
            logger.warning(f"Duplicate node id {node_id!r} in input records")
        self.warnings.sort(key=lambda w: w.node_id)

        for node in self._nodes.values():
            self._by_design.setdefault(node.design_id, []).append(node.id)

    def get(self, node_id: str) -> AssemblyNode:
        """Return the node with the given id.

        Raises:
            NodeNotFoundError: If the id is not stored.
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def design_ids(self) -> List[str]:
        """Sorted ids of the designs present in the store."""
        return sorted(self._by_design)

    def nodes_for_design(self, design_id: str) -> List[AssemblyNode]:
        """Nodes of one design, in no particular order."""
        return [self._nodes[i] for i in self._by_design.get(design_id, [])]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[AssemblyNode]:
        return iter(self._nodes.values())


def _record_key(node: AssemblyNode) -> tuple:
    # covers every compared field, so distinct records never tie
    return (
        node.path,
        node.name,
        node.design_id,
        node.depth,
        node.numchild,
        node.node_type.value,
        node.quantity,
        _optional_key(node.part_number, ""),
        _optional_key(node.reference_designator, ""),
        _optional_key(node.mass, 0.0),
        _optional_key(node.volume, 0.0),
    )


def _optional_key(value: Any, empty: Any) -> Tuple[bool, Any]:
    return (value is not None, empty if value is None else value)
