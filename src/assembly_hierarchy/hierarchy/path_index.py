"""Path index for the assembly hierarchy engine.

This module turns the unordered node list of one design into constant-time
path -> node and parent -> children lookups. Parents are found by dropping
the last segment of a node's materialized path, so no parent reference is
needed in the input.

Sibling order is deterministic and independent of input order:
    1. ascending natural order of reference_designator ("R2" before "R10"),
       nodes without a designator after those with one
    2. name, case-insensitive
    3. path (unique, so the order is total)
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..models.data_structures import (
    AssemblyNode,
    ChildState,
    HierarchyWarning,
    WarningKind,
)
from ..utils.error_handlers import ExcludedNodeError, NodeNotFoundError
from ..utils.text_utils import natural_sort_key


logger = logging.getLogger(__name__)


def sibling_sort_key(node: AssemblyNode) -> tuple:
    """Sort key implementing the sibling ordering contract."""
    designator = (node.reference_designator or "").strip()
    return (
        designator == "",
        natural_sort_key(designator),
        node.name.casefold(),
        node.path,
    )


class PathIndex:
    """Materialized-path index over one design's nodes.

    Nodes fall into exactly one of four groups:
        - roots: single-segment paths (depth 0)
        - attached: parent path present in the index
        - orphans: parent path absent; reported, kept as synthetic roots
        - excluded: malformed or duplicate paths; reported, not traversable

    Attributes:
        design_id: Design the index was built for.
        separator: Path segment delimiter.
        warnings: Data-shape issues found during the build.

    Example:
        >>> index = PathIndex.build(nodes, design_id="D-1")
        >>> index.child_ids(index.root_ids[0])
        ('n-2', 'n-3')
    """

    def __init__(self, design_id: str, separator: str = "/") -> None:
        self.design_id = design_id
        self.separator = separator
        self.warnings: List[HierarchyWarning] = []

        self._nodes: Dict[str, AssemblyNode] = {}
        self._path_to_id: Dict[str, str] = {}
        self._children: Dict[str, Tuple[str, ...]] = {}
        self._parent: Dict[str, str] = {}
        self._roots: Tuple[str, ...] = ()
        self._orphans: Tuple[str, ...] = ()
        self._orphan_set: FrozenSet[str] = frozenset()
        self._excluded: Dict[str, WarningKind] = {}

    @classmethod
    def build(
        cls, nodes: Iterable[AssemblyNode], design_id: str, separator: str = "/"
    ) -> "PathIndex":
        """Build the index for one design.

        Args:
            nodes: Nodes of the design, in any order. Nodes of other designs
                are ignored.
            design_id: Design to index.
            separator: Path segment delimiter.

        Returns:
            A fully built, read-only PathIndex.
        """
        index = cls(design_id, separator)
        design_nodes = sorted(
            (n for n in nodes if n.design_id == design_id), key=lambda n: n.id
        )
        index._nodes = {n.id: n for n in design_nodes}

        valid = [n for n in design_nodes if index._check_path(n)]
        index._register_paths(valid)
        index._link()
        index._check_child_counts()

        logger.info(
            f"Indexed design {design_id}: {len(index._path_to_id)} nodes, "
            f"{len(index._roots)} roots, {len(index._orphans)} orphans, "
            f"{len(index._excluded)} excluded, {len(index.warnings)} warnings"
        )
        return index

    # ---------------- BUILD STEPS ----------------

    def _check_path(self, node: AssemblyNode) -> bool:
        segments = node.segments(self.separator)
        if not node.path or any(segment == "" for segment in segments):
            self._exclude(
                node,
                WarningKind.MALFORMED_PATH,
                f"Path {node.path!r} has an empty segment",
            )
            return False

        expected_depth = len(segments) - 1
        if node.depth != expected_depth:
            self._exclude(
                node,
                WarningKind.MALFORMED_PATH,
                f"Depth {node.depth} does not match path {node.path!r} "
                f"(expected {expected_depth})",
            )
            return False
        return True

    def _register_paths(self, valid: List[AssemblyNode]) -> None:
        # valid is sorted by id, so the smallest id wins a path collision
        for node in valid:
            owner = self._path_to_id.get(node.path)
            if owner is None:
                self._path_to_id[node.path] = node.id
                continue
            self._exclude(
                node,
                WarningKind.DUPLICATE_PATH,
                f"Path {node.path!r} already used by node {owner!r}",
            )

    def _link(self) -> None:
        children: Dict[str, List[AssemblyNode]] = {}
        roots: List[AssemblyNode] = []
        orphans: List[AssemblyNode] = []

        for node_id in self._path_to_id.values():
            node = self._nodes[node_id]
            parent_path = node.parent_path(self.separator)
            if parent_path is None:
                roots.append(node)
                continue

            parent_id = self._path_to_id.get(parent_path)
            if parent_id is None:
                orphans.append(node)
                self.warnings.append(
                    HierarchyWarning(
                        kind=WarningKind.ORPHAN_NODE,
                        message=(
                            f"Parent path {parent_path!r} of node {node.name!r} "
                            f"is not in the node set"
                        ),
                        design_id=self.design_id,
                        node_id=node.id,
                    )
                )
                logger.debug(f"Orphan node {node.id} (missing parent {parent_path!r})")
                continue

            self._parent[node.id] = parent_id
            children.setdefault(parent_id, []).append(node)

        self._children = {
            parent_id: tuple(n.id for n in sorted(kids, key=sibling_sort_key))
            for parent_id, kids in children.items()
        }
        self._roots = tuple(n.id for n in sorted(roots, key=sibling_sort_key))
        self._orphans = tuple(n.id for n in sorted(orphans, key=sibling_sort_key))
        self._orphan_set = frozenset(self._orphans)

    def _check_child_counts(self) -> None:
        for node_id in sorted(self._path_to_id.values()):
            node = self._nodes[node_id]
            present = len(self._children.get(node_id, ()))
            if present < node.numchild:
                self.warnings.append(
                    HierarchyWarning(
                        kind=WarningKind.PARTIAL_SUBTREE,
                        message=(
                            f"Node {node.name!r} declares {node.numchild} children "
                            f"but {present} are present"
                        ),
                        design_id=self.design_id,
                        node_id=node_id,
                    )
                )
            elif present > node.numchild:
                self.warnings.append(
                    HierarchyWarning(
                        kind=WarningKind.CHILD_COUNT_MISMATCH,
                        message=(
                            f"Node {node.name!r} declares {node.numchild} children "
                            f"but {present} are present"
                        ),
                        design_id=self.design_id,
                        node_id=node_id,
                    )
                )

    def _exclude(self, node: AssemblyNode, kind: WarningKind, message: str) -> None:
        self._excluded[node.id] = kind
        self.warnings.append(
            HierarchyWarning(
                kind=kind, message=message, design_id=self.design_id, node_id=node.id
            )
        )
        logger.debug(f"Excluded node {node.id}: {message}")

    # ---------------- LOOKUPS ----------------

    @property
    def root_ids(self) -> Tuple[str, ...]:
        """Depth-0 nodes in sibling order."""
        return self._roots

    @property
    def orphan_ids(self) -> Tuple[str, ...]:
        """Non-root nodes whose parent is missing, in sibling order."""
        return self._orphans

    @property
    def excluded_ids(self) -> Dict[str, WarningKind]:
        """Excluded node ids mapped to the reason for exclusion."""
        return dict(self._excluded)

    def node(self, node_id: str) -> AssemblyNode:
        """Return any node of this design, excluded or not.

        Raises:
            NodeNotFoundError: If the id does not belong to this design.
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id, self.design_id) from None

    def id_for_path(self, path: str) -> Optional[str]:
        """Id of the traversable node at path, or None."""
        return self._path_to_id.get(path)

    def child_ids(self, node_id: str) -> Tuple[str, ...]:
        """Direct children of a traversable node, in sibling order.

        Raises:
            NodeNotFoundError: If the id does not belong to this design.
            ExcludedNodeError: If the node is excluded from traversal.
        """
        self._require_traversable(node_id)
        return self._children.get(node_id, ())

    def parent_id(self, node_id: str) -> Optional[str]:
        """Parent of a traversable node; None for roots and orphans."""
        self._require_traversable(node_id)
        return self._parent.get(node_id)

    def is_orphan(self, node_id: str) -> bool:
        return node_id in self._orphan_set

    def is_excluded(self, node_id: str) -> bool:
        return node_id in self._excluded

    def child_state(self, node_id: str) -> ChildState:
        """Compare declared and present children of a node."""
        node = self._require_traversable(node_id)
        present = len(self._children.get(node_id, ()))
        if present >= node.numchild:
            return ChildState.COMPLETE if present else ChildState.LEAF
        if present == 0:
            return ChildState.NOT_LOADED
        return ChildState.PARTIAL

    def is_partial(self, node_id: str) -> bool:
        """True when some declared children are missing from the node set."""
        return self.child_state(node_id).has_more

    def traversable_ids(self) -> List[str]:
        """All non-excluded node ids, sorted."""
        return sorted(self._path_to_id.values())

    def _require_traversable(self, node_id: str) -> AssemblyNode:
        node = self.node(node_id)
        reason = self._excluded.get(node_id)
        if reason is not None:
            raise ExcludedNodeError(node_id, reason.value, self.design_id)
        return node

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._path_to_id)
