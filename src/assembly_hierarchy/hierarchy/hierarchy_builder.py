"""Hierarchy builder module for the Assembly Hierarchy Engine.

This module exposes tree navigation over a built PathIndex without
materializing a full node-object tree. Expand/collapse state is owned by the
caller: methods that depend on it take the expanded id set as an argument and
never store it.
"""

import logging
from typing import Any, Collection, Dict, Iterator, List, Optional, Set, Tuple

from ..models.data_structures import AssemblyNode, ChildState
from .path_index import PathIndex


logger = logging.getLogger(__name__)


class HierarchyBuilder:
    """Stateless navigation over one design's path index.

    Attributes:
        index: The path index navigated by this builder.

    Example:
        >>> builder = HierarchyBuilder(PathIndex.build(nodes, "D-1"))
        >>> [n.name for n in builder.roots()]
        ['Gearbox']
        >>> builder.ancestors("bolt-7")
        ['housing-2', 'gearbox-1']
    """

    def __init__(self, index: PathIndex) -> None:
        """Initializes the builder.

        Args:
            index: Built path index for a single design.
        """
        self.index = index

    @property
    def design_id(self) -> str:
        return self.index.design_id

    def roots(self, include_orphans: bool = False) -> List[AssemblyNode]:
        """Return the depth-0 nodes in sibling order.

        Args:
            include_orphans: If True, orphans follow the true roots as
                synthetic roots for display.

        Returns:
            Root nodes.
        """
        return [self.index.node(i) for i in self.root_ids(include_orphans)]

    def root_ids(self, include_orphans: bool = False) -> Tuple[str, ...]:
        if include_orphans:
            return self.index.root_ids + self.index.orphan_ids
        return self.index.root_ids

    def children(self, node_id: str) -> List[AssemblyNode]:
        """Return the direct children of a node in sibling order.

        Runs in time proportional to the number of children.

        Raises:
            NodeNotFoundError: If the id is not in this design.
            ExcludedNodeError: If the node is excluded from traversal.
        """
        return [self.index.node(i) for i in self.index.child_ids(node_id)]

    def ancestors(self, node_id: str) -> List[str]:
        """Return ancestor ids from the parent up to the root.

        Orphans have no ancestors: they are displayed as synthetic roots.

        Raises:
            NodeNotFoundError: If the id is not in this design.
            ExcludedNodeError: If the node is excluded from traversal.
        """
        chain: List[str] = []
        parent_id = self.index.parent_id(node_id)
        while parent_id is not None:
            chain.append(parent_id)
            parent_id = self.index.parent_id(parent_id)
        return chain

    def child_state(self, node_id: str) -> ChildState:
        """Tell a true leaf apart from a node whose children were not loaded."""
        return self.index.child_state(node_id)

    def walk(
        self, node_id: Optional[str] = None, include_orphans: bool = True
    ) -> Iterator[Tuple[AssemblyNode, int]]:
        """Traverse depth-first, yielding (node, level) pairs.

        Args:
            node_id: Subtree root to start from. If None, every root (and
                orphan, when include_orphans is set) is walked in order.
            include_orphans: Walk orphan subtrees when node_id is None.

        Yields:
            (node, level) with level 0 for the starting node(s).
        """
        if node_id is None:
            start = self.root_ids(include_orphans)
        else:
            self.index.child_ids(node_id)  # validates the id
            start = (node_id,)

        stack: List[Tuple[str, int]] = [(i, 0) for i in reversed(start)]
        while stack:
            current_id, level = stack.pop()
            yield self.index.node(current_id), level
            for child_id in reversed(self.index.child_ids(current_id)):
                stack.append((child_id, level + 1))

    def visible_rows(
        self, expanded_ids: Collection[str], include_orphans: bool = True
    ) -> Iterator[Tuple[AssemblyNode, int]]:
        """Lazily yield the rows a tree view shows for an expanded id set.

        Children of a node are only looked up when that node is expanded, so
        a mostly-collapsed view of a large tree touches few nodes.

        Args:
            expanded_ids: Ids the caller currently shows expanded.
            include_orphans: Show orphans as synthetic roots.

        Yields:
            (node, level) in display order.
        """
        stack: List[Tuple[str, int]] = [
            (i, 0) for i in reversed(self.root_ids(include_orphans))
        ]
        while stack:
            current_id, level = stack.pop()
            yield self.index.node(current_id), level
            if current_id in expanded_ids:
                for child_id in reversed(self.index.child_ids(current_id)):
                    stack.append((child_id, level + 1))

    def default_expanded(
        self, max_level: int = 2, include_orphans: bool = True
    ) -> Set[str]:
        """Ids expanded on first display: nodes with children above max_level.

        Orphan subtrees are only considered when include_orphans is set.
        """
        expanded: Set[str] = set()
        stack = [(i, 0) for i in self.root_ids(include_orphans)]
        while stack:
            current_id, level = stack.pop()
            if level >= max_level:
                continue
            child_ids = self.index.child_ids(current_id)
            if child_ids:
                expanded.add(current_id)
                stack.extend((c, level + 1) for c in child_ids)
        return expanded

    def all_expandable(self, include_orphans: bool = True) -> Set[str]:
        """Ids of every node with at least one present child."""
        return {
            node.id
            for node, _ in self.walk(include_orphans=include_orphans)
            if self.index.child_ids(node.id)
        }

    def materialize(
        self, node_id: str, max_depth: Optional[int] = None
    ) -> Dict[str, Any]:
        """Build a nested dictionary view of one subtree.

        Args:
            node_id: Subtree root.
            max_depth: Levels below node_id to include. None includes the
                whole subtree; 0 returns the node alone.

        Returns:
            Node dictionary with a "children" list. Nodes cut off by
            max_depth carry ``children_truncated=True``.
        """
        if max_depth is not None and max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")

        root = self._node_dict(node_id)
        stack: List[Tuple[str, Dict[str, Any], int]] = [(node_id, root, 0)]
        while stack:
            current_id, current, level = stack.pop()
            child_ids = self.index.child_ids(current_id)
            if max_depth is not None and level >= max_depth:
                current["children_truncated"] = bool(child_ids)
                continue
            for child_id in child_ids:
                child = self._node_dict(child_id)
                current["children"].append(child)
                stack.append((child_id, child, level + 1))
        return root

    def tree(
        self, max_depth: Optional[int] = None, include_orphans: bool = True
    ) -> List[Dict[str, Any]]:
        """Materialize every root subtree, see materialize()."""
        return [
            self.materialize(root_id, max_depth)
            for root_id in self.root_ids(include_orphans)
        ]

    def _node_dict(self, node_id: str) -> Dict[str, Any]:
        node = self.index.node(node_id)
        return {
            "id": node.id,
            "name": node.name,
            "part_number": node.part_number,
            "reference_designator": node.reference_designator,
            "node_type": node.node_type.value,
            "quantity": node.quantity,
            "mass": node.mass,
            "volume": node.volume,
            "path": node.path,
            "depth": node.depth,
            "numchild": node.numchild,
            "child_state": self.index.child_state(node_id).value,
            "orphan": self.index.is_orphan(node_id),
            "children_truncated": False,
            "children": [],
        }
