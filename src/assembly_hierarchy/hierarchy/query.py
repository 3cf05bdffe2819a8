"""
Query and filter layer for the Assembly Hierarchy Engine.

Two kinds of narrowing are offered, with different contracts:

    search()          hierarchy-preserving: matches are returned together with
                      every ancestor so a deeply nested part still renders
                      inside its assembly chain.
    filter_by_type()  flat: only the matching nodes, no ancestors. Callers
                      rendering a tree from it must treat rows as detached.
"""

import logging
from typing import Callable, List, Set, Union

from ..models.data_structures import AssemblyNode, NodeType, SearchResult
from ..utils.text_utils import contains_text, normalize_whitespace
from .hierarchy_builder import HierarchyBuilder


logger = logging.getLogger(__name__)

NodePredicate = Callable[[AssemblyNode], bool]

ALL_TYPES = "all"


def text_predicate(query: str) -> NodePredicate:
    """Build a case-insensitive text match on name, part number and designator.

    Args:
        query: Free text typed by the user. Blank matches every node.

    Returns:
        Predicate over AssemblyNode.

    Example:
        >>> matches = text_predicate("m6")
        >>> matches(bolt_node)
        True
    """
    needle = normalize_whitespace(query).casefold()

    def predicate(node: AssemblyNode) -> bool:
        if not needle:
            return True
        return (
            contains_text(node.name, needle)
            or contains_text(node.part_number, needle)
            or contains_text(node.reference_designator, needle)
        )

    return predicate


def type_predicate(node_type: Union[NodeType, str]) -> NodePredicate:
    """Build a predicate matching one node type."""
    wanted = NodeType.parse(node_type)
    return lambda node: node.node_type is wanted


class HierarchyQuery:
    """Search and filter over one design's hierarchy.

    Attributes:
        builder: Hierarchy navigation for the design.
    """

    def __init__(self, builder: HierarchyBuilder) -> None:
        self.builder = builder

    def search(self, predicate: Union[NodePredicate, str]) -> SearchResult:
        """Find matching nodes and restore their ancestor chains.

        Args:
            predicate: Callable on AssemblyNode, or a text query (see
                text_predicate()).

        Returns:
            SearchResult with matched ids and visible ids (matches plus their
            ancestors), both in tree order.
        """
        if isinstance(predicate, str):
            predicate = text_predicate(predicate)

        matched: List[str] = []
        visible: Set[str] = set()
        for node, _ in self.builder.walk():
            if not predicate(node):
                continue
            matched.append(node.id)
            if node.id in visible:
                continue
            visible.add(node.id)
            for ancestor_id in self.builder.ancestors(node.id):
                if ancestor_id in visible:
                    break
                visible.add(ancestor_id)

        ordered_visible = tuple(
            node.id for node, _ in self.builder.walk() if node.id in visible
        )
        logger.debug(
            f"Search in design {self.builder.design_id}: {len(matched)} matches, "
            f"{len(ordered_visible)} visible"
        )
        return SearchResult(matched_ids=tuple(matched), visible_ids=ordered_visible)

    def filter_by_type(self, node_type: Union[NodeType, str]) -> List[AssemblyNode]:
        """Return nodes of one type in tree order, without their ancestors.

        Args:
            node_type: NodeType or its name (case-insensitive). ``"all"``
                returns every traversable node.

        Returns:
            Matching nodes as a flat list.
        """
        if isinstance(node_type, str) and node_type.strip().lower() == ALL_TYPES:
            return [node for node, _ in self.builder.walk()]

        predicate = type_predicate(node_type)
        return [node for node, _ in self.builder.walk() if predicate(node)]
