"""Engine facade for the Assembly Hierarchy Engine.

Builds the node store, one path index per design, and the navigation,
rollup and query objects on top of it. An engine is immutable once built:
refreshed node lists must go through AssemblyHierarchyEngine.build() again,
so readers never see a half-rebuilt index.

Typical usage example:
    engine = AssemblyHierarchyEngine.build(records)
    for root in engine.roots("D-1"):
        print(root.name, engine.subtree_quantity(root.id))
    print(engine.summary("D-1").to_dict())
"""

import logging
from typing import (
    Any,
    Collection,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from ..ingest.record_loader import LoadResult, load_records
from ..models.data_structures import (
    AssemblyNode,
    BomSummary,
    ChildState,
    HierarchyWarning,
    MassTotal,
    NodeType,
    QuantityRollup,
    SearchResult,
)
from ..utils.config_loader import EngineConfig
from ..utils.error_handlers import NodeNotFoundError
from .hierarchy_builder import HierarchyBuilder
from .node_store import NodeStore
from .path_index import PathIndex
from .query import HierarchyQuery, NodePredicate
from .rollup import RollupAggregator


logger = logging.getLogger(__name__)


class _DesignView:
    """Index, builder, aggregator and query for one design."""

    def __init__(
        self, store: NodeStore, design_id: str, config: EngineConfig
    ) -> None:
        self.index = PathIndex.build(
            store.nodes_for_design(design_id), design_id, config.path_separator
        )
        self.builder = HierarchyBuilder(self.index)
        self.aggregator = RollupAggregator(self.builder, config.quantity_mode)
        self.query = HierarchyQuery(self.builder)

        self.warnings: List[HierarchyWarning] = list(self.index.warnings)
        if config.warn_on_missing_mass:
            self.warnings.extend(self.aggregator.missing_mass_warnings())


class AssemblyHierarchyEngine:
    """Navigable, aggregable BOM hierarchy built from flat path records.

    Node ids are unique across the engine, so navigation methods take a node
    id alone and route to the owning design. Design-scoped methods take a
    design id; an unknown design id behaves like an empty design.

    Attributes:
        config: Engine configuration used for the build.
        store: All input nodes keyed by id.
    """

    def __init__(
        self,
        store: NodeStore,
        config: Optional[EngineConfig] = None,
        load_warnings: Iterable[HierarchyWarning] = (),
    ) -> None:
        """Initializes the engine from an already built node store.

        Prefer AssemblyHierarchyEngine.build().

        Args:
            store: Node store holding every design's nodes.
            config: Engine configuration. If None, defaults are used.
            load_warnings: Warnings raised before the store was built (e.g.
                by the record loader) to report alongside build warnings.
        """
        self.config = config or EngineConfig()
        self.store = store
        self._load_warnings: List[HierarchyWarning] = list(load_warnings)
        self._load_warnings.extend(store.warnings)
        self._designs: Dict[str, _DesignView] = {
            design_id: _DesignView(store, design_id, self.config)
            for design_id in store.design_ids()
        }

        logger.info(
            f"AssemblyHierarchyEngine built: {len(store)} nodes, "
            f"{len(self._designs)} designs, {len(self.warnings())} warnings"
        )

    @classmethod
    def build(
        cls,
        records: Union[Iterable[Union[AssemblyNode, Mapping[str, Any]]], Mapping[str, Any]],
        config: Optional[EngineConfig] = None,
    ) -> "AssemblyHierarchyEngine":
        """Build an engine from nodes, raw API records, or a paginated payload.

        Args:
            records: AssemblyNode objects, record dictionaries, a mix of both,
                or a ``{"results": [...]}`` envelope.
            config: Engine configuration. If None, defaults are used.

        Returns:
            A new, immutable engine.
        """
        loaded: LoadResult = load_records(records)
        return cls(NodeStore(loaded.nodes), config, loaded.warnings)

    # ---------------- NAVIGATION ----------------

    def design_ids(self) -> List[str]:
        """Sorted ids of the designs present in the input."""
        return sorted(self._designs)

    def node(self, node_id: str) -> AssemblyNode:
        """Return a node by id.

        Raises:
            NodeNotFoundError: If the id is unknown.
        """
        return self.store.get(node_id)

    def roots(
        self, design_id: str, include_orphans: bool = False
    ) -> List[AssemblyNode]:
        """Return the root nodes of a design in sibling order.

        Args:
            design_id: Design to list.
            include_orphans: Append orphans as synthetic roots; use
                display_roots() to follow the configured default.
        """
        return self._view(design_id).builder.roots(include_orphans)

    def display_roots(self, design_id: str) -> List[AssemblyNode]:
        """Roots for display, with orphans per config.include_orphans_in_roots."""
        return self.roots(design_id, self.config.include_orphans_in_roots)

    def children(self, node_id: str) -> List[AssemblyNode]:
        """Direct children of a node in sibling order.

        Raises:
            NodeNotFoundError: If the id is unknown.
            ExcludedNodeError: If the node is excluded from traversal.
        """
        return self._owner(node_id).builder.children(node_id)

    def ancestors(self, node_id: str) -> List[str]:
        """Ancestor ids from the parent up to the root."""
        return self._owner(node_id).builder.ancestors(node_id)

    def child_state(self, node_id: str) -> ChildState:
        """Whether a node's declared children are all present."""
        return self._owner(node_id).builder.child_state(node_id)

    def is_orphan(self, node_id: str) -> bool:
        return self._owner(node_id).index.is_orphan(node_id)

    def is_excluded(self, node_id: str) -> bool:
        return self._owner(node_id).index.is_excluded(node_id)

    def walk(
        self, design_id: str, include_orphans: Optional[bool] = None
    ) -> Iterator[Tuple[AssemblyNode, int]]:
        """Depth-first (node, level) traversal of a whole design.

        Orphan subtrees follow config.include_orphans_in_roots unless
        include_orphans is given.
        """
        if include_orphans is None:
            include_orphans = self.config.include_orphans_in_roots
        return self._view(design_id).builder.walk(include_orphans=include_orphans)

    def visible_rows(
        self, design_id: str, expanded_ids: Collection[str]
    ) -> Iterator[Tuple[AssemblyNode, int]]:
        """Rows a tree view shows for the caller's expanded id set."""
        return self._view(design_id).builder.visible_rows(
            expanded_ids, self.config.include_orphans_in_roots
        )

    def default_expanded(self, design_id: str) -> Collection[str]:
        """Ids expanded on first display (config.default_expand_level)."""
        return self._view(design_id).builder.default_expanded(
            self.config.default_expand_level, self.config.include_orphans_in_roots
        )

    def all_expandable(self, design_id: str) -> Collection[str]:
        """Ids to expand for an "expand all" action."""
        return self._view(design_id).builder.all_expandable(
            self.config.include_orphans_in_roots
        )

    def materialize(
        self, node_id: str, max_depth: Optional[int] = None
    ) -> Dict[str, Any]:
        """Nested dictionary view of one subtree, cut at max_depth."""
        return self._owner(node_id).builder.materialize(node_id, max_depth)

    def tree(self, design_id: str, max_depth: Optional[int] = None) -> List[Dict[str, Any]]:
        """Nested dictionary view of every display root of a design."""
        return self._view(design_id).builder.tree(
            max_depth, self.config.include_orphans_in_roots
        )

    # ---------------- ROLLUPS ----------------

    def summary(
        self, design_id: str, mode: Optional[QuantityRollup] = None
    ) -> BomSummary:
        """Whole-design aggregate metrics; all zeros for an empty design."""
        return self._view(design_id).aggregator.summary(mode)

    def subtree_mass(self, node_id: str) -> MassTotal:
        return self._owner(node_id).aggregator.subtree_mass(node_id)

    def subtree_volume(self, node_id: str) -> MassTotal:
        return self._owner(node_id).aggregator.subtree_volume(node_id)

    def subtree_quantity(
        self, node_id: str, mode: Optional[QuantityRollup] = None
    ) -> int:
        return self._owner(node_id).aggregator.subtree_quantity(node_id, mode)

    # ---------------- QUERIES ----------------

    def search(
        self, design_id: str, predicate: Union[NodePredicate, str]
    ) -> SearchResult:
        """Matching ids plus their ancestor chains, see HierarchyQuery.search()."""
        return self._view(design_id).query.search(predicate)

    def filter_by_type(
        self, design_id: str, node_type: Union[NodeType, str]
    ) -> List[AssemblyNode]:
        """Flat list of nodes of one type; ancestors are not included."""
        return self._view(design_id).query.filter_by_type(node_type)

    # ---------------- WARNINGS ----------------

    def warnings(self, design_id: Optional[str] = None) -> List[HierarchyWarning]:
        """Data-shape warnings, for one design or for the whole input.

        Load warnings without a known design are only listed when design_id
        is None.
        """
        if design_id is None:
            collected = list(self._load_warnings)
            for view_id in self.design_ids():
                collected.extend(self._designs[view_id].warnings)
            return collected

        collected = [w for w in self._load_warnings if w.design_id == design_id]
        collected.extend(self._view(design_id).warnings)
        return collected

    # ---------------- INTERNALS ----------------

    def _view(self, design_id: str) -> _DesignView:
        view = self._designs.get(design_id)
        if view is not None:
            return view
        # unknown designs behave as empty ones
        return _DesignView(NodeStore(()), design_id, self.config)

    def _owner(self, node_id: str) -> _DesignView:
        node = self.store.get(node_id)
        view = self._designs.get(node.design_id)
        if view is None:
            raise NodeNotFoundError(node_id, node.design_id)
        return view
