"""
Unit tests for the engine facade.

Covers the end-to-end behaviour callers rely on: building from raw records,
per-design routing, warnings, rollups and determinism.
"""

import random

import pytest

from assembly_hierarchy.hierarchy.engine import AssemblyHierarchyEngine
from assembly_hierarchy.models.data_structures import (
    ChildState,
    NodeType,
    QuantityRollup,
    WarningKind,
)
from assembly_hierarchy.utils.config_loader import EngineConfig
from assembly_hierarchy.utils.error_handlers import (
    ExcludedNodeError,
    NodeNotFoundError,
)


def ids(nodes):
    return [n.id for n in nodes]


class TestScenarios:
    """Reference behaviours of the engine."""

    def test_three_node_tree(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [
                record_factory("n1", "1", numchild=2, node_type="ASSEMBLY"),
                record_factory("n2", "1/2", quantity=2),
                record_factory("n3", "1/3", quantity=4),
            ]
        )

        assert [n.path for n in engine.roots("D-1")] == ["1"]
        assert [n.path for n in engine.children("n1")] == ["1/2", "1/3"]
        assert engine.subtree_quantity("n1") >= 7

    def test_partial_subtree_still_lists_present_child(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [
                record_factory("p", "1", numchild=2),
                record_factory("c", "1/1"),
            ]
        )

        assert ids(engine.children("p")) == ["c"]
        assert engine.child_state("p") is ChildState.PARTIAL
        assert [w.kind for w in engine.warnings("D-1")] == [
            WarningKind.PARTIAL_SUBTREE
        ]

    def test_search_for_part_restores_ancestors(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [
                record_factory("asm", "1", node_type="ASSEMBLY", numchild=1),
                record_factory("sub", "1/1", node_type="SUBASSEMBLY", numchild=1),
                record_factory("part", "1/1/1", node_type="PART"),
            ]
        )

        result = engine.search("D-1", lambda n: n.node_type is NodeType.PART)

        assert result.matched_ids == ("part",)
        assert set(result.visible_ids) == {"asm", "sub", "part"}

    def test_empty_input(self):
        engine = AssemblyHierarchyEngine.build([])
        summary = engine.summary("D-1")

        assert engine.design_ids() == []
        assert engine.roots("D-1") == []
        assert summary.total_occurrences == 0
        assert summary.total_mass == 0.0
        assert summary.unique_part_numbers == 0
        assert engine.warnings() == []


class TestNavigation:
    """Tests for routing navigation calls to the owning design."""

    def test_multiple_designs(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [
                record_factory("a1", "1", numchild=1),
                record_factory("a2", "1/1"),
                record_factory("b1", "1", design_id="D-2"),
            ]
        )

        assert engine.design_ids() == ["D-1", "D-2"]
        assert ids(engine.roots("D-2")) == ["b1"]
        assert ids(engine.children("a1")) == ["a2"]
        assert engine.ancestors("a2") == ["a1"]

    def test_unknown_design_is_empty(self, gearbox_engine):
        assert gearbox_engine.roots("nope") == []
        assert gearbox_engine.summary("nope").node_count == 0
        assert gearbox_engine.warnings("nope") == []
        assert gearbox_engine.tree("nope") == []

    def test_unknown_node(self, gearbox_engine):
        with pytest.raises(NodeNotFoundError):
            gearbox_engine.children("missing")
        with pytest.raises(NodeNotFoundError):
            gearbox_engine.node("missing")

    def test_excluded_node(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [record_factory("bad", "1//2", depth=2)]
        )

        assert engine.is_excluded("bad")
        assert engine.node("bad").id == "bad"
        with pytest.raises(ExcludedNodeError):
            engine.subtree_quantity("bad")

    def test_display_roots_follow_config(self, record_factory):
        records = [record_factory("root", "1"), record_factory("lost", "3/4")]

        shown = AssemblyHierarchyEngine.build(records)
        hidden = AssemblyHierarchyEngine.build(
            records, EngineConfig(include_orphans_in_roots=False)
        )

        assert ids(shown.roots("D-1")) == ["root"]
        assert ids(shown.display_roots("D-1")) == ["root", "lost"]
        assert ids(hidden.display_roots("D-1")) == ["root"]
        assert shown.is_orphan("lost")

    def test_walk_and_expansion_follow_orphan_config(self, record_factory):
        records = [
            record_factory("root", "1", numchild=1),
            record_factory("kid", "1/1"),
            record_factory("lost", "3/4", numchild=1),
            record_factory("lost_kid", "3/4/1"),
        ]

        shown = AssemblyHierarchyEngine.build(records)
        hidden = AssemblyHierarchyEngine.build(
            records, EngineConfig(include_orphans_in_roots=False)
        )

        assert [n.id for n, _ in shown.walk("D-1")] == [
            "root",
            "kid",
            "lost",
            "lost_kid",
        ]
        assert [n.id for n, _ in hidden.walk("D-1")] == ["root", "kid"]
        assert [n.id for n, _ in hidden.walk("D-1", include_orphans=True)][-1] == (
            "lost_kid"
        )
        assert shown.default_expanded("D-1") == {"root", "lost"}
        assert hidden.default_expanded("D-1") == {"root"}
        assert hidden.all_expandable("D-1") == {"root"}
        assert [n.id for n, _ in hidden.visible_rows("D-1", {"root", "lost"})] == [
            "root",
            "kid",
        ]

    def test_walk_and_materialize(self, gearbox_engine):
        assert [n.id for n, _ in gearbox_engine.walk("D-1")] == ["g1", "h2", "b3", "s4"]
        assert gearbox_engine.materialize("h2")["children"][0]["id"] == "b3"
        assert gearbox_engine.tree("D-1", max_depth=1)[0]["children"][0][
            "children_truncated"
        ]

    def test_expand_helpers_use_config(self, gearbox_records):
        engine = AssemblyHierarchyEngine.build(
            gearbox_records, EngineConfig(default_expand_level=1)
        )

        expanded = engine.default_expanded("D-1")
        assert expanded == {"g1"}
        assert [n.id for n, _ in engine.visible_rows("D-1", expanded)] == [
            "g1",
            "h2",
            "s4",
        ]
        assert engine.all_expandable("D-1") == {"g1", "h2"}

    def test_filter_by_type(self, gearbox_engine):
        assert ids(gearbox_engine.filter_by_type("D-1", "hardware")) == ["b3"]
        assert len(gearbox_engine.filter_by_type("D-1", "all")) == 4


class TestRollups:
    """Tests for rollups through the engine."""

    def test_configured_mode(self, gearbox_records):
        engine = AssemblyHierarchyEngine.build(
            gearbox_records, EngineConfig(quantity_mode=QuantityRollup.EXPLODED)
        )

        assert engine.subtree_quantity("g1") == 10
        assert engine.summary("D-1").quantity_mode is QuantityRollup.EXPLODED

    def test_mode_override(self, gearbox_engine):
        assert gearbox_engine.subtree_quantity("g1") == 7
        assert gearbox_engine.subtree_quantity("g1", QuantityRollup.EXPLODED) == 10
        assert gearbox_engine.summary("D-1", QuantityRollup.EXPLODED).total_occurrences == 10

    def test_mass_and_volume(self, gearbox_engine):
        assert gearbox_engine.subtree_mass("h2").value == pytest.approx(3.03)
        assert gearbox_engine.subtree_volume("h2").partial is True


class TestWarnings:
    """Tests for warning collection across layers."""

    def test_duplicate_id(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [
                record_factory("root", "1", numchild=1),
                record_factory("x", "1/5"),
                record_factory("x", "1/3"),
            ]
        )

        assert engine.node("x").path == "1/3"
        kinds = [w.kind for w in engine.warnings()]
        assert kinds == [WarningKind.DUPLICATE_ID]

    def test_conflicting_duplicate_same_path_independent_of_order(
        self, record_factory
    ):
        records = [
            record_factory("root", "1", numchild=2),
            record_factory("x", "1/1", quantity=1, mass=0.2),
            record_factory("x", "1/1", quantity=5, mass=0.2),
            record_factory("x", "1/1", quantity=5, mass=0.2, part_number="PN-X"),
            record_factory("y", "1/2"),
        ]
        reference = AssemblyHierarchyEngine.build(records)
        kept = reference.node("x")
        assert kept.quantity == 1

        for seed in range(20):
            shuffled = list(records)
            random.Random(seed).shuffle(shuffled)
            engine = AssemblyHierarchyEngine.build(shuffled)

            assert engine.node("x") == kept
            assert engine.summary("D-1") == reference.summary("D-1")
            assert engine.warnings() == reference.warnings()
        kinds = [w.kind for w in reference.warnings()]
        assert kinds == [WarningKind.DUPLICATE_ID] * 2

    def test_exact_repeat_is_not_a_conflict(self, record_factory):
        record = record_factory("x", "1", quantity=3)
        engine = AssemblyHierarchyEngine.build([record, dict(record)])

        assert engine.node("x").quantity == 3
        assert engine.warnings() == []
        assert engine.summary("D-1").total_occurrences == 3

    def test_load_and_build_warnings_combined(self, record_factory):
        engine = AssemblyHierarchyEngine.build(
            [
                record_factory("root", "1", node_type="gizmo"),
                record_factory("lost", "2/1"),
                {"path": "1/9"},
            ]
        )

        kinds = {w.kind for w in engine.warnings()}
        assert kinds == {
            WarningKind.UNKNOWN_NODE_TYPE,
            WarningKind.ORPHAN_NODE,
            WarningKind.INVALID_RECORD,
        }
        # the invalid record has no design, so it is only listed globally
        assert {w.kind for w in engine.warnings("D-1")} == {
            WarningKind.UNKNOWN_NODE_TYPE,
            WarningKind.ORPHAN_NODE,
        }

    def test_missing_mass_warnings_opt_in(self, gearbox_records, record_factory):
        records = gearbox_records + [record_factory("x", "9")]

        quiet = AssemblyHierarchyEngine.build(records)
        loud = AssemblyHierarchyEngine.build(
            records, EngineConfig(warn_on_missing_mass=True)
        )

        assert quiet.warnings("D-1") == []
        assert [w.node_id for w in loud.warnings("D-1")] == ["x"]


class TestDeterminism:
    """Building from shuffled input gives identical results."""

    def test_round_trip(self, gearbox_records, record_factory):
        records = gearbox_records + [
            record_factory("lost", "5/1", quantity=2),
            record_factory("d2", "1", design_id="D-2", mass=4.0),
        ]
        reference = AssemblyHierarchyEngine.build(records)

        for seed in range(10):
            shuffled = list(records)
            random.Random(seed).shuffle(shuffled)
            engine = AssemblyHierarchyEngine.build(shuffled)

            for design_id in reference.design_ids():
                assert ids(engine.roots(design_id, include_orphans=True)) == ids(
                    reference.roots(design_id, include_orphans=True)
                )
                assert engine.summary(design_id) == reference.summary(design_id)
            for node in reference.store:
                assert ids(engine.children(node.id)) == ids(
                    reference.children(node.id)
                )
