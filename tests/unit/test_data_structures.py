"""
Unit tests for data_structures module.

Tests node parsing, enum conversion and result objects.
"""

import pytest

from assembly_hierarchy.models.data_structures import (
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


class TestNodeType:
    """Tests for NodeType parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("ASSEMBLY", NodeType.ASSEMBLY),
            ("assembly", NodeType.ASSEMBLY),
            (" SubAssembly ", NodeType.SUBASSEMBLY),
            ("hardware", NodeType.HARDWARE),
            (NodeType.PART, NodeType.PART),
        ],
    )
    def test_known_values(self, raw, expected):
        assert NodeType.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["WIDGET", "", None, 42])
    def test_unknown_values_fall_back(self, raw):
        assert NodeType.parse(raw) is NodeType.UNKNOWN

    def test_is_assembly(self):
        assert NodeType.ASSEMBLY.is_assembly
        assert NodeType.SUBASSEMBLY.is_assembly
        assert not NodeType.PART.is_assembly
        assert not NodeType.UNKNOWN.is_assembly


class TestQuantityRollup:
    """Tests for QuantityRollup parsing."""

    def test_parse_is_case_insensitive(self):
        assert QuantityRollup.parse("EXPLODED") is QuantityRollup.EXPLODED
        assert QuantityRollup.parse("flat") is QuantityRollup.FLAT

    def test_parse_invalid_raises(self):
        with pytest.raises(ValueError, match="quantity_mode"):
            QuantityRollup.parse("recursive")


class TestChildState:
    def test_has_more(self):
        assert ChildState.PARTIAL.has_more
        assert ChildState.NOT_LOADED.has_more
        assert not ChildState.LEAF.has_more
        assert not ChildState.COMPLETE.has_more


class TestAssemblyNodeFromRecord:
    """Tests for AssemblyNode.from_record."""

    def test_full_record(self, record_factory):
        node = AssemblyNode.from_record(
            record_factory(
                "n1",
                "1/2",
                name="Bracket",
                node_type="part",
                quantity=4,
                mass="0.25",
                part_number="BR-1",
                reference_designator="R12",
            )
        )

        assert node.id == "n1"
        assert node.design_id == "D-1"
        assert node.depth == 1
        assert node.node_type is NodeType.PART
        assert node.quantity == 4
        assert node.mass == 0.25
        assert node.volume is None
        assert node.reference_designator == "R12"

    def test_aliases(self):
        node = AssemblyNode.from_record(
            {
                "id": 7,
                "design_asset": 3,
                "component_name": "Cover",
                "path": "1",
                "depth": 0,
                "numchild": 0,
            }
        )

        assert node.id == "7"
        assert node.design_id == "3"
        assert node.name == "Cover"

    def test_quantity_defaults_to_one(self):
        node = AssemblyNode.from_record(
            {"id": "a", "path": "1", "depth": 0, "numchild": 0, "quantity": None}
        )
        assert node.quantity == 1

    def test_blank_mass_is_missing(self, record_factory):
        node = AssemblyNode.from_record(record_factory("n1", "1", mass=""))
        assert node.mass is None
        assert not node.has_mass

    def test_integral_float_counts_accepted(self, record_factory):
        node = AssemblyNode.from_record(record_factory("n1", "1", numchild=2.0))
        assert node.numchild == 2

    @pytest.mark.parametrize("missing", ["id", "path", "depth", "numchild"])
    def test_missing_required_field(self, record_factory, missing):
        record = record_factory("n1", "1")
        del record[missing]

        with pytest.raises(ValueError, match=missing):
            AssemblyNode.from_record(record)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"quantity": 0},
            {"quantity": 1.5},
            {"depth": -1},
            {"numchild": "many"},
            {"mass": -0.1},
            {"volume": "heavy"},
            {"mass": "nan"},
            {"mass": float("inf")},
            {"volume": "-inf"},
            {"volume": float("nan")},
        ],
    )
    def test_invalid_values(self, record_factory, overrides):
        with pytest.raises(ValueError):
            AssemblyNode.from_record(record_factory("n1", "1", **overrides))

    def test_bool_depth_rejected(self, record_factory):
        with pytest.raises(TypeError):
            AssemblyNode.from_record(record_factory("n1", "1", depth=True))

    def test_metadata_passed_through_and_not_compared(self, record_factory):
        first = AssemblyNode.from_record(
            record_factory("n1", "1", component_metadata={"cad_ref": "X-1"})
        )
        second = AssemblyNode.from_record(record_factory("n1", "1"))

        assert first.component_metadata == {"cad_ref": "X-1"}
        assert second.component_metadata == {}
        assert first == second

    def test_scalar_metadata_wrapped(self, record_factory):
        node = AssemblyNode.from_record(
            record_factory("n1", "1", component_metadata="legacy")
        )
        assert node.component_metadata == {"value": "legacy"}


class TestAssemblyNodePaths:
    """Tests for path helpers."""

    def test_parent_path(self):
        node = AssemblyNode("n", "D", "n", "1/2/3", 2, 0, NodeType.PART)
        assert node.parent_path() == "1/2"
        assert node.segments() == ["1", "2", "3"]

    def test_root_has_no_parent_path(self):
        node = AssemblyNode("n", "D", "n", "1", 0, 0, NodeType.ASSEMBLY)
        assert node.parent_path() is None

    def test_custom_separator(self):
        node = AssemblyNode("n", "D", "n", "1.2", 1, 0, NodeType.PART)
        assert node.parent_path(".") == "1"
        assert node.parent_path() is None

    def test_string_node_type_parsed(self):
        node = AssemblyNode("n", "D", "n", "1", 0, 0, "subassembly")
        assert node.node_type is NodeType.SUBASSEMBLY


class TestResultObjects:
    """Tests for warning, summary and search result objects."""

    def test_warning_to_dict(self):
        warning = HierarchyWarning(
            WarningKind.ORPHAN_NODE, "parent missing", design_id="D-1", node_id="n9"
        )
        assert warning.to_dict() == {
            "kind": "ORPHAN_NODE",
            "message": "parent missing",
            "design_id": "D-1",
            "node_id": "n9",
        }

    def test_mass_total_to_dict(self):
        total = MassTotal(1.5, partial=True, missing_node_ids=("a", "b"))
        assert total.to_dict() == {
            "value": 1.5,
            "partial": True,
            "missing_node_ids": ["a", "b"],
        }

    def test_empty_summary_lists_every_type(self):
        summary = BomSummary(design_id="D-1")
        data = summary.to_dict()

        assert data["counts_by_node_type"] == {t.value: 0 for t in NodeType}
        assert data["total_occurrences"] == 0
        assert data["total_mass"] == 0.0
        assert data["quantity_mode"] == "flat"

    def test_search_result_context(self):
        result = SearchResult(matched_ids=("c",), visible_ids=("a", "b", "c"))

        assert len(result) == 1
        assert result.is_match("c")
        assert not result.is_match("a")
        assert result.context_ids == ("a", "b")

    def test_search_result_membership_set(self):
        matched = tuple(f"m{i}" for i in range(500))
        result = SearchResult(matched_ids=matched, visible_ids=("root",) + matched)

        assert result.matched_set == frozenset(matched)
        assert result.is_match("m499")
        assert not result.is_match("root")
        assert result.context_ids == ("root",)
        assert result == SearchResult(
            matched_ids=matched, visible_ids=("root",) + matched
        )
