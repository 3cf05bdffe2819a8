"""
Pytest configuration and fixtures.
"""

import json

import pytest

from assembly_hierarchy.hierarchy.engine import AssemblyHierarchyEngine
from assembly_hierarchy.hierarchy.hierarchy_builder import HierarchyBuilder
from assembly_hierarchy.hierarchy.path_index import PathIndex
from assembly_hierarchy.models.data_structures import AssemblyNode


def make_record(node_id, path, design_id="D-1", separator="/", **fields):
    """Build one API record; depth follows the path unless given."""
    record = {
        "id": node_id,
        "design_id": design_id,
        "name": node_id,
        "path": path,
        "depth": len(path.split(separator)) - 1,
        "numchild": 0,
        "node_type": "PART",
        "quantity": 1,
    }
    record.update(fields)
    return record


@pytest.fixture
def record_factory():
    """Factory for single BOM node records."""
    return make_record


@pytest.fixture
def gearbox_records():
    """
    One design with a two-level assembly:

        Gearbox (ASSEMBLY, x1, 2.0)
        ├── Housing (SUBASSEMBLY, x2, 1.5, A2)
        │   └── Bolt M6 (HARDWARE, x3, 0.01, H1)
        └── Shaft (PART, x1, 0.5, A10)
    """
    return [
        make_record(
            "b3",
            "1/2/3",
            name="Bolt M6",
            node_type="HARDWARE",
            quantity=3,
            mass=0.01,
            part_number="M6-20",
            reference_designator="H1",
        ),
        make_record(
            "s4",
            "1/4",
            name="Shaft",
            node_type="PART",
            quantity=1,
            mass=0.5,
            part_number="SH-400",
            reference_designator="A10",
        ),
        make_record(
            "g1",
            "1",
            name="Gearbox",
            node_type="ASSEMBLY",
            numchild=2,
            quantity=1,
            mass=2.0,
            part_number="GB-100",
        ),
        make_record(
            "h2",
            "1/2",
            name="Housing",
            node_type="SUBASSEMBLY",
            numchild=1,
            quantity=2,
            mass=1.5,
            part_number="HS-200",
            reference_designator="A2",
        ),
    ]


@pytest.fixture
def gearbox_nodes(gearbox_records):
    return [AssemblyNode.from_record(r) for r in gearbox_records]


@pytest.fixture
def gearbox_index(gearbox_nodes):
    return PathIndex.build(gearbox_nodes, "D-1")


@pytest.fixture
def gearbox_builder(gearbox_index):
    return HierarchyBuilder(gearbox_index)


@pytest.fixture
def gearbox_engine(gearbox_records):
    return AssemblyHierarchyEngine.build(gearbox_records)


@pytest.fixture
def records_file(tmp_path, gearbox_records):
    """Gearbox records written as a paginated JSON payload."""
    path = tmp_path / "bom_nodes.json"
    path.write_text(json.dumps({"results": gearbox_records}), encoding="utf-8")
    return path
