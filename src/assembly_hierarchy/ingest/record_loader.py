"""Record loading for the Assembly Hierarchy Engine.

Converts the BOM node payload supplied by the backend (a plain list or a
paginated ``{"results": [...]}`` envelope) into AssemblyNode objects. Bad
individual records never abort the load: they are skipped and reported as
INVALID_RECORD warnings.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Union

from ..models.data_structures import (
    AssemblyNode,
    HierarchyWarning,
    NodeType,
    WarningKind,
)
from ..utils.error_handlers import RecordLoadError


logger = logging.getLogger(__name__)

RecordPayload = Union[Iterable[Union[AssemblyNode, Mapping[str, Any]]], Mapping[str, Any]]


@dataclass
class LoadResult:
    """Nodes parsed from a payload plus the problems found along the way.

    Attributes:
        nodes: Successfully parsed nodes, in payload order.
        warnings: INVALID_RECORD and UNKNOWN_NODE_TYPE warnings.
    """

    nodes: List[AssemblyNode] = field(default_factory=list)
    warnings: List[HierarchyWarning] = field(default_factory=list)


def load_records(payload: RecordPayload) -> LoadResult:
    """Parse a BOM node payload.

    Args:
        payload: List of record dictionaries and/or AssemblyNode objects, or
            a mapping with a ``results`` list.

    Returns:
        LoadResult with the parsed nodes and per-record warnings.

    Raises:
        RecordLoadError: If the payload is not a list or a results envelope.
    """
    records = _unwrap(payload)
    result = LoadResult()

    for position, record in enumerate(records):
        if isinstance(record, AssemblyNode):
            node = record
        elif isinstance(record, Mapping):
            try:
                node = AssemblyNode.from_record(record)
            except (ValueError, TypeError) as e:
                result.warnings.append(_invalid(record, position, str(e)))
                continue
        else:
            result.warnings.append(
                _invalid(
                    {}, position, f"expected a mapping, got {type(record).__name__}"
                )
            )
            continue

        if node.node_type is NodeType.UNKNOWN:
            raw_type = record.get("node_type") if isinstance(record, Mapping) else None
            result.warnings.append(
                HierarchyWarning(
                    kind=WarningKind.UNKNOWN_NODE_TYPE,
                    message=(
                        f"Node {node.name!r} has unrecognised node_type "
                        f"{raw_type!r}; classified as UNKNOWN"
                    ),
                    design_id=node.design_id,
                    node_id=node.id,
                )
            )
        result.nodes.append(node)

    if result.warnings:
        logger.warning(
            f"Loaded {len(result.nodes)} records with {len(result.warnings)} warnings"
        )
    else:
        logger.info(f"Loaded {len(result.nodes)} records")
    return result


def load_records_file(file_path: Union[str, Path]) -> LoadResult:
    """Read a JSON payload from disk and parse it with load_records().

    Args:
        file_path: Path to a JSON file holding a list or results envelope.

    Returns:
        LoadResult with the parsed nodes and per-record warnings.

    Raises:
        FileNotFoundError: If the file does not exist.
        RecordLoadError: If the file is not valid JSON or has the wrong shape.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Record file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise RecordLoadError(
            f"Invalid JSON in {path}: {e}", source=str(path), original_error=e
        ) from e

    try:
        return load_records(payload)
    except RecordLoadError as e:
        e.source = str(path)
        raise


def _unwrap(payload: RecordPayload) -> Iterable[Any]:
    if isinstance(payload, Mapping):
        results = payload.get("results")
        if isinstance(results, list):
            return results
        raise RecordLoadError(
            "Payload mapping must contain a 'results' list of records"
        )
    if isinstance(payload, (str, bytes)):
        raise RecordLoadError("Payload must be a list of records, got a string")
    try:
        return list(payload)
    except TypeError as e:
        raise RecordLoadError(
            f"Payload must be a list of records, got {type(payload).__name__}",
            original_error=e,
        ) from e


def _invalid(record: Mapping[str, Any], position: int, reason: str) -> HierarchyWarning:
    node_id = record.get("id")
    design_id = record.get("design_id", record.get("design_asset"))
    return HierarchyWarning(
        kind=WarningKind.INVALID_RECORD,
        message=f"Record #{position} skipped: {reason}",
        design_id=None if design_id is None else str(design_id),
        node_id=None if node_id is None else str(node_id),
    )
