"""JSON Exporter Module.

This module serializes built hierarchies (nested tree, summary and warnings)
to JSON for the presentation layer or for archival.

Example:
    >>> exporter = JSONExporter(json_format="pretty")
    >>> exporter.export_design(engine, "D-1", Path("d1_bom.json"))
"""

import dataclasses
import json
import logging
import tempfile
import time
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from ..hierarchy.engine import AssemblyHierarchyEngine
from ..utils.error_handlers import HierarchyError


logger = logging.getLogger(__name__)

# Version for schema tracking
EXPORTER_VERSION = "1.0.0"
SCHEMA_VERSION = "1.0.0"


class ExportFileError(HierarchyError):
    """Exception raised when writing an export file fails."""

    def __init__(
        self,
        message: str,
        design_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            design_id=design_id,
            stage="export",
            original_error=original_error,
        )


class HierarchyJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for hierarchy data structures.

    Handles serialization of:
    - datetime objects -> ISO 8601 strings
    - Enum objects -> their values
    - dataclasses -> their to_dict() or field dictionaries
    - Path objects -> strings
    - sets and frozensets -> sorted lists
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Enum):
            return obj.value
        elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            to_dict = getattr(obj, "to_dict", None)
            if callable(to_dict):
                return to_dict()
            return dataclasses.asdict(obj)
        elif isinstance(obj, Path):
            return str(obj)
        elif isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)


class JSONExporter:
    """Exports design hierarchies to JSON.

    Attributes:
        json_format: "pretty" (indented) or "compact".
        max_depth: Levels materialized below each root; None for all.
    """

    def __init__(
        self,
        json_format: Literal["pretty", "compact"] = "pretty",
        max_depth: Optional[int] = None,
    ) -> None:
        if json_format not in ("pretty", "compact"):
            raise ValueError(
                f"json_format must be 'pretty' or 'compact', got {json_format!r}"
            )
        self.json_format = json_format
        self.max_depth = max_depth

    def format_design(
        self, engine: AssemblyHierarchyEngine, design_id: str
    ) -> Dict[str, Any]:
        """Build the export document for one design.

        Returns:
            Dictionary with design_id, summary, tree and warnings keys.
        """
        return {
            "design_id": design_id,
            "summary": engine.summary(design_id).to_dict(),
            "tree": engine.tree(design_id, self.max_depth),
            "warnings": [w.to_dict() for w in engine.warnings(design_id)],
        }

    def format_engine(self, engine: AssemblyHierarchyEngine) -> Dict[str, Any]:
        """Build one export document covering every design of an engine."""
        designs: List[Dict[str, Any]] = [
            self.format_design(engine, design_id) for design_id in engine.design_ids()
        ]
        unscoped = [w.to_dict() for w in engine.warnings() if w.design_id is None]
        return {
            "_export_metadata": {
                "export_timestamp": datetime.now().isoformat(),
                "exporter_version": EXPORTER_VERSION,
                "schema_version": SCHEMA_VERSION,
                "total_designs": len(designs),
                "quantity_mode": engine.config.quantity_mode.value,
            },
            "designs": designs,
            "warnings": unscoped,
        }

    def export_design(
        self,
        engine: AssemblyHierarchyEngine,
        design_id: str,
        output_path: Union[str, Path],
    ) -> None:
        """Export one design to a JSON file.

        Raises:
            ExportFileError: If the file cannot be written.
        """
        self._export(self.format_design(engine, design_id), Path(output_path), design_id)

    def export_all(
        self, engine: AssemblyHierarchyEngine, output_path: Union[str, Path]
    ) -> None:
        """Export every design of an engine to a single JSON file.

        Raises:
            ExportFileError: If the file cannot be written.
        """
        self._export(self.format_engine(engine), Path(output_path))

    def dumps(self, data: Any) -> str:
        """Serialize data with the exporter's format settings."""
        return json.dumps(
            data, indent=self._indent(), cls=HierarchyJSONEncoder, ensure_ascii=False
        )

    def _export(
        self, data: Dict[str, Any], output_path: Path, design_id: Optional[str] = None
    ) -> None:
        start_time = time.time()
        logger.info(f"Exporting hierarchy to JSON: {output_path}")

        try:
            self._write_json_file_atomic(data, output_path)
        except (IOError, OSError) as e:
            error_msg = f"Failed to write {output_path}: {e}"
            logger.error(error_msg)
            raise ExportFileError(error_msg, design_id, original_error=e) from e

        duration = time.time() - start_time
        file_size = output_path.stat().st_size / 1024  # KB
        logger.info(
            f"Successfully exported to {output_path} "
            f"({file_size:.2f} KB in {duration:.2f}s)"
        )

    def _write_json_file_atomic(self, data: Dict[str, Any], output_path: Path) -> None:
        """Write JSON data to file atomically using temporary file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=output_path.parent,
            delete=False,
            suffix=".tmp",
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            try:
                json.dump(
                    data,
                    tmp_file,
                    indent=self._indent(),
                    cls=HierarchyJSONEncoder,
                    ensure_ascii=False,
                )
            except Exception:
                tmp_file.close()
                tmp_path.unlink()
                raise

        tmp_path.replace(output_path)

    def _indent(self) -> Optional[int]:
        return 2 if self.json_format == "pretty" else None
