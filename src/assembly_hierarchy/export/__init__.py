"""Export functionality for the assembly hierarchy engine."""

from .json_exporter import ExportFileError, HierarchyJSONEncoder, JSONExporter

__all__ = ["ExportFileError", "HierarchyJSONEncoder", "JSONExporter"]
