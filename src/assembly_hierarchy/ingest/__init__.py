"""Record ingestion for the assembly hierarchy engine."""

from .record_loader import LoadResult, load_records, load_records_file

__all__ = ["LoadResult", "load_records", "load_records_file"]
