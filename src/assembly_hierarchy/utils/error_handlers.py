"""
Error handling utilities for the Assembly Hierarchy Engine.

This module provides custom exceptions and error reporting helpers. Data-shape
problems in the input records (malformed paths, orphans, partial subtrees)
are never raised; they are collected as structured warnings while the
hierarchy is built. The exceptions below are reserved for programming errors
and bad configuration.

Classes:
    HierarchyError: Base exception for all engine errors.
    NodeNotFoundError: Exception for lookups of ids absent from the index.
    ExcludedNodeError: Exception for navigation from a node excluded from
        traversal (malformed path or duplicate path).
    ConfigurationError: Exception for configuration errors.
    RecordLoadError: Exception for unreadable record payloads.

Functions:
    log_error_with_context: Log error with full context for debugging.
    create_error_report: Create structured error report for storage/analysis.
"""

import logging
import traceback
from datetime import datetime
from typing import Any, Dict, Optional


class HierarchyError(Exception):
    """
    Base exception for assembly hierarchy errors.

    Attributes:
        message: Error message describing what went wrong.
        design_id: Optional identifier of the design being processed.
        node_id: Optional identifier of the node involved.
        stage: Optional engine stage where the error occurred.
        original_error: Optional underlying exception that was wrapped.
    """

    def __init__(
        self,
        message: str,
        design_id: Optional[str] = None,
        node_id: Optional[str] = None,
        stage: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize HierarchyError.

        Args:
            message: Error message describing the issue.
            design_id: Optional design identifier.
            node_id: Optional node identifier.
            stage: Optional engine stage name.
            original_error: Optional underlying exception that caused this error.
        """
        self.message = message
        self.design_id = design_id
        self.node_id = node_id
        self.stage = stage
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging and storage.

        Returns:
            Dictionary containing error_type, message, design_id, node_id,
            stage, and original error information if available.
        """
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "design_id": self.design_id,
            "node_id": self.node_id,
            "stage": self.stage,
        }

        if self.original_error:
            result["original_error_type"] = type(self.original_error).__name__
            result["original_error_message"] = str(self.original_error)

        return result


class NodeNotFoundError(HierarchyError, KeyError):
    """
    Exception raised when a node id is not present in the index.

    Also a KeyError so mapping-style callers can catch it the usual way.
    """

    def __init__(self, node_id: str, design_id: Optional[str] = None):
        """
        Initialize NodeNotFoundError.

        Args:
            node_id: The id that was looked up.
            design_id: Optional design the lookup was scoped to.
        """
        scope = f" in design {design_id}" if design_id is not None else ""
        super().__init__(
            message=f"Node {node_id!r} not found{scope}",
            design_id=design_id,
            node_id=node_id,
            stage="navigation",
        )


class ExcludedNodeError(HierarchyError):
    """
    Exception raised when navigating from a node excluded from traversal.

    Attributes:
        reason: Warning kind that caused the exclusion.
    """

    def __init__(
        self, node_id: str, reason: str, design_id: Optional[str] = None
    ):
        """
        Initialize ExcludedNodeError.

        Args:
            node_id: The excluded node id.
            reason: Why the node was excluded (e.g. MALFORMED_PATH).
            design_id: Optional design identifier.
        """
        super().__init__(
            message=f"Node {node_id!r} is excluded from traversal ({reason})",
            design_id=design_id,
            node_id=node_id,
            stage="navigation",
        )
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary including the exclusion reason.

        Returns:
            Dictionary with all base fields plus reason.
        """
        result = super().to_dict()
        result["reason"] = self.reason
        return result


class ConfigurationError(HierarchyError):
    """
    Exception for configuration errors.

    Attributes:
        config_key: Optional configuration key that caused the error.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Error message describing configuration issue.
            config_key: Optional configuration key that is invalid.
            original_error: Optional underlying exception that caused this error.
        """
        super().__init__(
            message=message,
            stage="initialization",
            original_error=original_error,
        )
        self.config_key = config_key

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary including config key.

        Returns:
            Dictionary with all base fields plus config_key.
        """
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


class RecordLoadError(HierarchyError):
    """
    Exception raised when a record payload cannot be read at all.

    Individual bad records are reported as warnings; this is only raised when
    the payload itself is unusable (unreadable file, invalid JSON, wrong
    top-level shape).

    Attributes:
        source: Optional description of where the payload came from.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            stage="ingest",
            original_error=original_error,
        )
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        return result


def log_error_with_context(
    error: Exception, logger: logging.Logger, context: Dict[str, Any]
) -> None:
    """
    Log error with comprehensive context information for debugging.

    Logs error details including type, message, and all contextual information.
    In DEBUG mode, also logs the full stack trace.

    Args:
        error: The exception that occurred.
        logger: Logger instance to use for logging.
        context: Dictionary with contextual information (design_id, stage, etc.).

    Note:
        Stack traces are only logged when logger is at DEBUG level or lower.
    """
    error_type = type(error).__name__
    error_message = str(error)

    design_id = context.get("design_id", "unknown")
    stage = context.get("stage", "unknown")

    logger.error(
        f"Error in {stage} for design {design_id}: [{error_type}] {error_message}"
    )

    if isinstance(error, HierarchyError) and error.original_error:
        original_type = type(error.original_error).__name__
        original_msg = str(error.original_error)
        logger.error(f"  Original error: [{original_type}] {original_msg}")

    for key, value in context.items():
        if key not in ["design_id", "stage"]:
            logger.error(f"  {key}: {value}")

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Stack trace:")
        logger.debug(traceback.format_exc())


def create_error_report(
    error: Exception, timestamp: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Create a structured error report for storage and analysis.

    Args:
        error: The exception that occurred.
        timestamp: Optional timestamp for the error. Defaults to current time.

    Returns:
        A dictionary containing error_type, error_message, traceback and
        timestamp, plus the HierarchyError fields when applicable.

    Example:
        >>> report = create_error_report(NodeNotFoundError("n-1"))
        >>> report["error_type"]
        'NodeNotFoundError'
    """
    if timestamp is None:
        timestamp = datetime.now()

    report = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": traceback.format_exc(),
        "timestamp": timestamp.isoformat(),
    }

    if isinstance(error, HierarchyError):
        report.update(error.to_dict())

    return report
