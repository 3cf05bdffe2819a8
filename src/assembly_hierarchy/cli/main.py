"""
CLI Interface Module

Provides a command-line interface for the Assembly Hierarchy Engine: summarize
a BOM payload, print its tree, search it with ancestor context, validate it,
and export it to JSON.

Every command reads a JSON file holding the BOM node records (a list or a
``{"results": [...]}`` envelope) and builds a fresh engine from it.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .. import __version__
from ..export.json_exporter import JSONExporter
from ..hierarchy.engine import AssemblyHierarchyEngine
from ..hierarchy.node_store import NodeStore
from ..ingest.record_loader import load_records_file
from ..models.data_structures import AssemblyNode, BomSummary
from ..utils.config_loader import Config, EngineConfig
from ..utils.error_handlers import (
    ConfigurationError,
    HierarchyError,
    RecordLoadError,
    create_error_report,
    log_error_with_context,
)


logger = logging.getLogger(__name__)

# Constants
SEPARATOR_WIDTH = 60
INDENT = "  "
MAX_DISPLAY_WARNINGS = 20
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_WARNINGS = 2


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging for the CLI application.

    Application output goes to stdout, logs go to stderr.

    Args:
        log_level: Logging level as string (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def handle_error(context: str, error: Exception) -> int:
    """Log a command failure and return the error exit code.

    Args:
        context: Description of the operation that failed.
        error: Exception that was raised.

    Returns:
        Exit code 1.
    """
    if isinstance(error, FileNotFoundError):
        logger.error(f"{context}: File not found - {error}")
    elif isinstance(error, PermissionError):
        logger.error(f"{context}: Permission denied - {error}")
    elif isinstance(error, HierarchyError):
        error_context = {"stage": error.stage or "cli", "command": context}
        if error.design_id is not None:
            error_context["design_id"] = error.design_id
        if isinstance(error, RecordLoadError) and error.source:
            error_context["source"] = error.source
        if isinstance(error, ConfigurationError) and error.config_key:
            error_context["config_key"] = error.config_key
        log_error_with_context(error, logger, error_context)
    elif isinstance(error, ValueError):
        logger.error(f"{context}: Invalid value - {error}")
    else:
        logger.error(f"{context}: {error}", exc_info=True)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"Error report: {create_error_report(error)}")
    return EXIT_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    """Execute the main CLI entry point.

    Args:
        argv: Argument list; defaults to sys.argv[1:].

    Returns:
        Exit code: 0 for success, 2 when validate finds warnings, 1 on errors.

    Example:
        $ assembly-hierarchy summary bom_nodes.json
        $ assembly-hierarchy search bom_nodes.json "M6" --design D-1
    """
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Assembly Hierarchy Engine v{__version__}")
        return EXIT_OK

    setup_logging(args.log_level)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    command_map = {
        "summary": command_summary,
        "tree": command_tree,
        "search": command_search,
        "validate": command_validate,
        "export": command_export,
    }

    try:
        return command_map[args.command](args)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return 130
    except (HierarchyError, OSError, ValueError) as e:
        return handle_error(f"Command '{args.command}' failed", e)


def build_engine(args: argparse.Namespace) -> AssemblyHierarchyEngine:
    """Load config and records named on the command line and build an engine."""
    config: EngineConfig = Config.with_overrides(
        Config.load(args.config), quantity_mode=args.quantity_mode
    )
    loaded = load_records_file(args.file)
    return AssemblyHierarchyEngine(NodeStore(loaded.nodes), config, loaded.warnings)


def selected_designs(
    engine: AssemblyHierarchyEngine, args: argparse.Namespace
) -> List[str]:
    if getattr(args, "design", None):
        return [args.design]
    return engine.design_ids()


def command_summary(args: argparse.Namespace) -> int:
    """Print aggregate metrics per design."""
    engine = build_engine(args)
    summaries = [engine.summary(d) for d in selected_designs(engine, args)]

    if args.json:
        print(JSONExporter().dumps([s.to_dict() for s in summaries]))
    else:
        for summary in summaries:
            print_summary(summary)
    return EXIT_OK


def command_tree(args: argparse.Namespace) -> int:
    """Print the indented tree of each design."""
    engine = build_engine(args)

    for design_id in selected_designs(engine, args):
        if args.json:
            print(JSONExporter().dumps(engine.tree(design_id, args.max_depth)))
            continue

        print(f"Design {design_id}")
        for node, level in engine.walk(design_id):
            if args.max_depth is not None and level > args.max_depth:
                continue
            print(f"{INDENT * (level + 1)}{format_node(engine, node)}")
    return EXIT_OK


def command_search(args: argparse.Namespace) -> int:
    """Print matching nodes inside their ancestor chains."""
    engine = build_engine(args)
    total = 0

    for design_id in selected_designs(engine, args):
        result = engine.search(design_id, args.query)
        if not result.matched_ids:
            continue
        total += len(result)
        print(f"Design {design_id}: {len(result)} match(es)")
        for node_id in result.visible_ids:
            node = engine.node(node_id)
            marker = "*" if result.is_match(node_id) else " "
            print(f"{marker} {INDENT * (node.depth + 1)}{format_node(engine, node)}")

    if total == 0:
        print(f"No nodes match {args.query!r}")
    return EXIT_OK


def command_validate(args: argparse.Namespace) -> int:
    """Print data-shape warnings; exit 2 when there are any."""
    engine = build_engine(args)
    warnings = engine.warnings()

    if not warnings:
        print(f"OK: {len(engine.store)} nodes, no warnings")
        return EXIT_OK

    print(f"{len(warnings)} warning(s):")
    for warning in warnings[:MAX_DISPLAY_WARNINGS]:
        print(f"  - [{warning.kind.value}] {warning.node_id}: {warning.message}")
    if len(warnings) > MAX_DISPLAY_WARNINGS:
        print(f"  ... and {len(warnings) - MAX_DISPLAY_WARNINGS} more")
    return EXIT_WARNINGS


def command_export(args: argparse.Namespace) -> int:
    """Write the tree, summary and warnings to a JSON file."""
    engine = build_engine(args)
    exporter = JSONExporter(
        json_format="compact" if args.compact else "pretty", max_depth=args.max_depth
    )
    if args.design:
        exporter.export_design(engine, args.design, args.output)
    else:
        exporter.export_all(engine, args.output)
    print(f"Exported to {args.output}")
    return EXIT_OK


def format_node(engine: AssemblyHierarchyEngine, node: AssemblyNode) -> str:
    """One display line for a node."""
    parts = [f"{node.name} [{node.node_type.value}] x{node.quantity}"]
    if node.part_number:
        parts.append(f"PN {node.part_number}")
    if node.reference_designator:
        parts.append(node.reference_designator)
    if node.mass is not None:
        parts.append(f"{node.mass * node.quantity:.3f} kg")
    if engine.is_orphan(node.id):
        parts.append("(orphan)")
    if engine.child_state(node.id).has_more:
        parts.append("(children not loaded)")
    return " | ".join(parts)


def print_summary(summary: BomSummary) -> None:
    """Print a summary in a human-readable block."""
    print("\n" + "=" * SEPARATOR_WIDTH)
    print(f"Design: {summary.design_id}")
    print("=" * SEPARATOR_WIDTH)
    print(f"Total Occurrences ({summary.quantity_mode.value}): {summary.total_occurrences}")
    print(f"Unique Part Numbers: {summary.unique_part_numbers}")
    partial = " (partial: some nodes lack mass)" if summary.mass_partial else ""
    print(f"Total Mass: {summary.total_mass:.3f} kg{partial}")
    print(f"Assemblies: {summary.assembly_count}")
    for type_name, count in summary.counts_by_node_type.items():
        print(f"  {type_name}: {count}")
    print("=" * SEPARATOR_WIDTH + "\n")


def setup_argument_parser() -> argparse.ArgumentParser:
    """Configure the argument parser with all CLI commands and options.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="assembly-hierarchy",
        description="Assembly Hierarchy Engine - CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Summarize every design in a payload
  %(prog)s summary bom_nodes.json

  # Print the first two levels of one design
  %(prog)s tree bom_nodes.json --design D-1 --max-depth 1

  # Find M6 hardware with its assemblies
  %(prog)s search bom_nodes.json M6

  # Report data-shape problems
  %(prog)s validate bom_nodes.json
        """,
    )

    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML configuration file (default: built-in defaults)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: %(default)s)",
    )
    parser.add_argument(
        "--quantity-mode",
        choices=["flat", "exploded"],
        default=None,
        help="Override the configured quantity rollup mode",
    )

    subparsers = parser.add_subparsers(dest="command")

    summary_parser = subparsers.add_parser("summary", help="Aggregate metrics per design")
    _add_common(summary_parser)
    summary_parser.add_argument("--json", action="store_true", help="Print JSON")

    tree_parser = subparsers.add_parser("tree", help="Print the assembly tree")
    _add_common(tree_parser)
    tree_parser.add_argument("--max-depth", type=int, default=None)
    tree_parser.add_argument("--json", action="store_true", help="Print JSON")

    search_parser = subparsers.add_parser(
        "search", help="Search by name, part number or reference designator"
    )
    _add_common(search_parser)
    search_parser.add_argument("query", help="Text to search for")

    validate_parser = subparsers.add_parser("validate", help="Report data-shape warnings")
    _add_common(validate_parser)

    export_parser = subparsers.add_parser("export", help="Export hierarchy to JSON")
    _add_common(export_parser)
    export_parser.add_argument("-o", "--output", required=True, help="Output JSON path")
    export_parser.add_argument("--max-depth", type=int, default=None)
    export_parser.add_argument("--compact", action="store_true", help="No indentation")

    return parser


def _add_common(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument("file", help="JSON file with BOM node records")
    subparser.add_argument("--design", default=None, help="Restrict to one design id")


if __name__ == "__main__":
    sys.exit(main())
