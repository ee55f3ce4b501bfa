"""CLI entrypoint for the sherd viewer."""

import argparse
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

from sherdview.api.universal_api import find_sherd
from sherdview.api.views import ProjectDataView, UniversalDataView
from sherdview.config.loader import load_settings
from sherdview.database.sqlite_client import session_context
from sherdview.errors import SherdViewError
from sherdview.output.tables import (
    render_json,
    render_project_markdown,
    render_projects_markdown,
    render_sherd_detail,
    render_universal_markdown,
)
from sherdview.records.models import AggregationResult, QueryResult
from sherdview.retrieval import DocumentStore, create_store
from sherdview.runners.load_fixtures import load_fixture_tree, read_fixture
from sherdview.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@contextmanager
def store_context(settings: Dict[str, Any]) -> Generator[DocumentStore, None, None]:
    """Yield the configured store; sqlite stores get a session closed on exit."""
    if settings["storage"]["backend"] == "sqlite":
        with session_context(settings["storage"]["sqlite_path"]) as session:
            yield create_store(settings, session=session)
    else:
        yield create_store(settings)


def _report_error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def cmd_projects(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """List selectable projects."""
    with store_context(settings) as store:
        view = ProjectDataView(store)
        projects = view.load_projects()
        if view.state.error:
            return _report_error(view.state.error)
    
    if args.format == "json":
        print(render_json({"projects": [p.model_dump(mode="json") for p in projects]}))
    else:
        print(render_projects_markdown(projects))
    return 0


def cmd_project(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """Aggregate one project's hierarchy into a flat table."""
    with store_context(settings) as store:
        view = ProjectDataView(store)
        view.select_root(args.project_id)
        state = view.state
    
    if state.error:
        return _report_error(state.error)
    
    result = AggregationResult(rows=state.rows, stats=state.stats)
    if args.format == "json":
        print(render_json({"project_id": args.project_id, **result.model_dump(mode="json")}))
    else:
        print(render_project_markdown(args.project_id, result))
    return 0


def cmd_search(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """Search the universal collection by project id and diagnostic types."""
    with store_context(settings) as store:
        view = UniversalDataView(store, settings)
        view.search_project = args.project or ""
        view.apply_filters(args.diagnostic or [])
        state = view.state
        distinct = list(view.available_diagnostics)
    
    if state.error:
        return _report_error(state.error)
    
    result = QueryResult(rows=state.rows, stats=state.stats, distinct_diagnostics=distinct)
    
    if args.detail:
        record = find_sherd(result, args.detail)
        if record is None:
            return _report_error(f"Sherd not found in current results: {args.detail}")
        if args.format == "json":
            print(render_json(record.model_dump(mode="json")))
        else:
            print(render_sherd_detail(record))
        return 0
    
    if args.format == "json":
        print(render_json(result.model_dump(mode="json")))
    else:
        print(render_universal_markdown(result))
    return 0


def cmd_load(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """Seed the SQLite document store from a JSON fixture."""
    if settings["storage"]["backend"] != "sqlite":
        return _report_error("load only supports the sqlite backend")
    
    tree = read_fixture(Path(args.fixture))
    with session_context(settings["storage"]["sqlite_path"]) as session:
        counts = load_fixture_tree(session, tree, reset=args.reset)
    
    print(f"Loaded {counts['documents']} documents into {counts['collections']} collections")
    if counts["deleted"]:
        print(f"Removed {counts['deleted']} existing documents")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sherdview",
        description="Browse archaeological sherd records",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to sherdview.config.yaml (default: ./sherdview.config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Log level override (DEBUG, INFO, WARNING, ERROR)",
    )
    
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    
    # projects command
    projects_parser = subparsers.add_parser("projects", help="List projects")
    projects_parser.add_argument(
        "--format",
        type=str,
        choices=["md", "json"],
        default="md",
        help="Output format: md or json (default: md)",
    )
    projects_parser.set_defaults(func=cmd_projects)
    
    # project command
    project_parser = subparsers.add_parser("project", help="Show a project's flattened sherd table")
    project_parser.add_argument("project_id", help="Project document ID")
    project_parser.add_argument(
        "--format",
        type=str,
        choices=["md", "json"],
        default="md",
        help="Output format: md or json (default: md)",
    )
    project_parser.set_defaults(func=cmd_project)
    
    # search command
    search_parser = subparsers.add_parser("search", help="Search the universal sherd collection")
    search_parser.add_argument(
        "--project",
        type=str,
        help="Project ID (compared upper-cased)",
    )
    search_parser.add_argument(
        "--diagnostic",
        action="append",
        metavar="TYPE",
        help="Diagnostic type to include (repeatable, at most 10)",
    )
    search_parser.add_argument(
        "--detail",
        metavar="SHERD_ID",
        help="Show the full record for one sherd in the results",
    )
    search_parser.add_argument(
        "--format",
        type=str,
        choices=["md", "json"],
        default="md",
        help="Output format: md or json (default: md)",
    )
    search_parser.set_defaults(func=cmd_search)
    
    # load command
    load_parser = subparsers.add_parser("load", help="Load a JSON document-tree fixture into SQLite")
    load_parser.add_argument("fixture", help="Path to fixture JSON")
    load_parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing documents before loading",
    )
    load_parser.set_defaults(func=cmd_load)
    
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if not args.command:
        parser.print_help()
        return 0
    
    try:
        settings = load_settings(args.config)
        configure_logging(args.log_level or settings["logging"]["level"])
    except (FileNotFoundError, ValueError) as e:
        return _report_error(f"Invalid configuration: {e}")
    
    try:
        return args.func(args, settings)
    except SherdViewError as e:
        logger.error(f"Error running command '{args.command}': {e}", exc_info=True)
        return _report_error(str(e))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error running command '{args.command}': {e}")
        return _report_error(str(e))


if __name__ == "__main__":
    sys.exit(main())
