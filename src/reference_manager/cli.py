"""Command line entry point for reconciling two copies of a library.

Reads the local and remote CSL-JSON files, merges them against the stored
(or explicitly given) base, prints a report, and writes the merged
library when the merge has no unresolved conflicts.  ``--status`` and
``--reset`` inspect or delete the stored base of a library.

Exit codes:
    0: merged cleanly or all conflicts auto-resolved (or status/reset done)
    1: unresolved conflicts (nothing written, base not advanced)
    2: invalid input, configuration, or I/O error
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .file_handler import load_snapshot, write_file, write_snapshot
from .logger import setup_logging
from .sync.models import MergeResult
from .sync.reporter import (
    format_base_status,
    format_conflict_diff,
    format_merge_report,
    result_to_json,
)
from .sync.state import BaseStore
from .sync.workflow import SyncWorkflow

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFLICT = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reference-manager-sync",
        description="Three-way merge of two copies of a reference library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Merge against the stored base and write the result back locally
  reference-manager-sync library.json remote/library.json -o library.json

  # First sync of two copies that share an ancestor file
  reference-manager-sync library.json remote.json --base ancestor.json -o library.json

  # Decide equal-timestamp conflicts in favour of the remote copy
  reference-manager-sync library.json remote.json --prefer remote -o library.json

  # Preview without touching the stored base
  reference-manager-sync library.json remote.json --dry-run --json

  # Show what is stored as the common ancestor of the "thesis" library
  reference-manager-sync --status --library thesis

  # Forget the stored base, then merge as if both copies were new
  reference-manager-sync library.json remote.json --reset -o library.json
        """,
    )
    parser.add_argument(
        "local", nargs="?", help="Local library file (CSL-JSON array)"
    )
    parser.add_argument(
        "remote", nargs="?", help="Remote library file (CSL-JSON array)"
    )
    parser.add_argument(
        "--base",
        help="Common ancestor file (default: the stored base for --library)",
    )
    parser.add_argument(
        "--library",
        help="Library name selecting the stored base "
        "(takes precedence over REFMGR_LIBRARY and config files)",
    )
    parser.add_argument(
        "--prefer",
        choices=["local", "remote"],
        help="Tie-break for conflicts with equal timestamps "
        "(default: report them as unresolved)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Write the merged library here (skipped on unresolved conflicts)",
    )
    parser.add_argument(
        "--conflicts-file",
        help="Write a field-by-field review of every conflict to this file",
    )
    parser.add_argument(
        "--state-dir",
        help="Directory for stored base snapshots "
        "(takes precedence over REFMGR_STATE_DIR and config files)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Merge and report only; leave --output and the stored base untouched",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show the stored base for --library and exit (no library files)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the stored base for --library before merging; "
        "without library files, delete it and exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a text report",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging on stderr",
    )
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"reference-manager-sync version {__version__}",
    )
    return parser


def _render(result: MergeResult, library: str, as_json: bool) -> str:
    if as_json:
        return json.dumps(result_to_json(result), indent=2, ensure_ascii=False)
    parts = [format_merge_report(result, library)]
    for conflict in result.unresolved:
        parts.append(format_conflict_diff(conflict))
    return "\n\n".join(parts)


def _check_mode(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> None:
    """Reject argument combinations argparse cannot express."""
    files = [f for f in (args.local, args.remote) if f is not None]
    if args.status:
        if files or args.reset:
            parser.error("--status takes no library files and no --reset")
        return
    if len(files) == 1 or (not files and not args.reset):
        parser.error("the following arguments are required: local, remote")


def _render_status(
    config: Config, meta: dict[str, Any] | None, as_json: bool
) -> str:
    if as_json:
        return json.dumps(
            {
                "library": config.library,
                "state_dir": str(config.state_dir),
                "base": meta,
            },
            indent=2,
        )
    return format_base_status(config.library, meta)


def _reset_base(store: BaseStore, library: str, dry_run: bool) -> str:
    if dry_run:
        return f"Dry run: stored base for '{library}' left in place"
    if not store.exists(library):
        return f"No stored base for '{library}'"
    store.clear(library)
    return f"Cleared stored base for '{library}'"


def main(argv: list[str] | None = None) -> int:
    """Run one reconciliation and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _check_mode(parser, args)

    load_dotenv()

    try:
        unified = build_config(load_hierarchical_config())
    except (ValueError, OSError) as exc:
        # pydantic.ValidationError is a ValueError
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        log_format=args.log_format or unified.logging.format,
        level=unified.logging.level,
    )

    try:
        config = load_config(
            prefer=args.prefer,
            state_dir=args.state_dir,
            library=args.library,
            yaml_fallbacks=unified.sync.model_dump(exclude_none=True),
        )
        store = BaseStore(config.state_dir)

        if args.status:
            print(_render_status(config, store.meta(config.library), args.json))
            return EXIT_OK

        if args.reset:
            message = _reset_base(store, config.library, args.dry_run)
            if args.local is None:
                print(message)
                return EXIT_OK
            logger.info("%s", message)

        local = load_snapshot(Path(args.local))
        remote = load_snapshot(Path(args.remote))
        base = load_snapshot(Path(args.base)) if args.base else None
        if base is None and args.reset and args.dry_run:
            # preview the merge as if the base had been cleared
            base = []

        workflow = SyncWorkflow(
            store,
            config.library,
            config.merge_options(),
        )
        result = workflow.run(local, remote, base=base, dry_run=args.dry_run)

        if args.conflicts_file and result.conflicts:
            review = "\n\n".join(
                format_conflict_diff(c) for c in result.conflicts
            )
            write_file(Path(args.conflicts_file), review + "\n")
            logger.info("Wrote conflict review to %s", args.conflicts_file)

        if args.output and result.can_persist and not args.dry_run:
            write_snapshot(Path(args.output), result.merged)
            logger.info(
                "Wrote %d records to %s", len(result.merged), args.output
            )
    except (ValueError, OSError) as exc:
        logger.error("%s", exc)
        return EXIT_ERROR

    print(_render(result, config.library, args.json))

    if not result.can_persist:
        return EXIT_CONFLICT
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
