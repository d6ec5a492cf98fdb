"""
cli.py - Command line entry point.

Usage:
    workflow-imports resolve .github/workflows/triage.md
    workflow-imports resolve .github/workflows/triage.md --tools
    workflow-imports parse octo/tools/shared/gh.md@v2#Setup
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from workflow_imports.resolver.walker import ImportResolver
from workflow_imports.spec.errors import ResolutionError
from workflow_imports.spec.workflowspec import is_repository_import, parse_workflow_spec

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-imports",
        description="Resolve imports in markdown workflow files",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Expand imports in a workflow file")
    resolve.add_argument("file", help="Workflow markdown file")
    resolve.add_argument("--tools", action="store_true", help="Print the merged tools JSON instead of markdown")
    resolve.add_argument("--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Enable debug logging")

    parse = subparsers.add_parser("parse", help="Parse a workflowspec coordinate")
    parse.add_argument("spec", help="Coordinate such as owner/repo/path/file.md@ref")

    return parser


def _cmd_resolve(args: argparse.Namespace) -> int:
    with ImportResolver() as resolver:
        result = resolver.resolve_file(args.file, extract_tools=True)

    for warning in result.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)
    for notice in result.notices:
        print(f"INFO: {notice}", file=sys.stderr)

    if args.tools:
        print(result.tools_json)
    else:
        sys.stdout.write(result.markdown)
    return 0


def _cmd_parse(args: argparse.Namespace) -> int:
    spec = parse_workflow_spec(args.spec)
    if spec is None:
        if is_repository_import(args.spec):
            print(f"{args.spec}: repository import")
            return 0
        print(f"{args.spec}: local path (not a workflowspec)")
        return 1

    print(json.dumps(
        {
            "owner": spec.owner,
            "repo": spec.repo,
            "file_path": spec.file_path,
            "ref": spec.ref,
            "section": spec.section,
            "base_path": spec.base_path,
            "coordinate": spec.coordinate(),
        },
        indent=2,
    ))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for resolving and parsing."""
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "resolve":
            return _cmd_resolve(args)
        return _cmd_parse(args)
    except ResolutionError as e:
        logger.debug("Resolution failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
