"""
workflow_imports/spec - Coordinates, origins and the error taxonomy.

This package holds the pure value layer of the resolution engine:
- WorkflowSpec: parsed `owner/repo/path@ref#section` coordinate
- RemoteOrigin: where a fetched file came from, used for nested imports
- ImportQueueItem / ResolutionResult: walker state and output
- ResolutionError family: ParseError, NotFoundError, FetchError,
  SecurityError, ValidationError

Usage:
    from workflow_imports.spec import parse_workflow_spec, is_workflow_spec

    spec = parse_workflow_spec("octo/tools/shared/gh.md@v2")
    origin = spec.origin()
    nested = origin.resolve_nested_import("./mcp/server.md", ".github/workflows")
"""

from .errors import (
    FetchError,
    NotFoundError,
    ParseError,
    ResolutionError,
    SecurityError,
    ValidationError,
)

from .types import (
    DEFAULT_REF,
    ImportQueueItem,
    RemoteOrigin,
    ResolutionResult,
    WorkflowSpec,
    clean_posix_path,
)

from .workflowspec import (
    format_workflow_spec,
    is_repository_import,
    is_workflow_spec,
    parse_remote_origin,
    parse_workflow_spec,
    split_ref,
    split_section,
)

__all__ = [
    # Errors
    "ResolutionError",
    "ParseError",
    "NotFoundError",
    "FetchError",
    "SecurityError",
    "ValidationError",
    # Types
    "DEFAULT_REF",
    "ImportQueueItem",
    "RemoteOrigin",
    "ResolutionResult",
    "WorkflowSpec",
    "clean_posix_path",
    # Coordinates
    "format_workflow_spec",
    "is_repository_import",
    "is_workflow_spec",
    "parse_remote_origin",
    "parse_workflow_spec",
    "split_ref",
    "split_section",
]
