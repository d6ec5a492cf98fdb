"""
workflow_imports - Resolve imports in markdown workflow definitions.

Expands `@include` / `@import` directives and frontmatter `imports:` lists
into a single document plus a merged tools configuration. Imports may be
local paths or `owner/repo/path@ref#section` coordinates in other
repositories.
"""

from workflow_imports.resolver import ImportResolver
from workflow_imports.spec import (
    FetchError,
    NotFoundError,
    ParseError,
    ResolutionError,
    ResolutionResult,
    SecurityError,
    ValidationError,
    WorkflowSpec,
    is_workflow_spec,
    parse_workflow_spec,
)

__version__ = "0.1.0"

__all__ = [
    "ImportResolver",
    "ResolutionResult",
    "WorkflowSpec",
    "is_workflow_spec",
    "parse_workflow_spec",
    "ResolutionError",
    "ParseError",
    "NotFoundError",
    "FetchError",
    "SecurityError",
    "ValidationError",
]
