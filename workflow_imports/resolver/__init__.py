"""
workflow_imports/resolver - Import graph walker and its helpers.

- ImportResolver: expands @include/@import directives and `imports:` lists
- FileSystem / LocalFileSystem / MemoryFileSystem: local file access
- merge_tools / extract_tools: tool configuration folding
- extract_mcp_servers, extract_engine, merge_network, merge_permissions: other imported config
- validate_included_frontmatter: strict or relaxed schema checks
"""

from .directives import ImportDirective, iter_body_lines, parse_import_directive
from .filesystem import FileSystem, LocalFileSystem, MemoryFileSystem
from .frontmatter import (
    extract_frontmatter,
    extract_markdown_section,
    split_frontmatter,
    trim_blank_lines,
)
from .ordering import topological_order
from .tools import (
    extract_engine,
    extract_mcp_servers,
    extract_network,
    extract_permissions,
    extract_tools,
    merge_network,
    merge_permissions,
    merge_tools,
    merge_tools_json,
    tools_to_json,
)
from .validation import (
    is_custom_agent_file,
    is_under_workflows_directory,
    load_included_file_schema,
    validate_included_frontmatter,
)
from .walker import ImportResolver

__all__ = [
    "ImportDirective",
    "iter_body_lines",
    "parse_import_directive",
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "extract_frontmatter",
    "extract_markdown_section",
    "split_frontmatter",
    "trim_blank_lines",
    "topological_order",
    "extract_engine",
    "extract_mcp_servers",
    "extract_network",
    "extract_permissions",
    "extract_tools",
    "merge_network",
    "merge_permissions",
    "merge_tools",
    "merge_tools_json",
    "tools_to_json",
    "is_custom_agent_file",
    "is_under_workflows_directory",
    "load_included_file_schema",
    "validate_included_frontmatter",
    "ImportResolver",
]
