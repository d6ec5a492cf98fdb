"""
walker.py - Expand imports in markdown workflow files.

The ImportResolver drives one resolution per call:

1. Root frontmatter `imports:` are enqueued and drained breadth-first.
2. Body directives (`@include`, `@import`, `{{#import}}`) are expanded inline
   at the position they appear, recursively.
3. Local paths are joined with the base directory and checked against the
   `.github` boundary before any I/O. Workflowspec coordinates are fetched
   through a per-call cache; local-looking imports inside a remote file
   inherit that file's origin.
4. Every file is expanded at most once. A second visit (duplicate or cycle)
   is skipped silently; asking for a different section of a file that was
   already expanded leaves a notice instead.

All state lives on a _Resolution object created per call, so one
ImportResolver can serve several resolutions, including concurrent ones.

Usage:
    from workflow_imports.resolver import ImportResolver

    resolver = ImportResolver()
    result = resolver.resolve_file(".github/workflows/triage.md")
    print(result.markdown)
    print(result.tools_json)
"""

from __future__ import annotations

import logging
import os
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

from workflow_imports.config.resolver_config import ResolverConfig, get_config
from workflow_imports.remote.cache import ContentCache
from workflow_imports.remote.client import ContentClient, GitHubContentClient
from workflow_imports.remote.fetch import RemoteFetcher
from workflow_imports.spec.errors import NotFoundError, ParseError, SecurityError
from workflow_imports.spec.types import ImportQueueItem, RemoteOrigin, ResolutionResult
from workflow_imports.spec.workflowspec import (
    is_repository_import,
    parse_workflow_spec,
    split_section,
)
from workflow_imports.validator.errors import Diagnostics

from .directives import iter_body_lines
from .filesystem import FileSystem, LocalFileSystem
from .frontmatter import extract_frontmatter, extract_markdown_section, trim_blank_lines
from .ordering import topological_order
from .tools import extract_tools as extract_tools_from_frontmatter
from .tools import (
    extract_engine,
    extract_mcp_servers,
    extract_network,
    extract_permissions,
    merge_network,
    merge_permissions,
    merge_tools,
    tools_to_json,
)
from .validation import (
    is_custom_agent_file,
    is_under_workflows_directory,
    validate_included_frontmatter,
)

logger = logging.getLogger(__name__)

LOCK_FILE_SUFFIX = ".lock.yml"
IMPORTS_KEY = "imports"


# =============================================================================
# Per-call state
# =============================================================================


class _Resolution:
    """Mutable state of one top-level resolution call."""

    def __init__(
        self,
        resolver: "ImportResolver",
        extract_tools: bool,
        follow_imports: bool = True,
        root_content: Optional[str] = None,
    ):
        self._resolver = resolver
        self.root_content = root_content
        self._fetcher: Optional[RemoteFetcher] = None
        self.extract_tools = extract_tools
        self.follow_imports = follow_imports
        self.cache = ContentCache()
        self.visited: Set[str] = set()
        self.expanded_sections: Dict[str, Optional[str]] = {}
        self.queue: Deque[Tuple[ImportQueueItem, Optional[str]]] = deque()
        self.tools: Dict[str, Any] = {}
        self.tool_blocks: List[Dict[str, Any]] = []
        self.mcp_servers: Dict[str, Any] = {}
        self.engines: List[Any] = []
        self.network: Dict[str, Any] = {}
        self.permissions: Dict[str, str] = {}
        self.diagnostics = Diagnostics()
        self.imported_files: List[str] = []
        self.edges: Dict[str, List[str]] = {}
        self.imported_bodies: List[str] = []
        self.repository_imports: List[str] = []
        self.agent_file: Optional[str] = None
        self.agent_import_spec: Optional[str] = None
        self.import_inputs: Dict[str, Any] = {}

    @property
    def fetcher(self) -> RemoteFetcher:
        if self._fetcher is None:
            self._fetcher = RemoteFetcher(
                self._resolver.content_client(),
                cache=self.cache,
                max_symlink_depth=self._resolver.config.max_symlink_depth,
            )
        return self._fetcher

    def add_edge(self, parent_key: Optional[str], child_key: str) -> None:
        if parent_key:
            self.edges.setdefault(parent_key, []).append(child_key)

    def to_result(self, markdown: str) -> ResolutionResult:
        return ResolutionResult(
            markdown=markdown,
            tools=self.tools,
            mcp_servers=self.mcp_servers,
            engines=list(self.engines),
            network=self.network,
            permissions=self.permissions,
            imported_files=topological_order(self.imported_files, self.edges),
            repository_imports=list(self.repository_imports),
            agent_file=self.agent_file,
            agent_import_spec=self.agent_import_spec,
            import_inputs=dict(self.import_inputs),
            warnings=[w.format() for w in self.diagnostics.warnings],
            notices=[n.format() for n in self.diagnostics.notices],
        )


# =============================================================================
# Resolver
# =============================================================================


class ImportResolver:
    """Resolve imports in workflow markdown files.

    Args:
        config: Layout and remote settings; the cached global config if omitted.
        client: Content API collaborator for workflowspec imports. A
            GitHubContentClient is created on first remote fetch if omitted
            and released by close(), or on leaving a `with` block.
        filesystem: Local file access; the real disk if omitted.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        client: Optional[ContentClient] = None,
        filesystem: Optional[FileSystem] = None,
    ):
        self.config = config if config is not None else get_config()
        self.client = client
        self.filesystem = filesystem if filesystem is not None else LocalFileSystem()
        self._owned_client: Optional[GitHubContentClient] = None

    def content_client(self) -> ContentClient:
        if self.client is None:
            logger.debug("Creating GitHub content client for %s", self.config.api_url)
            self._owned_client = GitHubContentClient(self.config)
            self.client = self._owned_client
        return self.client

    def close(self) -> None:
        """Close the content client if this resolver created it."""
        if self._owned_client is not None:
            self._owned_client.close()
            if self.client is self._owned_client:
                self.client = None
            self._owned_client = None

    def __enter__(self) -> "ImportResolver":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def resolve_file(self, path: str, extract_tools: bool = True) -> ResolutionResult:
        """Resolve a workflow file on the configured filesystem.

        Raises:
            NotFoundError: If the root file does not exist.
            ResolutionError: On any fatal import failure.
        """
        full_path = os.path.normpath(os.path.abspath(path))
        if not self.filesystem.exists(full_path):
            raise NotFoundError(path, "workflow file does not exist")
        content = self._decode(self.filesystem.read_bytes(full_path), full_path)
        return self.resolve_content(
            content,
            os.path.dirname(full_path),
            source_path=full_path,
            extract_tools=extract_tools,
        )

    def resolve_content(
        self,
        content: str,
        base_dir: str,
        source_path: Optional[str] = None,
        extract_tools: bool = True,
    ) -> ResolutionResult:
        """Resolve frontmatter imports and body directives of a document.

        Imported files reached through `imports:` are placed before the
        document body, in the order they were dequeued. Body directives are
        replaced in place.
        """
        if source_path:
            state = _Resolution(self, extract_tools)
            root_key = os.path.normpath(os.path.abspath(source_path))
            state.visited.add(root_key)
        else:
            # without a path the root is recognised by its content
            state = _Resolution(self, extract_tools, root_content=content)
            root_key = None

        frontmatter, body = extract_frontmatter(content, source_path)
        if extract_tools:
            state.tools = merge_tools(state.tools, extract_tools_from_frontmatter(frontmatter))
            state.mcp_servers = merge_tools(state.mcp_servers, extract_mcp_servers(frontmatter))

        logger.debug("Resolving %s (base dir %s)", source_path or "<content>", base_dir)
        self._enqueue_frontmatter_imports(state, frontmatter, base_dir, None, root_key, source_path)
        self._drain(state)

        root_body = self._expand_body(state, body, base_dir, None, root_key)
        # body directives may have discovered more frontmatter imports
        self._drain(state)

        parts = [b for b in state.imported_bodies if b]
        root_body = trim_blank_lines(root_body)
        if root_body:
            parts.append(root_body)
        markdown = "\n\n".join(parts) + "\n" if parts else ""

        result = state.to_result(markdown)
        logger.info(
            "Resolved %s: %d imported files, %d warnings",
            source_path or "<content>",
            len(result.imported_files),
            len(result.warnings),
        )
        return result

    def process_includes(self, content: str, base_dir: str, extract_tools: bool = False) -> str:
        """Expand body directives only.

        Returns:
            The expanded markdown or, with extract_tools, one JSON object
            per included file, newline separated.
        """
        state = _Resolution(self, extract_tools, follow_imports=False, root_content=content)
        expanded = self._expand_body(state, content, base_dir, None, None)
        if extract_tools:
            return "".join(tools_to_json(block) + "\n" for block in state.tool_blocks)
        return expanded

    def process_imports(self, frontmatter: Dict[str, Any], base_dir: str) -> ResolutionResult:
        """Resolve a frontmatter `imports:` list without a document body."""
        state = _Resolution(self, extract_tools=True)
        self._enqueue_frontmatter_imports(state, frontmatter, base_dir, None, None, None)
        self._drain(state)
        parts = [b for b in state.imported_bodies if b]
        markdown = "\n\n".join(parts) + "\n" if parts else ""
        return state.to_result(markdown)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def _enqueue_frontmatter_imports(
        self,
        state: _Resolution,
        frontmatter: Dict[str, Any],
        base_dir: str,
        origin: Optional[RemoteOrigin],
        parent_key: Optional[str],
        parent_path: Optional[str],
    ) -> None:
        for import_path, inputs in _import_entries(frontmatter, parent_path):
            if is_repository_import(import_path):
                logger.debug("Detected repository import: %s", import_path)
                if import_path not in state.repository_imports:
                    state.repository_imports.append(import_path)
                continue

            item = self._make_item(
                import_path,
                base_dir,
                origin,
                optional=False,
                from_frontmatter=True,
                inputs=inputs,
            )
            state.queue.append((item, parent_key))
            logger.debug("Queued import: %s (resolved to %s)", import_path, item.full_path)

    def _drain(self, state: _Resolution) -> None:
        while state.queue:
            item, parent_key = state.queue.popleft()
            body = self._expand_item(state, item, parent_key)
            if body:
                state.imported_bodies.append(body)

    def _expand_body(
        self,
        state: _Resolution,
        body: str,
        base_dir: str,
        origin: Optional[RemoteOrigin],
        parent_key: Optional[str],
    ) -> str:
        out: List[str] = []
        for line, directive in iter_body_lines(body):
            if directive is None:
                out.append(line)
                continue
            if directive.legacy:
                logger.debug("Legacy directive syntax: %s", directive.original.strip())
            item = self._make_item(directive.path, base_dir, origin, optional=directive.optional)
            expanded = self._expand_item(state, item, parent_key)
            if expanded:
                out.append(expanded)
        return "\n".join(out)

    def _make_item(
        self,
        import_path: str,
        base_dir: str,
        origin: Optional[RemoteOrigin],
        optional: bool = False,
        from_frontmatter: bool = False,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> ImportQueueItem:
        """Classify an import path and build its queue item.

        No I/O happens here; path checks run before anything is read.

        Raises:
            SecurityError: If the path escapes the permitted root.
            ParseError: If the path names a compiled lock file.
        """
        path_part, section = split_section(import_path)

        spec = parse_workflow_spec(import_path)
        if spec is not None:
            # A full coordinate gets its own origin, nothing is inherited
            item = ImportQueueItem(
                import_path=import_path,
                full_path=spec.coordinate(),
                base_dir=base_dir,
                section_name=spec.section,
                remote_origin=spec.origin(),
                remote_path=spec.file_path,
                optional=optional,
                from_frontmatter=from_frontmatter,
                inputs=inputs,
            )
        elif origin is not None:
            coordinate = origin.resolve_nested_import(path_part, self.config.workflows_dir)
            nested = parse_workflow_spec(coordinate)
            if nested is None:
                raise ParseError(f"cannot resolve nested import against {origin}", import_path)
            logger.debug("Nested import %s inherits origin %s -> %s", import_path, origin, coordinate)
            item = ImportQueueItem(
                import_path=import_path,
                full_path=coordinate,
                base_dir=base_dir,
                section_name=section,
                remote_origin=origin,
                remote_path=nested.file_path,
                optional=optional,
                from_frontmatter=from_frontmatter,
                inputs=inputs,
            )
        else:
            full_path = os.path.normpath(os.path.join(os.path.abspath(base_dir), path_part))
            self._check_boundary(import_path, full_path, base_dir)
            item = ImportQueueItem(
                import_path=import_path,
                full_path=full_path,
                base_dir=base_dir,
                section_name=section,
                optional=optional,
                from_frontmatter=from_frontmatter,
                inputs=inputs,
            )

        if (item.remote_path or item.full_path).lower().endswith(LOCK_FILE_SUFFIX):
            raise ParseError(
                "cannot import .lock.yml files. Lock files are compiled outputs; import the source .md file instead",
                import_path,
            )
        return item

    def _security_root(self, base_dir: str) -> str:
        """Nearest ancestor of base_dir named like the root folder, else base_dir."""
        marker = os.path.basename(os.path.normpath(self.config.root_folder))
        start = os.path.normpath(os.path.abspath(base_dir))
        probe = start
        while True:
            if os.path.basename(probe) == marker:
                return probe
            parent = os.path.dirname(probe)
            if parent == probe:
                return start
            probe = parent

    def _check_boundary(self, import_path: str, full_path: str, base_dir: str) -> None:
        root = self._security_root(base_dir)
        relative = os.path.relpath(full_path, root)
        if relative == ".." or relative.startswith(".." + os.sep) or os.path.isabs(relative):
            logger.warning("Security: path escapes %s: %s (resolves to: %s)", root, import_path, relative)
            raise SecurityError(import_path, relative, f"{self.config.root_folder} folder")

    # -------------------------------------------------------------------------
    # Expansion
    # -------------------------------------------------------------------------

    def _expand_item(self, state: _Resolution, item: ImportQueueItem, parent_key: Optional[str]) -> str:
        """Read, validate and expand one import. Returns the spliced body."""
        state.add_edge(parent_key, item.key)
        if item.key in state.visited:
            self._skip_visited(state, item)
            return ""
        state.visited.add(item.key)

        try:
            content = self._read(state, item)
        except NotFoundError as e:
            if not item.optional:
                raise
            logger.info("Optional import not found: %s", item.import_path)
            state.diagnostics.add_notice(
                item.import_path,
                f"optional import not found, skipping ({e})",
            )
            return ""

        if state.root_content is not None and content == state.root_content:
            logger.debug("Skipping import of the root document: %s", item.key)
            return ""

        state.expanded_sections[item.key] = item.section_name
        state.imported_files.append(item.key)
        if item.inputs:
            state.import_inputs.update(item.inputs)

        frontmatter, body = extract_frontmatter(content, item.key)
        location = item.remote_path or item.full_path
        is_agent = is_custom_agent_file(location, self.config.agents_dir)

        if is_agent:
            self._record_agent_file(state, item, location)
        else:
            strict = is_under_workflows_directory(location, self.config.workflows_dir)
            validate_included_frontmatter(frontmatter, item.key, strict, state.diagnostics)

        if state.extract_tools:
            block = extract_tools_from_frontmatter(frontmatter, is_agent)
            state.tool_blocks.append(block)
            state.tools = merge_tools(state.tools, block)
            state.mcp_servers = merge_tools(state.mcp_servers, extract_mcp_servers(frontmatter, is_agent))

        if not is_agent:
            self._collect_settings(state, frontmatter)

        if state.follow_imports and not is_agent:
            self._enqueue_frontmatter_imports(
                state, frontmatter, item.base_dir, item.remote_origin, item.key, item.key
            )

        # agent files are handed to the engine as-is unless inputs must be substituted
        if is_agent and not item.inputs:
            return ""

        # only directives inside the requested section are expanded
        if item.section_name:
            body = extract_markdown_section(body, item.section_name, item.key)
        nested_dir = item.base_dir if item.is_remote else os.path.dirname(item.full_path)
        body = self._expand_body(state, body, nested_dir, item.remote_origin, item.key)
        return trim_blank_lines(body)

    def _skip_visited(self, state: _Resolution, item: ImportQueueItem) -> None:
        if item.key not in state.expanded_sections:
            logger.debug("Skipping already visited import: %s", item.key)
            return
        expanded = state.expanded_sections[item.key]
        if item.section_name == expanded:
            logger.debug("Skipping already visited import: %s", item.key)
            return
        described = f"section '{item.section_name}'" if item.section_name else "whole file"
        if expanded:
            message = f"{described} skipped, file already included for section '{expanded}'"
        else:
            message = f"{described} skipped, file already included in full"
        logger.info("Skipping %s of already included %s", described, item.key)
        state.diagnostics.add_notice(item.import_path, message)

    @staticmethod
    def _collect_settings(state: _Resolution, frontmatter: Dict[str, Any]) -> None:
        """Fold engine, network and permissions declared by an imported file."""
        engine = extract_engine(frontmatter)
        if engine is not None:
            state.engines.append(engine)
        network = extract_network(frontmatter)
        if network:
            state.network = merge_network(state.network, network)
        permissions = extract_permissions(frontmatter)
        if permissions:
            state.permissions = merge_permissions(state.permissions, permissions)

    def _read(self, state: _Resolution, item: ImportQueueItem) -> str:
        if item.is_remote:
            origin = item.remote_origin
            data = state.fetcher.fetch(origin.owner, origin.repo, item.remote_path, origin.ref)
            return self._decode(data, item.full_path)

        if not self.filesystem.exists(item.full_path):
            raise NotFoundError(item.import_path, f"file not found: {item.full_path}")
        return self._decode(self.filesystem.read_bytes(item.full_path), item.full_path)

    def _record_agent_file(self, state: _Resolution, item: ImportQueueItem, location: str) -> None:
        if state.agent_file is not None:
            raise ParseError(
                f"multiple agent files found in imports: '{state.agent_file}' and '{item.import_path}'. "
                "Only one agent file is allowed per workflow"
            )
        marker = "/" + os.path.basename(os.path.normpath(self.config.root_folder)) + "/"
        idx = ("/" + location).find(marker)
        state.agent_file = ("/" + location)[idx + 1:] if idx >= 0 else location
        state.agent_import_spec = item.import_path
        logger.debug("Found agent file: %s (resolved to: %s)", item.full_path, state.agent_file)

    @staticmethod
    def _decode(data: bytes, path: str) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"file is not valid UTF-8: {e}", path) from e


# =============================================================================
# Helpers
# =============================================================================


def _import_entries(
    frontmatter: Dict[str, Any], path: Optional[str]
) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
    """Normalize `imports:` into (path, inputs) pairs.

    Entries are strings or `{path: ..., inputs: {...}}` objects.

    Raises:
        ParseError: If imports is not a list or an entry is malformed.
    """
    raw = frontmatter.get(IMPORTS_KEY)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ParseError(f"imports must be a list, got {type(raw).__name__}", path)

    entries: List[Tuple[str, Optional[Dict[str, Any]]]] = []
    for entry in raw:
        if isinstance(entry, str) and entry:
            entries.append((entry, None))
        elif isinstance(entry, dict) and isinstance(entry.get("path"), str) and entry["path"]:
            inputs = entry.get("inputs")
            if inputs is not None and not isinstance(inputs, dict):
                raise ParseError(f"inputs for import {entry['path']} must be a mapping", path)
            entries.append((entry["path"], inputs))
        else:
            raise ParseError(f"invalid imports entry: {entry!r}", path)
    return entries
