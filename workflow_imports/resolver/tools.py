"""
tools.py - Fold tool and related configuration blocks from included files.

Merge policy: accumulate, never drop a previously granted capability.
- A tool name seen for the first time is inserted wholesale.
- Lists are unioned (deduplicated, first-appearance order).
- Objects are merged key by key with the same rules.
- A bare toggle (`github:` / `github: true`) is upgraded by an object config.
- Any other conflict keeps the earlier value.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, Iterable, List

from workflow_imports.spec.errors import ParseError

logger = logging.getLogger(__name__)

MCP_SERVERS_KEY = "mcp-servers"
ENGINE_KEY = "engine"
NETWORK_KEY = "network"
PERMISSIONS_KEY = "permissions"

_PERMISSION_RANK = {"none": 0, "read": 1, "write": 2}


def _union_lists(existing: List[Any], new: List[Any]) -> List[Any]:
    merged = list(existing)
    for item in new:
        if item not in merged:
            merged.append(copy.deepcopy(item))
    return merged


def _merge_value(name: str, existing: Any, new: Any) -> Any:
    if existing == new:
        return existing
    if isinstance(existing, list) and isinstance(new, list):
        return _union_lists(existing, new)
    if isinstance(existing, dict) and isinstance(new, dict):
        return merge_tools(existing, new)
    if existing is None or existing is True:
        if isinstance(new, (dict, list)):
            return copy.deepcopy(new)
    logger.debug("Keeping earlier value for %s (%r), ignoring %r", name, existing, new)
    return existing


def merge_tools(accumulated: Dict[str, Any], new_block: Dict[str, Any]) -> Dict[str, Any]:
    """Merge a tools block into the accumulated configuration.

    Neither argument is mutated; a new dict is returned.

    Examples:
        >>> merge_tools({"github": {"allowed": ["a"]}}, {"github": {"allowed": ["b", "a"]}})
        {'github': {'allowed': ['a', 'b']}}
    """
    result = copy.deepcopy(accumulated)
    for name, value in new_block.items():
        if name not in result:
            result[name] = copy.deepcopy(value)
        else:
            result[name] = _merge_value(name, result[name], value)
    return result


def extract_tools(frontmatter: Dict[str, Any], is_agent_file: bool = False) -> Dict[str, Any]:
    """Return the `tools` object declared in a frontmatter mapping.

    Agent files and files whose `tools` is a list use a different dialect
    and contribute nothing.
    """
    if is_agent_file:
        return {}

    tools = frontmatter.get("tools")
    if isinstance(tools, list):
        logger.debug("Skipping list-shaped tools block")
        return {}
    if isinstance(tools, dict):
        return copy.deepcopy(tools)
    return {}


def extract_mcp_servers(frontmatter: Dict[str, Any], is_agent_file: bool = False) -> Dict[str, Any]:
    """Return the `mcp-servers` object, merged separately from tools."""
    servers = frontmatter.get(MCP_SERVERS_KEY)
    if is_agent_file or not isinstance(servers, dict):
        return {}
    return copy.deepcopy(servers)


# =============================================================================
# Engine, network and permissions
# =============================================================================


def extract_engine(frontmatter: Dict[str, Any]) -> Any:
    """Return the `engine` value (a name or an object), None when absent."""
    engine = frontmatter.get(ENGINE_KEY)
    if engine in (None, "", {}):
        return None
    return copy.deepcopy(engine)


def extract_network(frontmatter: Dict[str, Any]) -> Dict[str, Any]:
    """Return the `network` block as an object.

    The `defaults` shorthand becomes `{"allowed": ["defaults"]}`.
    """
    network = frontmatter.get(NETWORK_KEY)
    if isinstance(network, str) and network:
        return {"allowed": [network]}
    if isinstance(network, dict):
        return copy.deepcopy(network)
    return {}


def merge_network(accumulated: Dict[str, Any], new_block: Dict[str, Any]) -> Dict[str, Any]:
    """Merge network blocks. Allowed domains are unioned and kept sorted."""
    result = merge_tools(accumulated, new_block)
    allowed = result.get("allowed")
    if isinstance(allowed, list):
        result["allowed"] = sorted(set(str(d) for d in allowed))
    return result


def extract_permissions(frontmatter: Dict[str, Any]) -> Dict[str, str]:
    """Return `permissions` as a scope -> level mapping.

    `read-all` / `write-all` shorthands are recorded under the `all` scope.
    """
    permissions = frontmatter.get(PERMISSIONS_KEY)
    if isinstance(permissions, str) and permissions.endswith("-all"):
        return {"all": permissions[: -len("-all")]}
    if isinstance(permissions, dict):
        return {str(scope): str(level) for scope, level in permissions.items()}
    return {}


def merge_permissions(accumulated: Dict[str, str], new_block: Dict[str, str]) -> Dict[str, str]:
    """Merge permission maps. Per scope, write beats read and read beats none."""
    result = dict(accumulated)
    for scope, level in new_block.items():
        current = result.get(scope)
        if current is None or _PERMISSION_RANK.get(level, 0) > _PERMISSION_RANK.get(current, 0):
            result[scope] = level
    return result


def merge_tools_json(accumulated: Dict[str, Any], lines: Iterable[str]) -> Dict[str, Any]:
    """Fold newline-separated JSON objects into accumulated.

    Raises:
        ParseError: If a line is not a JSON object.
    """
    result = accumulated
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            block = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"invalid tools JSON: {e}") from e
        if not isinstance(block, dict):
            raise ParseError(f"tools JSON must be an object, got {type(block).__name__}")
        result = merge_tools(result, block)
    return result


def tools_to_json(tools: Dict[str, Any]) -> str:
    """Serialize tools as canonical JSON, `{}` when empty."""
    if not tools:
        return "{}"
    return json.dumps(tools, sort_keys=True)
