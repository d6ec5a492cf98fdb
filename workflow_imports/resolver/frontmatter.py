"""
frontmatter.py - Split markdown files into YAML frontmatter and body.

Also extracts a single `## Section` from a body for `file.md#Section`
imports.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Tuple

import yaml

from workflow_imports.spec.errors import NotFoundError, ParseError

logger = logging.getLogger(__name__)

# Frontmatter: starts with ---, ends with ---, at beginning of file
FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)

_HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")


def split_frontmatter(content: str) -> Tuple[Optional[str], str]:
    """Split content into (raw frontmatter YAML, markdown body).

    Returns (None, content) when the file has no frontmatter block.
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end():]


def extract_frontmatter(content: str, path: Optional[str] = None) -> Tuple[Dict[str, Any], str]:
    """Parse the frontmatter of a markdown file.

    Args:
        content: Full file content.
        path: File path, used in error messages.

    Returns:
        Tuple of (frontmatter dict, markdown body). The dict is empty when the
        file has no frontmatter or the block is empty.

    Raises:
        ParseError: If the YAML is malformed or is not a mapping.
    """
    raw, body = split_frontmatter(content)
    if raw is None:
        return {}, body

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid frontmatter YAML: {e}", path) from e

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise ParseError(f"frontmatter must be a mapping, got {type(data).__name__}", path)
    return data, body


def trim_blank_lines(text: str) -> str:
    """Remove leading and trailing blank lines, keeping inner indentation."""
    lines = text.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def extract_markdown_section(body: str, section: str, path: Optional[str] = None) -> str:
    """Return the `section` heading and everything up to the next heading of
    the same or higher level.

    Heading text is matched case-insensitively. Headings inside fenced code
    blocks are ignored.

    Raises:
        NotFoundError: If no heading matches.
    """
    wanted = section.strip().lower()
    lines = body.split("\n")
    start: Optional[int] = None
    level = 0
    in_fence = False

    for i, line in enumerate(lines):
        if line.lstrip().startswith(("```", "~~~")):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_PATTERN.match(line)
        if not match:
            continue
        depth = len(match.group(1))
        if start is None:
            if match.group(2).strip().lower() == wanted:
                start = i
                level = depth
        elif depth <= level:
            logger.debug("Section %s ends at line %d", section, i + 1)
            return "\n".join(lines[start:i])

    if start is None:
        raise NotFoundError(f"{path}#{section}" if path else f"#{section}", "section not found")
    return "\n".join(lines[start:])
