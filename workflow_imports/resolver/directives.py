"""
directives.py - Recognize import directives in markdown bodies.

Supported forms, one per line:
    @include path          @include? path
    @import path           @import? path
    {{#import path}}       {{#import? path}}

The `?` marks an optional import: a missing target is skipped with a notice
instead of failing the resolution. `@include` and `@import` are aliases.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

DIRECTIVE_PATTERN = re.compile(
    r"^\s*(?:"
    r"@(?P<legacy>include|import)(?P<legacy_opt>\?)?\s+(?P<legacy_path>\S+)"
    r"|\{\{#import(?P<opt>\?)?\s+(?P<path>[^}\s]+)\s*\}\}"
    r")\s*$"
)

_FENCE_MARKERS = ("```", "~~~")


@dataclass(frozen=True)
class ImportDirective:
    """A parsed import directive line."""

    path: str
    optional: bool
    original: str
    legacy: bool = False


def parse_import_directive(line: str) -> Optional[ImportDirective]:
    """Parse a single line as an import directive.

    Returns None when the line is not a directive.

    Examples:
        >>> parse_import_directive("@include? shared/extra.md").optional
        True
        >>> parse_import_directive("{{#import shared/tools.md}}").path
        'shared/tools.md'
    """
    match = DIRECTIVE_PATTERN.match(line)
    if not match:
        return None
    if match.group("legacy"):
        return ImportDirective(
            path=match.group("legacy_path"),
            optional=bool(match.group("legacy_opt")),
            original=line,
            legacy=True,
        )
    return ImportDirective(
        path=match.group("path"),
        optional=bool(match.group("opt")),
        original=line,
    )


def iter_body_lines(body: str) -> Iterator[Tuple[str, Optional[ImportDirective]]]:
    """Yield (line, directive) pairs for a markdown body.

    directive is None for ordinary lines and for anything inside a fenced
    code block.
    """
    in_fence = False
    for line in body.split("\n"):
        if line.lstrip().startswith(_FENCE_MARKERS):
            in_fence = not in_fence
            yield line, None
            continue
        if in_fence:
            yield line, None
            continue
        yield line, parse_import_directive(line)
