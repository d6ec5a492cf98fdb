"""
validation.py - Schema validation of included-file frontmatter.

Files that sit directly in the workflows directory are canonical workflow
files and are validated strictly: a schema failure is fatal. Everything
else (shared fragments, docs) is validated permissively and failures are
downgraded to warnings. Custom agent files are not validated at all.
"""

from __future__ import annotations

import json
import logging
import posixpath
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import jsonschema

from workflow_imports.spec.errors import ValidationError
from workflow_imports.validator.errors import Diagnostics, schema_error_messages

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "included_file.schema.json"


@lru_cache(maxsize=1)
def load_included_file_schema() -> Dict[str, Any]:
    """Load the packaged included-file schema."""
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Draft7Validator:
    schema = load_included_file_schema()
    jsonschema.Draft7Validator.check_schema(schema)
    return jsonschema.Draft7Validator(schema)


def _segments(path: str) -> List[str]:
    return [s for s in path.replace("\\", "/").split("/") if s and s != "."]


def _find_dir(path: str, directory: str) -> int:
    """Index just past `directory` inside path's segments, -1 when absent."""
    parts = _segments(path)
    wanted = _segments(directory)
    if not wanted:
        return -1
    for i in range(len(parts) - len(wanted) + 1):
        if parts[i : i + len(wanted)] == wanted:
            return i + len(wanted)
    return -1


def is_under_workflows_directory(path: str, workflows_dir: str) -> bool:
    """Check whether path is a file directly inside the workflows directory.

    Files in subdirectories (for example `.github/workflows/shared/`) are
    shared fragments, not canonical workflows.
    """
    parts = _segments(path)
    start = _find_dir(path, workflows_dir)
    return start != -1 and len(parts) - start == 1


def is_custom_agent_file(path: str, agents_dir: str) -> bool:
    """Check whether path is a markdown file inside the agents directory."""
    return _find_dir(path, agents_dir) != -1 and posixpath.basename(path).endswith(".md")


# Fields allowed in shared (non-workflow) files; anything else is ignored with a warning
RELAXED_FIELDS = frozenset(
    {
        "tools",
        "engine",
        "network",
        "mcp-servers",
        "imports",
        "name",
        "description",
        "steps",
        "safe-outputs",
        "safe-inputs",
        "services",
        "runtimes",
        "permissions",
        "secret-masking",
        "applyTo",
        "inputs",
        "infer",
        "disable-model-invocation",
        "features",
    }
)

# Sections still checked against the schema in relaxed mode
RELAXED_VALIDATED_FIELDS = ("tools", "engine", "network", "mcp-servers")


def validate_included_frontmatter(
    frontmatter: Dict[str, Any],
    path: str,
    strict: bool,
    diagnostics: Diagnostics,
) -> List[str]:
    """Validate included-file frontmatter against the packaged schema.

    In strict mode any schema failure is fatal. In relaxed mode unexpected
    fields are reported and only the tool-related sections are re-checked;
    every problem becomes a warning.

    Args:
        frontmatter: Parsed frontmatter mapping.
        path: File path or coordinate, for messages.
        strict: Raise on failure instead of recording warnings.
        diagnostics: Collector for downgraded failures.

    Returns:
        Warning messages recorded (empty when valid or when nothing applies).

    Raises:
        ValidationError: On failure when strict is set.
    """
    if not frontmatter:
        return []

    schema_id = load_included_file_schema().get("$id")
    errors = list(_validator().iter_errors(frontmatter))
    if not errors:
        return []

    if strict:
        logger.debug("Strict validation failed for %s", path)
        raise ValidationError(path, schema_error_messages(errors, schema_id))

    warnings: List[str] = []
    unexpected = sorted(str(key) for key in frontmatter if key not in RELAXED_FIELDS)
    if unexpected:
        warnings.append("ignoring unexpected frontmatter fields: " + ", ".join(unexpected))

    filtered = {k: frontmatter[k] for k in RELAXED_VALIDATED_FIELDS if k in frontmatter}
    if filtered:
        sub_errors = list(_validator().iter_errors(filtered))
        for message in schema_error_messages(sub_errors, schema_id):
            warnings.append(f"invalid configuration: {message}")

    for message in warnings:
        logger.warning("%s: %s", path, message)
        diagnostics.add_warning(path, message)
    return warnings
