# workflow_imports/validator/errors.py
"""Diagnostic collection and schema error message cleanup."""

from __future__ import annotations

import re
from typing import Any, List, Optional

import jsonschema

# Diagnostic template: [LEVEL] location: message
DIAGNOSTIC_TEMPLATE = "[{level}] {location}: {message}"

GENERIC_SCHEMA_MESSAGE = "schema validation failed"

_HEADER_RE = re.compile(r"^\s*jsonschema validation failed with '[^']*'\s*$")
_ONE_OF_RE = re.compile(r"at '([^']*)': '(oneOf|anyOf)' failed, none matched")
_BRANCH_RE = re.compile(r"^-\s*at '([^']*)':\s*(.*)$")
_TYPE_CONFLICT_RE = re.compile(r"got [\w-]+, want [\w-]+")
_ROOT_PREFIX_RE = re.compile(r"^(-\s*)?at '':\s*")
_UNEXPECTED_RE = re.compile(r"\((.*) (?:was|were) unexpected\)")


class Diagnostic:
    """A non-fatal warning or informational notice."""

    def __init__(self, level: str, location: str, message: str):
        self.level = level
        self.location = location
        self.message = message

    def format(self) -> str:
        """Format diagnostic message."""
        return DIAGNOSTIC_TEMPLATE.format(
            level=self.level,
            location=self.location,
            message=self.message,
        )


class Diagnostics:
    """Collects warnings and notices raised during one resolution."""

    def __init__(self):
        self.warnings: List[Diagnostic] = []
        self.notices: List[Diagnostic] = []

    def add_warning(self, location: str, message: str):
        """Add a warning (downgraded validation failure, ignored fields)."""
        self.warnings.append(Diagnostic("WARN", location, message))

    def add_notice(self, location: str, message: str):
        """Add an informational notice (optional import skipped)."""
        self.notices.append(Diagnostic("INFO", location, message))


# =============================================================================
# Schema error rendering
# =============================================================================


def _json_type(instance: Any) -> str:
    if instance is None:
        return "null"
    if isinstance(instance, bool):
        return "boolean"
    if isinstance(instance, (int, float)):
        return "number"
    if isinstance(instance, str):
        return "string"
    if isinstance(instance, list):
        return "array"
    if isinstance(instance, dict):
        return "object"
    return type(instance).__name__


def _json_pointer(path) -> str:
    parts = [str(p) for p in path]
    if not parts:
        return ""
    return "/" + "/".join(parts)


def _describe(error: jsonschema.ValidationError) -> str:
    if error.validator == "type":
        want = error.validator_value
        if isinstance(want, list):
            want = "-or-".join(want)
        return f"got {_json_type(error.instance)}, want {want}"
    if error.validator == "enum":
        values = ",".join(f"'{v}'" for v in error.validator_value)
        return f"value must be one of {values}"
    if error.validator == "const":
        return f"value must be '{error.validator_value}'"
    if error.validator == "additionalProperties":
        match = _UNEXPECTED_RE.search(error.message)
        if match:
            return f"additional properties {match.group(1)} not allowed"
    if error.validator == "required":
        missing = [p for p in error.validator_value if isinstance(error.instance, dict) and p not in error.instance]
        if missing:
            return "missing property " + ", ".join(f"'{p}'" for p in missing)
    return error.message


def format_schema_error(error: jsonschema.ValidationError) -> str:
    """Render a jsonschema error as `at '/path': message` text.

    oneOf/anyOf failures become a header line followed by one `- at ...`
    line per failing branch.
    """
    location = _json_pointer(error.absolute_path)
    if error.validator in ("oneOf", "anyOf") and error.context:
        lines = [f"at '{location}': '{error.validator}' failed, none matched"]
        for sub in sorted(error.context, key=lambda e: [str(p) for p in e.relative_schema_path]):
            lines.append(f"- at '{_json_pointer(sub.absolute_path)}': {_describe(sub)}")
        return "\n".join(lines)
    return f"at '{location}': {_describe(error)}"


# =============================================================================
# Schema error cleanup
# =============================================================================


def clean_one_of_message(message: str) -> str:
    """Collapse a oneOf failure into the branch messages that matter.

    Branches that only say the value had the wrong JSON type ("got string,
    want object") are dropped. Branches located below the oneOf keep their
    last path segment as a quoted prefix. If nothing else is left, the
    original message is returned unchanged.

    Examples:
        >>> clean_one_of_message(
        ...     "at '/engine': 'oneOf' failed, none matched\\n"
        ...     "- at '/engine': value must be one of 'a','b'\\n"
        ...     "- at '/engine': got string, want object")
        "value must be one of 'a','b'"
    """
    header = _ONE_OF_RE.search(message)
    if not header:
        return message
    one_of_depth = len([s for s in header.group(1).split("/") if s])

    survivors: List[str] = []
    for raw_line in message.split("\n"):
        line = raw_line.strip()
        if not line.startswith("-"):
            continue
        match = _BRANCH_RE.match(line)
        if match:
            path, text = match.group(1), match.group(2)
        else:
            path, text = "", line[1:].strip()
        if _TYPE_CONFLICT_RE.search(text):
            continue
        segments = [s for s in path.split("/") if s]
        if len(segments) > one_of_depth:
            survivors.append(f"'{segments[-1]}': {text}")
        else:
            survivors.append(text)

    if not survivors:
        return message
    return "; ".join(survivors)


def clean_jsonschema_error_message(message: str) -> str:
    """Strip the jsonschema wrapper header, clean oneOf noise, then drop the root prefix.

    The oneOf header is matched with its `at '...':` location, so the root
    prefix is removed only after the branches have been collapsed.
    """
    lines = [line for line in message.split("\n") if not _HEADER_RE.match(line)]
    cleaned = clean_one_of_message("\n".join(lines).strip())
    cleaned = _ROOT_PREFIX_RE.sub("", cleaned.strip(), count=1).strip()
    if not cleaned:
        return GENERIC_SCHEMA_MESSAGE
    return cleaned


def schema_error_messages(errors: List[jsonschema.ValidationError], schema_uri: Optional[str] = None) -> List[str]:
    """Format and clean a list of jsonschema errors, one message each."""
    messages = []
    for error in sorted(errors, key=lambda e: list(map(str, e.absolute_path))):
        raw = format_schema_error(error)
        if schema_uri:
            raw = f"jsonschema validation failed with '{schema_uri}'\n{raw}"
        messages.append(clean_jsonschema_error_message(raw))
    return messages
