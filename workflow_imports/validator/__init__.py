"""
workflow_imports/validator - Diagnostics and schema error cleanup.
"""

from .errors import (
    GENERIC_SCHEMA_MESSAGE,
    Diagnostic,
    Diagnostics,
    clean_jsonschema_error_message,
    clean_one_of_message,
    format_schema_error,
    schema_error_messages,
)

__all__ = [
    "GENERIC_SCHEMA_MESSAGE",
    "Diagnostic",
    "Diagnostics",
    "clean_jsonschema_error_message",
    "clean_one_of_message",
    "format_schema_error",
    "schema_error_messages",
]
