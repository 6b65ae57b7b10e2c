#!/usr/bin/env python3
"""
Header Schema Checker

Verifies that a rule document's header carries every required key with a
non-blank value. The pattern-list key (the globs a rule applies to) is also
split into entries, and a list with no usable entry counts as empty.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from rule_document import RuleDocument
from run_report import Diagnostic, MISSING_REQUIRED_KEY, EMPTY_REQUIRED_VALUE


DEFAULT_REQUIRED_KEYS = ("Description", "Globs")
DEFAULT_PATTERN_LIST_KEY = "Globs"


@dataclass(frozen=True)
class HeaderSchema:
    """
    Required header keys for every rule document.

    Attributes:
        required_keys: Keys that must be present with a non-blank value
        pattern_list_key: Key holding a comma-separated list of globs, or None
    """
    required_keys: Tuple[str, ...] = DEFAULT_REQUIRED_KEYS
    pattern_list_key: Optional[str] = DEFAULT_PATTERN_LIST_KEY

    def __post_init__(self):
        if self.pattern_list_key is not None and self.pattern_list_key not in self.required_keys:
            raise ValueError(
                f"pattern_list_key '{self.pattern_list_key}' must be one of the required keys"
            )


def split_patterns(value: str) -> List[str]:
    """
    Split a pattern-list value into its non-blank entries.

    Example:
        >>> split_patterns("**/*.ts, , **/*.tsx")
        ['**/*.ts', '**/*.tsx']
    """
    return [entry.strip() for entry in value.split(',') if entry.strip()]


def check_header(document: RuleDocument, schema: HeaderSchema) -> List[Diagnostic]:
    """
    Check a parsed document's header against the schema.

    Emits at most one diagnostic per required key.

    Args:
        document: Parsed rule document
        schema: Header schema to enforce

    Returns:
        List of Diagnostic objects (empty if the header conforms)
    """
    diagnostics = []

    for key in schema.required_keys:
        if key not in document.header:
            diagnostics.append(Diagnostic(
                document_identifier=document.identifier,
                kind=MISSING_REQUIRED_KEY,
                message=f"Missing required header field: {key}",
            ))
            continue

        value = document.header[key]

        if not value.strip():
            diagnostics.append(Diagnostic(
                document_identifier=document.identifier,
                kind=EMPTY_REQUIRED_VALUE,
                message=f"Header field {key} is empty",
            ))
            continue

        if key == schema.pattern_list_key and not split_patterns(value):
            diagnostics.append(Diagnostic(
                document_identifier=document.identifier,
                kind=EMPTY_REQUIRED_VALUE,
                message=f"Header field {key} lists no patterns (found: {value!r})",
            ))

    return diagnostics
