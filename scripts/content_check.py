#!/usr/bin/env python3
"""Content sanity check: a rule body must be organised in at least one section.

A section marker is a markdown heading or a line starting with "#" outside
code fences.
"""

from typing import List

from rule_document import RuleDocument
from run_report import Diagnostic, EMPTY_BODY_CONTENT


def check_content(document: RuleDocument) -> List[Diagnostic]:
    """
    Flag a document whose body has no section marker.

    A header-only rule carries no guidance. This is reported as a warning,
    but any diagnostic still marks the document invalid.

    Args:
        document: Parsed rule document

    Returns:
        A single EmptyBodyContent diagnostic, or an empty list
    """
    if document.section_markers():
        return []

    return [Diagnostic(
        document_identifier=document.identifier,
        kind=EMPTY_BODY_CONTENT,
        message="Missing header sections (no # found in body)",
        line=document.body_line,
        severity="warn",
    )]
