#!/usr/bin/env python3
"""
Rule Document Parser

Splits a rule file into its header block and body. A rule file looks like:

    ---
    Description: Lambda function conventions
    Globs: **/*.ts, **/handler.py
    ---

    # AWS Lambda

    ## Handlers
    ...

The header block sits between two delimiter lines; everything after the
closing delimiter is the body. Header lines that are not of the form
`Key: value` are ignored.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from markdown_parser import HeadingInfo, extract_headings, extract_section_markers, parse_markdown
from run_report import Diagnostic, MISSING_HEADER_BLOCK, UNTERMINATED_HEADER_BLOCK


DEFAULT_DELIMITER = "---"

# Key must start in column 0; value may be empty
HEADER_LINE_PATTERN = re.compile(r'^([A-Za-z_][\w.-]*)\s*:(.*)$')

# YAML-style list continuation under a key with an empty value
LIST_ITEM_PATTERN = re.compile(r'^\s+-\s*(.*)$')


class HeaderBlockError(Exception):
    """Base exception for documents whose header block cannot be located."""

    kind: str = ""

    def __init__(self, identifier: str, message: str, line: int = 0):
        super().__init__(message)
        self.identifier = identifier
        self.message = message
        self.line = line

    def to_diagnostic(self) -> Diagnostic:
        """The parse failure as the document's only diagnostic."""
        return Diagnostic(
            document_identifier=self.identifier,
            kind=self.kind,
            message=self.message,
            line=self.line,
        )


class MissingHeaderBlockError(HeaderBlockError):
    """Raised when the text does not open with a delimiter line."""

    kind = MISSING_HEADER_BLOCK


class UnterminatedHeaderBlockError(HeaderBlockError):
    """Raised when the opening delimiter is never closed."""

    kind = UNTERMINATED_HEADER_BLOCK


@dataclass
class RuleDocument:
    """
    A parsed rule file.

    Attributes:
        identifier: Path relative to the rules root (POSIX separators)
        raw_text: Unparsed source
        header: Header fields, key -> value
        body: Text after the closing delimiter
        body_line: 1-based line number of the first body line in raw_text
    """
    identifier: str
    raw_text: str
    header: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    body_line: int = 1

    def _in_document(self, found: List[HeadingInfo]) -> List[HeadingInfo]:
        return [
            HeadingInfo(text=h.text, level=h.level, line=h.line + self.body_line)
            for h in found
        ]

    def headings(self) -> List[HeadingInfo]:
        """Headings of the body, with 1-based line numbers in raw_text."""
        return self._in_document(extract_headings(parse_markdown(self.body)))

    def section_markers(self) -> List[HeadingInfo]:
        """Headings plus '#'-led body lines such as "#Overview", 1-based lines."""
        return self._in_document(extract_section_markers(parse_markdown(self.body)))


def parse_header_lines(lines: List[str]) -> Dict[str, str]:
    """
    Parse header block lines into a key/value mapping.

    The first occurrence of a key wins. A key with an empty value followed by
    indented `- item` lines takes the items joined with ", " as its value.

    Args:
        lines: Header block lines, without the delimiters

    Returns:
        Dictionary of header fields

    Examples:
        >>> parse_header_lines(["Description: Lambda rules", "Globs: *.ts, *.js"])
        {'Description': 'Lambda rules', 'Globs': '*.ts, *.js'}
        >>> parse_header_lines(["Globs:", "  - *.ts", "  - *.tsx"])
        {'Globs': '*.ts, *.tsx'}
    """
    header: Dict[str, str] = {}
    list_key: Optional[str] = None
    list_items: List[str] = []

    def flush():
        if list_key is not None:
            header.setdefault(list_key, ", ".join(list_items))

    for line in lines:
        line = line.rstrip()

        if not line:
            continue

        item = LIST_ITEM_PATTERN.match(line)
        if item:
            if list_key is not None:
                list_items.append(item.group(1).strip())
            continue

        flush()
        list_key = None
        list_items = []

        match = HEADER_LINE_PATTERN.match(line)
        if not match:
            continue

        key = match.group(1)
        value = match.group(2).strip()

        if key in header:
            continue

        if value:
            header[key] = value
        else:
            list_key = key

    flush()
    return header


def parse_document(identifier: str, raw_text: str, delimiter: str = DEFAULT_DELIMITER) -> RuleDocument:
    """
    Parse raw rule file text into a RuleDocument.

    Args:
        identifier: Document identifier (path relative to the rules root)
        raw_text: File content
        delimiter: Header delimiter line

    Returns:
        Parsed RuleDocument

    Raises:
        MissingHeaderBlockError: If the first line is not the delimiter
        UnterminatedHeaderBlockError: If no closing delimiter line follows
    """
    lines = raw_text.split('\n')

    if lines[0].rstrip() != delimiter:
        raise MissingHeaderBlockError(
            identifier,
            f"File does not start with a header block ({delimiter})",
            line=1,
        )

    closing = None
    for index in range(1, len(lines)):
        if lines[index].rstrip() == delimiter:
            closing = index
            break

    if closing is None:
        raise UnterminatedHeaderBlockError(
            identifier,
            f"Header block is not properly closed (missing {delimiter} line)",
            line=1,
        )

    return RuleDocument(
        identifier=identifier,
        raw_text=raw_text,
        header=parse_header_lines(lines[1:closing]),
        body='\n'.join(lines[closing + 1:]),
        body_line=closing + 2,
    )
