#!/usr/bin/env python3
"""
Test suite for rule_document module.

Tests header block location, tolerant header parsing, list-style values,
body extraction and heading line numbers.
"""

import pytest
from rule_document import (
    RuleDocument,
    HeaderBlockError,
    MissingHeaderBlockError,
    UnterminatedHeaderBlockError,
    parse_document,
    parse_header_lines,
)
from run_report import MISSING_HEADER_BLOCK, UNTERMINATED_HEADER_BLOCK


WELL_FORMED = """---
Description: AWS Lambda conventions
Globs: **/*.ts, **/handler.py
---

# AWS Lambda

## Handlers

Keep handlers thin.
"""


# ============================================================================
# Header Block Location Tests
# ============================================================================

def test_parse_well_formed_document():
    """Header and body are split at the closing delimiter."""
    doc = parse_document("aws-lambda.mdc", WELL_FORMED)

    assert isinstance(doc, RuleDocument)
    assert doc.identifier == "aws-lambda.mdc"
    assert doc.raw_text == WELL_FORMED
    assert doc.header == {
        "Description": "AWS Lambda conventions",
        "Globs": "**/*.ts, **/handler.py",
    }
    assert doc.body.startswith("\n# AWS Lambda")
    assert doc.body_line == 5


def test_missing_opening_delimiter():
    """Text not starting with the delimiter has no header block."""
    text = "Description: x\n---\n# Title\n"
    with pytest.raises(MissingHeaderBlockError) as exc_info:
        parse_document("plain.mdc", text)

    assert exc_info.value.kind == MISSING_HEADER_BLOCK
    assert exc_info.value.identifier == "plain.mdc"


def test_leading_blank_line_is_missing_header():
    """The delimiter must be the very first line."""
    with pytest.raises(MissingHeaderBlockError):
        parse_document("blank.mdc", "\n---\nDescription: x\n---\n# T\n")


def test_longer_marker_is_not_a_delimiter():
    """A line of four dashes does not open a header block."""
    with pytest.raises(MissingHeaderBlockError):
        parse_document("dashes.mdc", "----\nDescription: x\n----\n# T\n")


def test_empty_text_is_missing_header():
    with pytest.raises(MissingHeaderBlockError):
        parse_document("empty.mdc", "")


def test_unterminated_header_block():
    """An opening delimiter without a closing one is unterminated."""
    text = "---\nDescription: x\nGlobs: *.ts\n# Title\n"
    with pytest.raises(UnterminatedHeaderBlockError) as exc_info:
        parse_document("open.mdc", text)

    assert exc_info.value.kind == UNTERMINATED_HEADER_BLOCK


def test_delimiter_only_is_unterminated():
    with pytest.raises(UnterminatedHeaderBlockError):
        parse_document("dash.mdc", "---")


def test_header_errors_share_base_class():
    assert issubclass(MissingHeaderBlockError, HeaderBlockError)
    assert issubclass(UnterminatedHeaderBlockError, HeaderBlockError)


def test_header_error_to_diagnostic():
    with pytest.raises(HeaderBlockError) as exc_info:
        parse_document("open.mdc", "---\nDescription: x\n")

    diagnostic = exc_info.value.to_diagnostic()

    assert diagnostic.document_identifier == "open.mdc"
    assert diagnostic.kind == UNTERMINATED_HEADER_BLOCK
    assert diagnostic.message == exc_info.value.message
    assert diagnostic.line == 1
    assert diagnostic.severity == "error"


def test_closing_delimiter_at_end_of_file():
    """The closing delimiter may be the last line without a newline."""
    doc = parse_document("short.mdc", "---\nDescription: x\n---")
    assert doc.header == {"Description": "x"}
    assert doc.body == ""


def test_delimiter_trailing_whitespace_tolerated():
    doc = parse_document("ws.mdc", "---  \nDescription: x\n--- \n# T\n")
    assert doc.header == {"Description": "x"}
    assert doc.body == "# T\n"


def test_crlf_line_endings():
    """Windows line endings do not leak into header values."""
    text = "---\r\nDescription: x\r\nGlobs: *.ts\r\n---\r\n# Title\r\n"
    doc = parse_document("crlf.mdc", text)

    assert doc.header == {"Description": "x", "Globs": "*.ts"}
    assert "# Title" in doc.body


def test_custom_delimiter():
    doc = parse_document("plus.mdc", "+++\nDescription: x\n+++\n# T\n", delimiter="+++")
    assert doc.header == {"Description": "x"}


def test_only_first_closing_delimiter_ends_header():
    """Later delimiter lines (e.g. horizontal rules) belong to the body."""
    doc = parse_document("rule.mdc", "---\nDescription: x\n---\n# T\n\n---\n\nMore\n")
    assert doc.header == {"Description": "x"}
    assert "---" in doc.body


# ============================================================================
# Header Line Parsing Tests
# ============================================================================

def test_malformed_header_lines_are_ignored():
    """Lines not shaped like `Key: value` are skipped, not errors."""
    header = parse_header_lines([
        "Description: Rules for IAM",
        "this line has no key",
        "  indented: value",
        ": no key",
        "Globs: *.json",
    ])
    assert header == {"Description": "Rules for IAM", "Globs": "*.json"}


def test_first_occurrence_wins():
    header = parse_header_lines(["Globs: *.ts", "Globs: *.js"])
    assert header == {"Globs": "*.ts"}


def test_value_keeps_inner_colons():
    header = parse_header_lines(["Description: See: https://example.com/docs"])
    assert header["Description"] == "See: https://example.com/docs"


def test_empty_value_is_present_but_blank():
    header = parse_header_lines(["Description: x", "Globs:   "])
    assert header == {"Description": "x", "Globs": ""}


def test_list_items_joined():
    """YAML-style list items under an empty key become a comma list."""
    header = parse_header_lines([
        "Globs:",
        "  - **/*.ts",
        "  - **/*.tsx",
        "Description: React rules",
    ])
    assert header == {"Globs": "**/*.ts, **/*.tsx", "Description": "React rules"}


def test_list_items_without_key_ignored():
    header = parse_header_lines(["  - orphan item", "Description: x"])
    assert header == {"Description": "x"}


def test_list_ends_at_malformed_line():
    header = parse_header_lines(["Globs:", "  - *.ts", "garbage", "  - *.js"])
    assert header == {"Globs": "*.ts"}


def test_blank_lines_skipped():
    header = parse_header_lines(["", "Description: x", "   ", "Globs: *.md"])
    assert header == {"Description": "x", "Globs": "*.md"}


# ============================================================================
# Heading Tests
# ============================================================================

def test_headings_use_document_line_numbers():
    """Heading lines are 1-based positions in the raw text."""
    doc = parse_document("aws-lambda.mdc", WELL_FORMED)
    headings = doc.headings()

    assert [h.text for h in headings] == ["AWS Lambda", "Handlers"]
    assert [h.level for h in headings] == [1, 2]
    assert headings[0].line == 6
    assert WELL_FORMED.split("\n")[headings[0].line - 1] == "# AWS Lambda"
    assert WELL_FORMED.split("\n")[headings[1].line - 1] == "## Handlers"


def test_headings_exclude_header_block():
    doc = parse_document("no-body.mdc", "---\nDescription: # not a heading\n---\nprose only\n")
    assert doc.headings() == []


def test_section_markers_include_hash_led_lines():
    doc = parse_document("overview.mdc", "---\nDescription: x\n---\n#Overview\n\n## Details\n")
    markers = doc.section_markers()

    assert [(m.text, m.level, m.line) for m in markers] == [("Overview", 1, 4), ("Details", 2, 6)]
    assert [h.text for h in doc.headings()] == ["Details"]


def test_section_markers_skip_code_fences():
    doc = parse_document("fenced.mdc", "---\nDescription: x\n---\n```\n#not a section\n```\n")
    assert doc.section_markers() == []
