#!/usr/bin/env python3
"""
Markdown Section Indexer

Parses rule-file bodies with markdown-it-py and indexes their section
markers. A rule body is expected to be organised in sections; the section
index is what the content sanity check inspects.

Key Features:
- Parse markdown to AST using markdown-it-py
- Extract ATX and setext headings with level and line number
- Treat a top-level paragraph line starting with '#' (e.g. "#Overview") as a
  section marker too
- Ignore '#' characters inside code fences and mid-line text
"""

from typing import List, Optional
from dataclasses import dataclass
from markdown_it import MarkdownIt
from markdown_it.token import Token


@dataclass(frozen=True)
class HeadingInfo:
    """
    One heading found in a markdown text.

    Attributes:
        text: Heading text
        level: Heading level (1 for H1, 2 for H2, ...)
        line: Line number within the parsed text (0-based)
    """
    text: str
    level: int
    line: int


_md = MarkdownIt("commonmark")


def parse_markdown(text: str) -> List[Token]:
    """
    Parse markdown text to AST tokens.

    Example:
        >>> tokens = parse_markdown("# Title\\n\\nParagraph text.")
        >>> tokens[0].type
        'heading_open'
    """
    return _md.parse(text)


def extract_headings(tokens: List[Token]) -> List[HeadingInfo]:
    """
    Extract all headings from a markdown AST, in document order.

    Args:
        tokens: Markdown AST tokens from parse_markdown()

    Returns:
        List of HeadingInfo objects

    Example:
        >>> tokens = parse_markdown("# Title\\n\\n```\\n# not a heading\\n```\\n\\n## Usage")
        >>> [h.text for h in extract_headings(tokens)]
        ['Title', 'Usage']
    """
    headings: List[HeadingInfo] = []
    pending: Optional[Token] = None

    for token in tokens:
        if token.type == "heading_open":
            pending = token
        elif token.type == "inline" and pending is not None:
            headings.append(HeadingInfo(
                text=token.content,
                level=int(pending.tag[1]),
                line=pending.map[0] if pending.map else 0,
            ))
            pending = None

    return headings


def extract_hash_lines(tokens: List[Token]) -> List[HeadingInfo]:
    """
    Extract top-level paragraph lines that start with '#'.

    CommonMark needs a space after the hashes for a heading; rule authors
    often write "#Overview" anyway. Level is the number of leading hashes.

    Example:
        >>> [(h.text, h.line) for h in extract_hash_lines(parse_markdown("intro\\n#Overview\\n"))]
        [('Overview', 1)]
    """
    found: List[HeadingInfo] = []
    paragraph: Optional[Token] = None

    for token in tokens:
        if token.type == "paragraph_open":
            paragraph = token if token.level == 0 else None
        elif token.type == "inline" and paragraph is not None:
            start = paragraph.map[0] if paragraph.map else 0
            for offset, line in enumerate(token.content.split('\n')):
                line = line.strip()
                if not line.startswith('#'):
                    continue
                marker = line.lstrip('#')
                found.append(HeadingInfo(
                    text=marker.strip(),
                    level=len(line) - len(marker),
                    line=start + offset,
                ))
            paragraph = None

    return found


def extract_section_markers(tokens: List[Token]) -> List[HeadingInfo]:
    """Headings and '#'-led paragraph lines, ordered by line."""
    return sorted(
        extract_headings(tokens) + extract_hash_lines(tokens),
        key=lambda h: h.line,
    )
