#!/usr/bin/env python3
"""
Reference Graph Resolver

Rule bodies point at other rule files with tokens such as `@aws-iam.mdc`.
This module extracts those tokens and resolves them against the set of
known document identifiers, flagging the ones that point nowhere.

The known set must be complete before any document is checked: a reference
to a document discovered later is still a valid reference.
"""

import re
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List

from rule_document import RuleDocument
from run_report import Diagnostic, DANGLING_REFERENCE


DEFAULT_SIGIL = "@"
DEFAULT_EXTENSION = ".mdc"


@dataclass(frozen=True)
class Reference:
    """
    One reference token found in a document body.

    Attributes:
        source_document: Identifier of the referencing document
        target_identifier: Referenced identifier (token without the sigil)
        line: 1-based line number in the source document
    """
    source_document: str
    target_identifier: str
    line: int


def reference_pattern(sigil: str = DEFAULT_SIGIL, extension: str = DEFAULT_EXTENSION) -> re.Pattern:
    """
    Build the regex recognising reference tokens.

    A sigil preceded by a word character or another sigil (as in an e-mail
    address) does not start a token, and the extension must not run on into
    further word characters.

    Example:
        >>> pattern = reference_pattern()
        >>> [m.group(1) for m in pattern.finditer("see @aws-iam.mdc and me@host.mdc")]
        ['aws-iam.mdc']
    """
    s = re.escape(sigil)
    return re.compile(
        rf'(?<![\w{s}]){s}([A-Za-z0-9_-]+{re.escape(extension)})(?![\w-])'
    )


def extract_references(
    document: RuleDocument,
    sigil: str = DEFAULT_SIGIL,
    extension: str = DEFAULT_EXTENSION,
) -> List[Reference]:
    """
    Scan a document body left to right for reference tokens.

    Args:
        document: Parsed rule document
        sigil: Marker character introducing a reference
        extension: Required rule-file extension

    Returns:
        References in order of occurrence
    """
    body = document.body
    references = []

    for match in reference_pattern(sigil, extension).finditer(body):
        line = document.body_line + body.count('\n', 0, match.start())
        references.append(Reference(
            source_document=document.identifier,
            target_identifier=match.group(1),
            line=line,
        ))

    return references


def dangling_diagnostics(references: Iterable[Reference], known_identifiers: AbstractSet[str]) -> List[Diagnostic]:
    """Turn unresolved references into DanglingReference diagnostics."""
    return [
        Diagnostic(
            document_identifier=ref.source_document,
            kind=DANGLING_REFERENCE,
            message=f"References non-existent rule file: {ref.target_identifier}",
            line=ref.line,
        )
        for ref in references
        if ref.target_identifier not in known_identifiers
    ]


def check_references(
    document: RuleDocument,
    known_identifiers: AbstractSet[str],
    sigil: str = DEFAULT_SIGIL,
    extension: str = DEFAULT_EXTENSION,
) -> List[Diagnostic]:
    """
    Flag every reference whose target is not a known identifier.

    Args:
        document: Parsed rule document
        known_identifiers: Complete set of identifiers references may point at
        sigil: Marker character introducing a reference
        extension: Required rule-file extension

    Returns:
        One DanglingReference diagnostic per unresolved occurrence
    """
    return dangling_diagnostics(extract_references(document, sigil, extension), known_identifiers)


class ReferenceGraph:
    """
    Directed graph of references between the documents of one run.

    Edges are added per document; resolution always happens against the
    known identifier snapshot handed in at construction time.
    """

    def __init__(self, known_identifiers: Iterable[str], sigil: str = DEFAULT_SIGIL, extension: str = DEFAULT_EXTENSION):
        self.known_identifiers = frozenset(known_identifiers)
        self.sigil = sigil
        self.extension = extension
        self.references: List[Reference] = []

    def add_document(self, document: RuleDocument) -> List[Reference]:
        refs = extract_references(document, self.sigil, self.extension)
        self.references.extend(refs)
        return refs

    def check_document(self, document: RuleDocument) -> List[Diagnostic]:
        """Record a document's references and return its dangling ones."""
        return dangling_diagnostics(self.add_document(document), self.known_identifiers)

    def dangling(self) -> List[Reference]:
        return [r for r in self.references if r.target_identifier not in self.known_identifiers]

    def referrers(self, target: str) -> List[str]:
        """Identifiers of documents referencing target, without duplicates."""
        seen: Dict[str, None] = {}
        for ref in self.references:
            if ref.target_identifier == target:
                seen.setdefault(ref.source_document, None)
        return list(seen)

    def edges(self) -> Dict[str, List[str]]:
        """Adjacency lists, source -> unique targets in order of first occurrence."""
        adjacency: Dict[str, List[str]] = {}
        for ref in self.references:
            targets = adjacency.setdefault(ref.source_document, [])
            if ref.target_identifier not in targets:
                targets.append(ref.target_identifier)
        return adjacency
