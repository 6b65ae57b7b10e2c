#!/usr/bin/env python3
"""
Run Report - Diagnostics and per-run aggregation for rule-file validation.

This module defines the structured Diagnostic emitted by every check and the
RunReport that merges per-document results into a single pass/fail verdict.

Key Features:
- Diagnostic dataclass with console formatting
- Per-document results in discovery order
- Overall success flag mapped to a process exit code
- Deterministic dict/JSON rendering (same input, same bytes)
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List


# Diagnostic kinds
MISSING_HEADER_BLOCK = "MissingHeaderBlock"
UNTERMINATED_HEADER_BLOCK = "UnterminatedHeaderBlock"
MISSING_REQUIRED_KEY = "MissingRequiredKey"
EMPTY_REQUIRED_VALUE = "EmptyRequiredValue"
DANGLING_REFERENCE = "DanglingReference"
EMPTY_BODY_CONTENT = "EmptyBodyContent"

DIAGNOSTIC_KINDS = (
    MISSING_HEADER_BLOCK,
    UNTERMINATED_HEADER_BLOCK,
    MISSING_REQUIRED_KEY,
    EMPTY_REQUIRED_VALUE,
    DANGLING_REFERENCE,
    EMPTY_BODY_CONTENT,
)


@dataclass(frozen=True)
class Diagnostic:
    """
    One validation failure for one rule document.

    Attributes:
        document_identifier: Identifier of the document (path relative to the rules root)
        kind: One of DIAGNOSTIC_KINDS
        message: Human-readable description
        line: 1-based line number (0 for document-level findings)
        severity: "error" or "warn"; any diagnostic makes the document invalid
    """
    document_identifier: str
    kind: str
    message: str
    line: int = 0
    severity: str = "error"

    def format_error(self) -> str:
        """
        Format diagnostic for console output.

        Example:
            [ERROR] orphan.mdc:7: DanglingReference
              References non-existent rule file: missing.mdc
        """
        severity_tag = f"[{self.severity.upper()}]"
        location = f"{self.document_identifier}:{self.line}" if self.line > 0 else self.document_identifier
        return f"{severity_tag} {location}: {self.kind}\n  {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document": self.document_identifier,
            "kind": self.kind,
            "message": self.message,
            "line": self.line,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class DocumentResult:
    """Diagnostics collected for a single document."""
    identifier: str
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.diagnostics


@dataclass(frozen=True)
class RunReport:
    """
    Aggregate result of validating one document set.

    Documents keep the order they were discovered in. The report is created
    fresh for every run and never persisted.
    """
    results: List[DocumentResult]

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [d for result in self.results for d in result.diagnostics]

    @property
    def valid_count(self) -> int:
        return sum(1 for result in self.results if result.valid)

    @property
    def invalid_count(self) -> int:
        return len(self.results) - self.valid_count

    @property
    def success(self) -> bool:
        return self.invalid_count == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def result_for(self, identifier: str) -> DocumentResult:
        for result in self.results:
            if result.identifier == identifier:
                return result
        raise KeyError(identifier)

    def format_lines(self) -> List[str]:
        """
        Render per-document pass/fail lines followed by a summary.

        Returns:
            List of output lines (no trailing newlines)
        """
        lines = []
        for result in self.results:
            if result.valid:
                lines.append(f"✓ {result.identifier}")
                continue
            lines.append(f"✗ {result.identifier}")
            for diagnostic in result.diagnostics:
                location = f"line {diagnostic.line}: " if diagnostic.line > 0 else ""
                lines.append(f"  - {location}{diagnostic.message}")

        lines.append("")
        lines.append("Validation Summary:")
        lines.append(f"✓ {self.valid_count} valid files")
        lines.append(f"✗ {self.invalid_count} files with errors")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "valid": self.valid_count,
            "invalid": self.invalid_count,
            "documents": [
                {
                    "identifier": result.identifier,
                    "valid": result.valid,
                    "diagnostics": [d.to_dict() for d in result.diagnostics],
                }
                for result in self.results
            ],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)


def aggregate(per_document: List[tuple]) -> RunReport:
    """
    Merge per-document diagnostic lists into a RunReport.

    Args:
        per_document: (identifier, diagnostics) pairs in discovery order

    Returns:
        RunReport preserving the input order
    """
    return RunReport(results=[
        DocumentResult(identifier=identifier, diagnostics=list(diagnostics))
        for identifier, diagnostics in per_document
    ])
