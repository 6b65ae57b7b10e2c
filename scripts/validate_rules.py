#!/usr/bin/env python3
"""Rule-file validation tool.

Validates the rule files under a rules root in two passes: every document
is discovered and named first, then each one is parsed and checked for
header schema conformance, reference integrity and body content. The exit
code is non-zero iff any document is invalid.
"""

import argparse
import fnmatch
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from content_check import check_content
from header_schema import check_header
from reference_graph import ReferenceGraph
from rule_document import HeaderBlockError, parse_document
from run_report import Diagnostic, RunReport, aggregate
from validator_config import ConfigError, ValidatorConfig, load_config


CHECK_HEADERS = "headers"
CHECK_REFERENCES = "references"
CHECK_CONTENT = "content"
ALL_CHECKS = (CHECK_HEADERS, CHECK_REFERENCES, CHECK_CONTENT)


def document_identifier(path: Path, rules_root: Path) -> str:
    """Identifier of a rule file: its path relative to the rules root, POSIX style."""
    return path.relative_to(rules_root).as_posix()


def discover_rule_files(rules_root: Path, extension: str, exclude: Sequence[str] = ()) -> List[Path]:
    """Find all rule files under rules_root, skipping excluded patterns.

    Args:
        rules_root: Directory holding the rule files
        extension: Rule-file extension (e.g. ".mdc")
        exclude: Glob patterns matched against identifiers

    Returns:
        Paths sorted by identifier
    """
    found = []
    for path in rules_root.glob(f'**/*{extension}'):
        if not path.is_file():
            continue

        identifier = document_identifier(path, rules_root)
        if any(fnmatch.fnmatch(identifier, pattern) for pattern in exclude):
            continue

        found.append(path)

    return sorted(found, key=lambda p: document_identifier(p, rules_root))


def read_rule_file(path: Path) -> str:
    """Read a rule file as UTF-8, replacing undecodable bytes with U+FFFD."""
    return path.read_bytes().decode('utf-8', errors='replace')


def load_documents(rules_root: Path, extension: str, exclude: Sequence[str] = ()) -> List[Tuple[str, str]]:
    """Read every rule file under rules_root.

    Returns:
        (identifier, raw_text) pairs in discovery order
    """
    return [
        (document_identifier(path, rules_root), read_rule_file(path))
        for path in discover_rule_files(rules_root, extension, exclude)
    ]


def validate(
    documents: Iterable[Tuple[str, str]],
    config: Optional[ValidatorConfig] = None,
    known_identifiers: Optional[Iterable[str]] = None,
    checks: Sequence[str] = ALL_CHECKS,
) -> RunReport:
    """Validate a document set.

    Args:
        documents: (identifier, raw_text) pairs in discovery order
        config: Validator settings (defaults when None)
        known_identifiers: Identifiers references may resolve to. Defaults to
            the identifiers of `documents`; pass the full tree's identifiers
            when validating a subset of it.
        checks: Checks to run after parsing (subset of ALL_CHECKS)

    Returns:
        RunReport with one result per document, in input order

    Raises:
        ValueError: If two documents share an identifier
    """
    config = config or ValidatorConfig()
    documents = list(documents)

    # Pass 1: name every document before any reference is resolved
    identifiers = [identifier for identifier, _ in documents]
    seen = set()
    for identifier in identifiers:
        if identifier in seen:
            raise ValueError(f"Duplicate document identifier: {identifier}")
        seen.add(identifier)

    known = set(identifiers if known_identifiers is None else known_identifiers)
    known.update(config.external_identifiers)

    graph = ReferenceGraph(known, sigil=config.reference_sigil, extension=config.extension)
    schema = config.header_schema

    # Pass 2: per-document checks
    results: List[Tuple[str, List[Diagnostic]]] = []
    for identifier, raw_text in documents:
        try:
            document = parse_document(identifier, raw_text, config.delimiter)
        except HeaderBlockError as e:
            results.append((identifier, [e.to_diagnostic()]))
            continue

        diagnostics: List[Diagnostic] = []
        if CHECK_HEADERS in checks:
            diagnostics.extend(check_header(document, schema))
        if CHECK_REFERENCES in checks:
            diagnostics.extend(graph.check_document(document))
        if CHECK_CONTENT in checks:
            diagnostics.extend(check_content(document))

        results.append((identifier, diagnostics))

    return aggregate(results)


def resolve_config(args) -> ValidatorConfig:
    """Build the effective configuration from --config and --rules-root.

    Raises:
        ConfigError: If the configuration is invalid or no rules root is set
    """
    config = load_config(Path(args.config)) if args.config else ValidatorConfig()

    if args.rules_root:
        config = config.with_rules_root(Path(args.rules_root))

    if config.rules_root is None:
        raise ConfigError("No rules root configured (use --rules-root or rules_root in --config)")

    return config


def select_documents(
    documents: List[Tuple[str, str]], paths: Sequence[str]
) -> Tuple[List[Tuple[str, str]], List[str]]:
    """Restrict documents to the requested identifiers.

    Returns:
        (selected documents, requested identifiers that were not found)
    """
    if not paths:
        return documents, []

    requested = {Path(p).as_posix() for p in paths}
    available = {identifier for identifier, _ in documents}
    missing = sorted(requested - available)
    selected = [(identifier, text) for identifier, text in documents if identifier in requested]
    return selected, missing


def run_checks(args, checks: Sequence[str]) -> int:
    """Run a validation pass and print the report.

    Args:
        args: Command-line arguments from argparse
        checks: Checks to run after parsing

    Returns:
        Exit code: 0 on success, 1 on errors
    """
    try:
        config = resolve_config(args)
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if args.show_effective_config:
        print("=== Effective Validator Configuration ===")
        print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))
        return 0

    rules_root = config.rules_root
    if not rules_root.is_dir():
        print(f"[ERROR] Rules directory not found at {rules_root}", file=sys.stderr)
        return 1

    documents = load_documents(rules_root, config.extension, config.exclude)
    if not documents:
        print(f"[WARN] No rule files found under {rules_root}")
        return 0

    selected, missing = select_documents(documents, args.paths)
    if missing:
        for identifier in missing:
            print(f"[ERROR] Not a rule file under {rules_root}: {identifier}", file=sys.stderr)
        return 1

    # References resolve against the whole tree even when a subset is validated
    report = validate(
        selected,
        config,
        known_identifiers=[identifier for identifier, _ in documents],
        checks=checks,
    )

    if args.json:
        print(report.to_json())
        return report.exit_code

    print(f"Validating rules in {rules_root}...")
    print(f"Found {len(selected)} rule files\n")
    for line in report.format_lines():
        print(line)

    if report.success:
        print("\nAll rules are valid!")
    else:
        for diagnostic in report.diagnostics:
            print(diagnostic.format_error(), file=sys.stderr)

    return report.exit_code


def validate_all(args) -> int:
    """Run every check: header schema, references and body content."""
    return run_checks(args, ALL_CHECKS)


def validate_headers(args) -> int:
    """Check header blocks against the header schema."""
    return run_checks(args, (CHECK_HEADERS,))


def validate_references(args) -> int:
    """Check that every reference token resolves to a rule file."""
    return run_checks(args, (CHECK_REFERENCES,))


def validate_content(args) -> int:
    """Check that every rule body has at least one section marker."""
    return run_checks(args, (CHECK_CONTENT,))


def list_references(args) -> int:
    """Print the reference graph of the rules tree.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 if every reference resolves, 1 otherwise
    """
    try:
        config = resolve_config(args)
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    rules_root = config.rules_root
    if not rules_root.is_dir():
        print(f"[ERROR] Rules directory not found at {rules_root}", file=sys.stderr)
        return 1

    documents = load_documents(rules_root, config.extension, config.exclude)
    known = {identifier for identifier, _ in documents} | set(config.external_identifiers)
    graph = ReferenceGraph(known, sigil=config.reference_sigil, extension=config.extension)

    for identifier, raw_text in documents:
        try:
            graph.add_document(parse_document(identifier, raw_text, config.delimiter))
        except HeaderBlockError as e:
            print(f"[WARN] {identifier}: skipped ({e.kind})")

    if args.target:
        referrers = graph.referrers(args.target)
        print(f"{args.target} is referenced by {len(referrers)} rule files")
        for identifier in referrers:
            print(f"  {identifier}")
        return 0

    for source, targets in graph.edges().items():
        print(source)
        for target in targets:
            marker = "" if target in known else "  [DANGLING]"
            print(f"  -> {target}{marker}")

    dangling = graph.dangling()
    if dangling:
        print(f"\n[ERROR] {len(dangling)} dangling references", file=sys.stderr)
        return 1

    print(f"\nReference check passed: {len(graph.references)} references")
    return 0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--config',
        help='YAML configuration file'
    )
    parser.add_argument(
        '--rules-root',
        help='Directory holding the rule files (overrides rules_root in --config)'
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the validation tool."""
    parser = argparse.ArgumentParser(
        description="Validate IDE assistant rule files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s validate-all --rules-root .cursor/rules
  %(prog)s validate-all --config rules-validator.yaml aws-lambda.mdc
  %(prog)s list-references --config rules-validator.yaml --target aws-iam.mdc
        """
    )

    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        help='Validation command to run'
    )

    check_commands = [
        ('validate-all', 'Run all checks (header schema, references, content)'),
        ('validate-headers', 'Validate header blocks against the header schema'),
        ('validate-references', 'Validate references between rule files'),
        ('validate-content', 'Validate that rule bodies contain sections'),
    ]

    for name, help_text in check_commands:
        subparser = subparsers.add_parser(name, help=help_text)
        add_common_arguments(subparser)
        subparser.add_argument(
            'paths',
            nargs='*',
            help='Identifiers (relative to the rules root) to validate; defaults to all'
        )
        subparser.add_argument(
            '--json',
            action='store_true',
            help='Print the run report as JSON'
        )
        subparser.add_argument(
            '--show-effective-config',
            action='store_true',
            help='Show resolved configuration and exit (debug mode)'
        )

    parser_refs = subparsers.add_parser(
        'list-references',
        help='Print the reference graph between rule files'
    )
    add_common_arguments(parser_refs)
    parser_refs.add_argument(
        '--target',
        help='Only list the rule files referencing this identifier'
    )

    args = parser.parse_args(argv)

    handlers: Dict[str, Callable] = {
        'validate-all': validate_all,
        'validate-headers': validate_headers,
        'validate-references': validate_references,
        'validate-content': validate_content,
        'list-references': list_references,
    }

    handler = handlers.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
