#!/usr/bin/env python3
"""
Validator configuration.

Settings live in a YAML file (conventionally rules-validator.yaml) and are
checked against CONFIG_SCHEMA before use. Every key is optional;
missing keys take the defaults below. A relative rules_root is resolved
against the directory of the configuration file, never the working
directory.

Example:
    rules_root: .cursor/rules
    required_keys: [Description, Globs]
    pattern_list_key: Globs
    external_identifiers:
      - shared-conventions.mdc
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from header_schema import HeaderSchema, DEFAULT_REQUIRED_KEYS, DEFAULT_PATTERN_LIST_KEY
from reference_graph import DEFAULT_SIGIL, DEFAULT_EXTENSION
from rule_document import DEFAULT_DELIMITER


CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Rule validator configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "rules_root": {
            "type": "string",
            "minLength": 1,
        },
        "extension": {
            "type": "string",
            "pattern": r"^\.[A-Za-z0-9]+$",
        },
        "delimiter": {
            "type": "string",
            "minLength": 1,
            "pattern": r"^\S+$",
        },
        "reference_sigil": {
            "type": "string",
            "minLength": 1,
            "maxLength": 1,
            "pattern": r"^[^\w\s]$",
        },
        "required_keys": {
            "type": "array",
            "minItems": 1,
            "uniqueItems": True,
            "items": {
                "type": "string",
                "pattern": r"^[A-Za-z_][\w.-]*$",
            },
        },
        "pattern_list_key": {
            "type": ["string", "null"],
            "pattern": r"^[A-Za-z_][\w.-]*$",
        },
        "exclude": {
            "type": "array",
            "uniqueItems": True,
            "items": {"type": "string", "minLength": 1},
        },
        "external_identifiers": {
            "type": "array",
            "uniqueItems": True,
            "items": {"type": "string", "minLength": 1},
        },
    },
}


class ConfigError(Exception):
    """Raised when the validator configuration cannot be loaded or is invalid."""
    pass


@dataclass(frozen=True)
class ValidatorConfig:
    """
    Resolved validator settings.

    Attributes:
        rules_root: Directory holding the rule files (None until configured)
        extension: Rule-file extension, also required at the end of reference tokens
        delimiter: Header block delimiter line
        reference_sigil: Character introducing a reference token
        required_keys: Header keys every rule must define
        pattern_list_key: Required key holding the glob list, or None
        exclude: Glob patterns (relative to rules_root) skipped during discovery
        external_identifiers: Identifiers that resolve without being on disk
    """
    rules_root: Optional[Path] = None
    extension: str = DEFAULT_EXTENSION
    delimiter: str = DEFAULT_DELIMITER
    reference_sigil: str = DEFAULT_SIGIL
    required_keys: Tuple[str, ...] = DEFAULT_REQUIRED_KEYS
    pattern_list_key: Optional[str] = DEFAULT_PATTERN_LIST_KEY
    exclude: Tuple[str, ...] = ()
    external_identifiers: Tuple[str, ...] = ()

    @property
    def header_schema(self) -> HeaderSchema:
        return HeaderSchema(required_keys=self.required_keys, pattern_list_key=self.pattern_list_key)

    def with_rules_root(self, rules_root: Path) -> 'ValidatorConfig':
        return replace(self, rules_root=Path(rules_root))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules_root": str(self.rules_root) if self.rules_root is not None else None,
            "extension": self.extension,
            "delimiter": self.delimiter,
            "reference_sigil": self.reference_sigil,
            "required_keys": list(self.required_keys),
            "pattern_list_key": self.pattern_list_key,
            "exclude": list(self.exclude),
            "external_identifiers": list(self.external_identifiers),
        }


def config_from_dict(data: Any, base_dir: Optional[Path] = None) -> ValidatorConfig:
    """
    Build a ValidatorConfig from parsed configuration data.

    Args:
        data: Mapping loaded from YAML
        base_dir: Directory a relative rules_root is resolved against

    Returns:
        ValidatorConfig

    Raises:
        ConfigError: If the data does not satisfy CONFIG_SCHEMA
    """
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}"
            for e in errors
        )
        raise ConfigError(f"Invalid configuration: {details}")

    config = ValidatorConfig()
    kwargs: Dict[str, Any] = {}

    for key in ("extension", "delimiter", "reference_sigil"):
        if key in data:
            kwargs[key] = data[key]

    for key in ("required_keys", "exclude", "external_identifiers"):
        if key in data:
            kwargs[key] = tuple(data[key])

    if "pattern_list_key" in data:
        kwargs["pattern_list_key"] = data["pattern_list_key"]

    if "rules_root" in data:
        rules_root = Path(data["rules_root"])
        if not rules_root.is_absolute() and base_dir is not None:
            rules_root = base_dir / rules_root
        kwargs["rules_root"] = rules_root

    config = replace(config, **kwargs)

    if config.pattern_list_key is not None and config.pattern_list_key not in config.required_keys:
        raise ConfigError(
            f"Invalid configuration: pattern_list_key '{config.pattern_list_key}' "
            f"is not one of required_keys ({', '.join(config.required_keys)})"
        )

    return config


def load_config(config_path: Path) -> ValidatorConfig:
    """
    Load and validate a YAML configuration file.

    Args:
        config_path: Path to the YAML file

    Returns:
        ValidatorConfig with rules_root resolved against the file's directory

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or fails the schema
    """
    config_path = Path(config_path)

    try:
        content = config_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigError(f"Cannot read configuration {config_path}: {e}")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {config_path}: {e}")

    if data is None:
        data = {}

    return config_from_dict(data, base_dir=config_path.parent)
