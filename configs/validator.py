"""Configuration validation using JSON Schema."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

import jsonschema
import yaml
from jsonschema import Draft7Validator, validators

from exceptions import ConfigValidationError
from log_config.logger import get_logger

logger = get_logger(__name__)

SORT_MODES = ("alpha", "recent", "usage")
MAX_SIZE_POLICIES = ("preserve", "reconcile")

# JSON Schema for default.yaml configuration
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "state": {
            "type": "object",
            "default": {},
            "properties": {
                "state_file": {
                    "type": "string",
                    "minLength": 1,
                    "default": "~/.local/share/themekeeper/state.json",
                },
                "async_writes": {"type": "boolean", "default": True},
            },
        },
        "history": {
            "type": "object",
            "default": {},
            "properties": {
                "max_size": {"type": "integer", "minimum": 1, "maximum": 10000, "default": 100},
                "max_size_policy": {
                    "type": "string",
                    "enum": list(MAX_SIZE_POLICIES),
                    "default": "preserve",
                },
            },
        },
        "bookmarks": {
            "type": "object",
            "default": {},
            "properties": {
                "max_bookmarks": {"type": "integer", "minimum": 1, "maximum": 1000, "default": 50},
            },
        },
        "recent": {
            "type": "object",
            "default": {},
            "properties": {
                "max_recent": {"type": "integer", "minimum": 1, "maximum": 1000, "default": 12},
            },
        },
        "themes": {
            "type": "object",
            "default": {},
            "properties": {
                "default_theme": {"type": ["string", "null"], "default": None},
                "sort_mode": {"type": "string", "enum": list(SORT_MODES), "default": "alpha"},
                "aliases": {
                    "type": "object",
                    "additionalProperties": {"type": "string", "minLength": 1},
                    "default": {},
                },
                "filetype_themes": {
                    "type": "object",
                    "additionalProperties": {"type": "string", "minLength": 1},
                    "default": {},
                },
            },
        },
    },
}


def extend_with_default(validator_class):
    """Extend JSON Schema validator to set default values."""
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if validator.is_type(instance, "object"):
            for prop, subschema in properties.items():
                if "default" in subschema:
                    # Copy mutable defaults so the schema is never shared
                    default = subschema["default"]
                    if isinstance(default, dict):
                        default = dict(default)
                    instance.setdefault(prop, default)

        for error in validate_properties(validator, properties, instance, schema):
            yield error

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultValidatingValidator = extend_with_default(Draft7Validator)


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration against JSON Schema.

    Missing sections and keys are filled in place with schema defaults.

    Args:
        config: Configuration dictionary

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    try:
        validator = DefaultValidatingValidator(CONFIG_SCHEMA)
        errors = list(validator.iter_errors(config))

        if errors:
            error_messages = []
            for error in errors:
                path = " -> ".join(str(p) for p in error.path) if error.path else "root"
                error_messages.append(f"{path}: {error.message}")

            logger.error(f"Configuration validation failed with {len(errors)} errors")
            for msg in error_messages:
                logger.error(f"  - {msg}")

            raise ConfigValidationError(
                f"Configuration validation failed with {len(errors)} error(s). See logs for details.",
                validation_errors=error_messages,
            )

        logger.debug("Configuration validation passed")

    except jsonschema.exceptions.SchemaError as e:
        logger.error(f"Invalid schema: {e}")
        raise ConfigValidationError(f"Invalid schema definition: {e}")


def validate_config_file(config_path: Union[str, Path]) -> None:
    """Validate a YAML configuration file.

    Args:
        config_path: Path to configuration file

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigValidationError(f"Configuration file not found: {config_path}")

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Failed to parse YAML: {e}")

    validate_config(config if config is not None else {})
