"""Configuration loading helpers for sqlgrate."""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping, MutableMapping
from copy import deepcopy
from pathlib import Path
from typing import Any, cast

import yaml
from jsonschema import Draft7Validator

from ..exceptions import ConfigurationError

__all__ = ["ConfigError", "load_config"]

DEFAULTS_PATH = Path(__file__).with_name("defaults.yaml")
SCHEMA_PATH = Path(__file__).with_name("schema.json")
ENV_PREFIX = "SQLGRATE_"
ENV_SEPARATOR = "__"
# Keys under SQLGRATE_ that are read directly rather than mapped into the config tree.
RESERVED_ENV_KEYS = frozenset({"SQLGRATE_DEBUG"})


class ConfigError(ConfigurationError):
    """Raised when configuration loading or validation fails."""


def load_config(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    validate: bool = True,
) -> dict[str, Any]:
    """Load the configuration, optionally layered with a user file.

    The lookup order is:
        1. Packaged defaults in ``defaults.yaml``.
        2. The user YAML file at ``config_path`` when given.
        3. Programmatic overrides supplied via the ``overrides`` mapping.
        4. Environment variables prefixed with ``SQLGRATE_`` using ``__`` as a nesting delimiter.

    The merged mapping is validated against ``schema.json``. The directory that relative
    ``paths.*`` entries are resolved against is stored under ``base_dir``.
    """

    config = _load_yaml_config(DEFAULTS_PATH)
    base_dir = Path.cwd()

    if config_path is not None:
        user_path = Path(config_path).expanduser()
        if not user_path.is_file():
            raise ConfigError(f"Configuration file not found: {user_path}")
        config = _deep_merge(config, _load_yaml_config(user_path))
        base_dir = user_path.resolve().parent

    if overrides:
        config = _deep_merge(config, overrides)

    config = _apply_env_overrides(config)

    if validate:
        _validate_config(config)

    config["base_dir"] = str(base_dir)
    return config


def _load_yaml_config(path: Path) -> dict[str, Any]:
    """Load YAML configuration into a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping in {path}.")
    return deepcopy(data)


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge two dictionaries without mutating the inputs."""
    result: dict[str, Any] = deepcopy(dict(base))
    for key, override_value in overrides.items():
        if (
            key in result
            and isinstance(result[key], Mapping)
            and isinstance(override_value, Mapping)
        ):
            result[key] = _deep_merge(result[key], override_value)
        else:
            result[key] = deepcopy(override_value)
    return result


def _apply_env_overrides(config: Mapping[str, Any]) -> dict[str, Any]:
    """Apply overrides sourced from SQLGRATE_* environment variables.

    Values for keys the schema declares as strings are kept verbatim, so a database
    named ``0123`` or ``yes`` is not turned into a number or a boolean.
    """
    overrides: dict[str, Any] = {}
    schema: dict[str, Any] | None = None
    for raw_key, raw_value in os.environ.items():
        if not raw_key.startswith(ENV_PREFIX) or raw_key in RESERVED_ENV_KEYS:
            continue

        path_tokens = _parse_env_key(raw_key)
        if not path_tokens:
            continue

        if schema is None:
            schema = _load_schema()
        if "string" in _schema_types(schema, path_tokens):
            value: Any = raw_value
        else:
            value = _coerce_env_value(raw_value)
        _set_nested_value(overrides, path_tokens, value)

    if overrides:
        return _deep_merge(config, overrides)
    return deepcopy(dict(config))


def _parse_env_key(env_key: str) -> list[str]:
    """Turn an environment key into lowercase config tokens."""
    raw_path = env_key[len(ENV_PREFIX) :]
    if not raw_path:
        return []
    return [
        token.strip().lower().replace("-", "_")
        for token in raw_path.split(ENV_SEPARATOR)
        if token.strip()
    ]


def _set_nested_value(target: MutableMapping[str, Any], keys: Iterable[str], value: Any) -> None:
    """Set a value deeply in a nested mapping, creating dictionaries as needed."""
    keys = list(keys)
    if not keys:
        return

    current: MutableMapping[str, Any] = target
    for key in keys[:-1]:
        existing = current.get(key)
        if not isinstance(existing, MutableMapping):
            existing = {}
            current[key] = existing
        current = existing
    current[keys[-1]] = value


def _schema_types(schema: Mapping[str, Any], keys: Iterable[str]) -> set[str]:
    """Return the JSON types the schema allows at ``keys`` (empty when undeclared)."""
    node: Any = schema
    for key in keys:
        properties = node.get("properties") if isinstance(node, Mapping) else None
        if not isinstance(properties, Mapping) or key not in properties:
            return set()
        node = properties[key]
    declared = node.get("type") if isinstance(node, Mapping) else None
    if isinstance(declared, str):
        return {declared}
    if isinstance(declared, list):
        return {str(item) for item in declared}
    return set()


def _coerce_env_value(raw_value: str) -> Any:
    """Best-effort conversion from string to Python types using YAML parsing."""
    if raw_value == "":
        return ""
    try:
        parsed = yaml.safe_load(raw_value)
    except yaml.YAMLError:
        return raw_value
    return parsed


def _load_schema() -> dict[str, Any]:
    """Load the JSON schema definition for configuration validation."""
    with SCHEMA_PATH.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ConfigError("Configuration schema must be a JSON object.")
    return cast(dict[str, Any], data)


def _validate_config(config: Mapping[str, Any]) -> None:
    """Validate the configuration against the JSON schema."""
    schema = _load_schema()
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(config), key=lambda err: list(err.path))
    if not errors:
        return

    formatted = []
    for error in errors:
        path = ".".join(str(piece) for piece in error.path) or "<root>"
        formatted.append(f"- {path}: {error.message}")

    error_message = "\n".join(formatted)
    raise ConfigError(f"Configuration validation failed:\n{error_message}") from errors[0]
