"""Operator configuration loading."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigurationError
from .models import OperatorConfig

ENV_PREFIX = "PGMANIFEST_"

_FIELDS = {f.name: f for f in dataclasses.fields(OperatorConfig)}


def _coerce(key: str, value: Any) -> Any:
    if key == "allowed_source_ranges":
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value)
        raise ConfigurationError("allowed_source_ranges must be a list of CIDR strings")
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigurationError(f"Configuration key {key} must be a scalar")
    return str(value)


def build_operator_config(
    values: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> OperatorConfig:
    unknown = sorted(set(values) - set(_FIELDS))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    merged: dict[str, Any] = {key: _coerce(key, value) for key, value in values.items()}
    env = os.environ if environ is None else environ
    for key in _FIELDS:
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key in env:
            merged[key] = _coerce(key, env[env_key])

    if "docker_image" not in merged:
        merged["docker_image"] = ""
    return OperatorConfig(**merged)


def load_operator_config(
    path: Path | None,
    environ: Mapping[str, str] | None = None,
) -> OperatorConfig:
    if path is None:
        return build_operator_config({}, environ)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    yaml = YAML(typ="safe")
    try:
        parsed = yaml.load(path.read_text(encoding="utf-8"))
    except (YAMLError, OSError) as exc:
        raise ConfigurationError(f"Invalid config file '{path}': {exc}") from exc

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ConfigurationError("Config file must contain a YAML mapping at the root.")
    return build_operator_config(parsed, environ)


def require(config: OperatorConfig, key: str) -> str:
    value = getattr(config, key)
    if not value:
        raise ConfigurationError(f"Operator configuration value '{key}' is required")
    return value
