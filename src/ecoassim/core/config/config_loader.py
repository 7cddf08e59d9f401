# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 ecoassim developers

"""
Configuration loading for ecoassim.

Loading precedence (highest to lowest):
1. Programmatic / CLI overrides
2. Environment variables (ECOASSIM_*)
3. Config file (YAML)
4. Defaults from the Pydantic models

Both flat (upper-case keys such as ``PF_ENSEMBLE_SIZE``) and nested
(``particle_filter: {ensemble_size: ...}``) YAML layouts are accepted.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from ecoassim.core.exceptions import ConfigurationError
from .models import (
    EcoAssimConfig,
    ObservationConfig,
    ParticleFilterConfig,
    PriorConfig,
)

ENV_PREFIX = "ECOASSIM_"

SECTIONS: Dict[str, type] = {
    'priors': PriorConfig,
    'observations': ObservationConfig,
    'particle_filter': ParticleFilterConfig,
}


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    use_env: bool = True,
) -> EcoAssimConfig:
    """
    Load and validate configuration.

    Args:
        path: Path to configuration YAML file. If None, defaults are used.
        overrides: Flat or nested overrides applied last.
        use_env: Whether to apply ECOASSIM_* environment variables.

    Returns:
        Validated EcoAssimConfig instance.

    Raises:
        ConfigurationError: If the file cannot be parsed or validation fails.
        FileNotFoundError: If the config file is missing.
    """
    nested: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        try:
            with open(path, "r") as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")
        nested = _to_nested(file_config)

    if use_env:
        env_overrides = _load_env_overrides()
        if env_overrides:
            nested = _deep_merge(nested, _to_nested(env_overrides))

    if overrides:
        nested = _deep_merge(nested, _to_nested(dict(overrides)))

    try:
        return EcoAssimConfig(**nested)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e


def _load_env_overrides() -> Dict[str, Any]:
    """
    Load configuration overrides from environment variables.

    Examples:
        ECOASSIM_PF_SEED=42 -> PF_SEED: 42
        ECOASSIM_OBS_SD_FLOOR=0.5 -> OBS_SD_FLOOR: 0.5
    """
    env_overrides = {}
    for env_key, env_value in os.environ.items():
        if env_key.startswith(ENV_PREFIX):
            env_overrides[env_key[len(ENV_PREFIX):]] = env_value
    return env_overrides


def _section_aliases(model: type) -> Dict[str, str]:
    """Map upper-case aliases of a section model to its field names."""
    aliases = {}
    for name, field in model.model_fields.items():
        if field.alias:
            aliases[field.alias.upper()] = name
    return aliases


def _to_nested(config: Dict[str, Any]) -> Dict[str, Any]:
    """Route flat upper-case keys into their section; keep nested keys as they are."""
    nested: Dict[str, Any] = {}
    top_aliases = _section_aliases(EcoAssimConfig)
    section_aliases = {section: _section_aliases(model) for section, model in SECTIONS.items()}

    for key, value in config.items():
        if key in SECTIONS and isinstance(value, Mapping):
            nested = _deep_merge(nested, {key: dict(value)})
            continue

        upper = str(key).upper()
        if upper in top_aliases:
            nested[top_aliases[upper]] = value
            continue

        for section, aliases in section_aliases.items():
            if upper in aliases:
                nested.setdefault(section, {})[aliases[upper]] = value
                break
        else:
            nested[key] = value

    return nested


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _format_validation_error(error: ValidationError) -> str:
    lines = ["Invalid configuration:"]
    for err in error.errors():
        location = ".".join(str(part) for part in err.get('loc', ()))
        lines.append(f"  - {location}: {err.get('msg')}")
    return "\n".join(lines)
