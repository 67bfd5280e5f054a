"""
Configuration loader — builds NixupConfig from defaults, YAML and env.

Sources are merged in precedence order (later wins):

    built-in defaults  <  config.yml  <  environment variables

The YAML file is optional. It is looked up from ``--config``, then
``$NIXUP_CONFIG``, then ``$XDG_CONFIG_HOME/nixup/config.yml``.
Keys are the NixupConfig field names; list values may be YAML lists or
pipe-separated strings (the same format as the env variables).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nixup.core.models.config import NixupConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yml"

# env var → NixupConfig field
_ENV_FIELDS: dict[str, str] = {
    "NIX_UPDATE_CACHE_AGE": "cache_max_age",
    "NIX_UPDATE_NIXPKGS_REF": "nixpkgs_ref",
    "NIX_UPDATE_SYSTEM_PATH": "system_path",
    "NIX_UPDATE_MIN_NAME_LENGTH": "min_name_length",
    "NIX_UPDATE_EXCLUDE": "exclude_patterns",
    "NIX_UPDATE_VERSION_SUFFIXES": "version_suffixes",
    "NIXUP_COMMAND_TIMEOUT": "command_timeout",
    "NIXUP_CACHE_DIR": "cache_dir",
}

_LIST_FIELDS = frozenset({"exclude_patterns", "version_suffixes", "variant_prefixes"})


class ConfigError(Exception):
    """Raised when nixup configuration is invalid."""


def split_patterns(value: str) -> tuple[str, ...]:
    """Split a pipe-separated pattern list, dropping blanks."""
    return tuple(p.strip() for p in value.split("|") if p.strip())


def default_cache_dir(environ: Mapping[str, str]) -> Path:
    """``$XDG_CACHE_HOME/nixup``, falling back to ``~/.cache/nixup``."""
    xdg = environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path(environ.get("HOME", str(Path.home()))) / ".cache"
    return base / "nixup"


def find_config_file(environ: Mapping[str, str]) -> Path | None:
    """Locate the optional YAML config file."""
    explicit = environ.get("NIXUP_CONFIG")
    if explicit:
        return Path(explicit)

    xdg = environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path(environ.get("HOME", str(Path.home()))) / ".config"
    candidate = base / "nixup" / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything to be nested under a top-level "nixup" key
    if "nixup" in data:
        data = data["nixup"]
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping under 'nixup' in {path}, got {type(data).__name__}")
    return dict(data)


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> NixupConfig:
    """Resolve the nixup configuration.

    Args:
        path: Explicit YAML config path (``--config``). Must exist if given.
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Frozen NixupConfig.

    Raises:
        ConfigError: If the YAML file or any value is invalid.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {"cache_dir": default_cache_dir(env)}

    config_file = path or find_config_file(env)
    if config_file is not None:
        logger.debug("Loading config from %s", config_file)
        values.update(_read_yaml(config_file))

    for var, field in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        values[field] = raw

    for field in _LIST_FIELDS:
        if isinstance(values.get(field), str):
            values[field] = split_patterns(values[field])

    try:
        config = NixupConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid nixup configuration: {e}") from e

    logger.debug(
        "Config: cache=%s max_age=%ds ref=%s system=%s",
        config.cache_dir, config.cache_max_age, config.nixpkgs_ref, config.system_path,
    )
    return config
