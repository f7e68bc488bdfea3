"""
config_utils.py

Runtime settings for cartridge loading.

Resolution order (later wins):
1. Built-in defaults
2. YAML settings file (explicit path, else COSYL_CONFIG)
3. Environment overrides (COSYL_STRICT_TRAVERSAL, COSYL_MAX_ENTRY_SIZE,
   COSYL_MAX_ENTRIES, COSYL_QUIET, COSYL_MANIFEST_FILENAME)

Settings file example (cosyl.yaml):

    strict_traversal: false
    max_entry_size: 52428800
    max_entries: 10000
    quiet: false
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from commoncartridge.errors import ConfigurationError


MANIFEST_FILENAME = "imsmanifest.xml"

# SECURITY: limits against zip bombs, same figures as the importer's extraction guards
MAX_ENTRY_SIZE = 50 * 1024 * 1024  # 50 MB per file
MAX_ENTRIES = 10000                # Maximum file count

CONFIG_ENV_VAR = "COSYL_CONFIG"

ENV_OVERRIDES = {
    "COSYL_MANIFEST_FILENAME": "manifest_filename",
    "COSYL_STRICT_TRAVERSAL": "strict_traversal",
    "COSYL_MAX_ENTRY_SIZE": "max_entry_size",
    "COSYL_MAX_ENTRIES": "max_entries",
    "COSYL_QUIET": "quiet",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass
class CartridgeSettings:
    """Knobs for loading and traversing a cartridge."""
    manifest_filename: str = MANIFEST_FILENAME
    strict_traversal: bool = False  # propagate item-tree failures instead of degrading
    max_entry_size: int = MAX_ENTRY_SIZE
    max_entries: int = MAX_ENTRIES
    quiet: bool = False  # silence library warnings on stderr


def _coerce(name: str, value: Any, source: str) -> Any:
    """Convert a raw YAML/env value into the type of the named setting."""
    default = getattr(CartridgeSettings, name)

    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigurationError(
            message=f"Invalid boolean for {name}: {value!r}",
            suggestion="Use true/false, yes/no, on/off or 1/0",
            context={"setting": name, "source": source},
        )

    if isinstance(default, int):
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                message=f"Invalid integer for {name}: {value!r}",
                context={"setting": name, "source": source},
                cause=e,
            )
        if number <= 0:
            raise ConfigurationError(
                message=f"{name} must be positive, got {number}",
                context={"setting": name, "source": source},
            )
        return number

    text = str(value).strip()
    if not text:
        raise ConfigurationError(
            message=f"{name} must not be empty",
            context={"setting": name, "source": source},
        )
    return text


def _read_settings_file(config_path: Path) -> Dict[str, Any]:
    """Parse a YAML settings file into a dict of known settings."""
    if not config_path.is_file():
        raise ConfigurationError(
            message=f"Settings file not found: {config_path}",
            suggestion=f"Check the path, or unset {CONFIG_ENV_VAR}",
            context={"path": str(config_path)},
        )

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            message=f"Settings file is not valid YAML: {config_path}",
            context={"path": str(config_path)},
            cause=e,
        )

    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"Settings file must contain a mapping: {config_path}",
            context={"path": str(config_path), "type": type(data).__name__},
        )

    known = {f.name for f in fields(CartridgeSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            message=f"Unknown settings in {config_path}: {', '.join(map(str, unknown))}",
            suggestion=f"Valid settings: {', '.join(sorted(known))}",
            context={"path": str(config_path)},
        )

    return {name: _coerce(name, value, str(config_path)) for name, value in data.items()}


def load_settings(config_path: Optional[Path] = None) -> CartridgeSettings:
    """
    Build settings from defaults, an optional YAML file and the environment.

    Args:
        config_path: Explicit settings file. When omitted, COSYL_CONFIG is used
            if set.

    Returns:
        CartridgeSettings instance

    Raises:
        ConfigurationError: If the file or an override is invalid
    """
    settings = CartridgeSettings()

    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = Path(env_path)

    if config_path is not None:
        settings = replace(settings, **_read_settings_file(Path(config_path)))

    overrides = {}
    for env_name, setting_name in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is not None:
            overrides[setting_name] = _coerce(setting_name, raw, env_name)

    if overrides:
        settings = replace(settings, **overrides)

    return settings
