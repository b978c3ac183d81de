"""Configuration loading and merge order.

Defaults are overridden by ``.checkin.json`` at the repository root, which is
in turn overridden by command line flags.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .core.orchestrator import RunOptions
from .core.scm import find_root
from .errors import ConfigError

CONFIG_FILENAME = ".checkin.json"

_BOOLEAN_KEYS = ("bail", "check", "resolve_config", "staged", "verbose")
_LIST_KEYS = ("pattern", "plugins")


@dataclass(frozen=True)
class CliOverrides:
    """Values given on the command line; ``None`` means not given."""

    bail: Optional[bool] = None
    check: Optional[bool] = None
    pattern: Optional[Tuple[str, ...]] = None
    plugins: Optional[Tuple[str, ...]] = None
    resolve_config: Optional[bool] = None
    staged: Optional[bool] = None
    verbose: Optional[bool] = None


def load_config_file(repo_root: Path) -> Dict[str, Any]:
    """Load the optional config file from ``repo_root``."""

    config_path = repo_root / CONFIG_FILENAME
    if not config_path.exists():
        return {}
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{CONFIG_FILENAME} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a JSON object.")
    return validate_config(payload)


def _tuple_of_strings(value: Any, key: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigError(f"Config key '{key}' must be a string or a list of strings.")


def validate_config(payload: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(payload) - set(_BOOLEAN_KEYS) - set(_LIST_KEYS))
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    validated: Dict[str, Any] = {}
    for key in _BOOLEAN_KEYS:
        if key in payload:
            if not isinstance(payload[key], bool):
                raise ConfigError(f"Config key '{key}' must be a boolean.")
            validated[key] = payload[key]
    for key in _LIST_KEYS:
        if key in payload:
            validated[key] = _tuple_of_strings(payload[key], key)
    return validated


def merge_options(
    directory: Path,
    file_values: Mapping[str, Any],
    overrides: CliOverrides,
) -> RunOptions:
    values: Dict[str, Any] = dict(file_values)
    for key in _BOOLEAN_KEYS + _LIST_KEYS:
        override = getattr(overrides, key)
        if override is not None:
            values[key] = override
    return RunOptions(directory=directory, **values)


def build_run_options(directory: Path, overrides: Optional[CliOverrides] = None) -> RunOptions:
    """Build :class:`RunOptions` for a run started in ``directory``."""

    directory = Path(directory).resolve()
    root = find_root(directory)
    file_values = load_config_file(root) if root is not None else {}
    return merge_options(directory, file_values, overrides or CliOverrides())


__all__ = [
    "CONFIG_FILENAME",
    "CliOverrides",
    "build_run_options",
    "load_config_file",
    "merge_options",
    "validate_config",
]
