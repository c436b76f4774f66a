"""Loading of slurm-bridge configuration files.

Configuration lives in a TOML file named ``slurm-bridge.toml`` (or
``.slurm-bridge.toml``), discovered upwards from the working directory, or
given explicitly / through ``SLURM_BRIDGE_CONFIG``. The settings may sit at
the top level or under ``[tool.slurm-bridge]``; per-environment overrides go
in ``[environments.<name>]`` tables and are merged over ``[default]``.

Example::

    [default]
    agent_address = "unix:///var/run/syslurm/red-box.sock"
    chunk_size = 65536

    [default.binaries]
    sbatch = "/opt/slurm/bin/sbatch"

    [environments.test]
    command_timeout = 30
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

try:  # pragma: no cover - import guard
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - python <3.11 fallback
    import tomli as tomllib  # type: ignore[no-redef]

from .errors import (
    ConfigEnvironmentNotFoundError,
    ConfigInvalidError,
    ConfigNotFoundError,
)
from .models import DEFAULT_PARTITION_KEYS
from .tail import DEFAULT_CHUNK_SIZE

CONFIG_ENV_VAR = "SLURM_BRIDGE_CONFIG"
ENVIRONMENT_ENV_VAR = "SLURM_BRIDGE_ENV"
DEFAULT_CONFIG_NAMES = ("slurm-bridge.toml", ".slurm-bridge.toml")
TOOL_SECTION = "slurm-bridge"

DEFAULT_AGENT_ADDRESS = "unix:///var/run/syslurm/red-box.sock"
DEFAULT_MAX_WORKERS = 10

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class BridgeConfig:
    """Resolved configuration for one environment."""

    agent_address: str = DEFAULT_AGENT_ADDRESS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    command_timeout: Optional[float] = None
    max_workers: int = DEFAULT_MAX_WORKERS
    binaries: Dict[str, str] = field(default_factory=dict)
    partition_fields: Dict[str, str] = field(default_factory=dict)
    environment: str = "default"
    path: Optional[Path] = None


def load_config(
    path: Optional[PathLike] = None,
    *,
    env: Optional[str] = None,
    start_dir: Optional[PathLike] = None,
) -> BridgeConfig:
    """Load configuration, falling back to defaults when no file is found.

    Raises:
        ConfigNotFoundError: If an explicit path (argument or env var) is missing.
        ConfigInvalidError: If the file or its values are invalid.
        ConfigEnvironmentNotFoundError: If ``env`` is not defined in the file.
    """
    env_name = (env or os.getenv(ENVIRONMENT_ENV_VAR) or "default").strip() or "default"

    resolved = resolve_config_path(path, start_dir=start_dir)
    if resolved is None:
        if env_name != "default":
            raise ConfigEnvironmentNotFoundError(
                f"Environment '{env_name}' requested but no configuration file was found."
            )
        return BridgeConfig()

    root = _extract_root_table(_read_toml(resolved))
    values = _resolve_environment_config(root, env_name)
    config = _build_config(values)
    config.environment = env_name
    config.path = resolved
    return config


def resolve_config_path(
    path: Optional[PathLike] = None,
    *,
    start_dir: Optional[PathLike] = None,
) -> Optional[Path]:
    """Determine which configuration file to use, if any."""
    if path is not None:
        return _normalize_config_path(Path(path))

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return _normalize_config_path(Path(env_path))

    return discover_config(start_dir=start_dir)


def discover_config(start_dir: Optional[PathLike] = None) -> Optional[Path]:
    """Search upwards from ``start_dir`` (or ``cwd``) for a configuration file."""
    start = Path(start_dir) if start_dir is not None else Path.cwd()
    start = start.expanduser()
    try:
        start = start.resolve()
    except FileNotFoundError:
        start = start.absolute()

    for directory in (start,) + tuple(start.parents):
        for name in DEFAULT_CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def _normalize_config_path(path: Path) -> Path:
    expanded = path.expanduser()
    if expanded.is_dir():
        for name in DEFAULT_CONFIG_NAMES:
            candidate = expanded / name
            if candidate.is_file():
                return candidate
        raise ConfigNotFoundError(
            f"Configuration not found inside directory '{expanded}'. Checked {DEFAULT_CONFIG_NAMES}."
        )
    if expanded.is_file():
        return expanded
    raise ConfigNotFoundError(f"Configuration path '{expanded}' does not exist.")


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigInvalidError(f"Invalid TOML in '{path}': {exc}") from exc


def _extract_root_table(data: Dict[str, Any]) -> Dict[str, Any]:
    tool_section = data.get("tool")
    if isinstance(tool_section, dict):
        section = tool_section.get(TOOL_SECTION)
        if isinstance(section, dict):
            return section
    return data


def _resolve_environment_config(root: Dict[str, Any], env_name: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {}

    default = root.get("default")
    if default is not None:
        if not isinstance(default, dict):
            raise ConfigInvalidError("[default] section must be a table.")
        result = _deep_merge(result, default)
    else:
        # flat files keep their settings at the top level
        result = {
            k: v for k, v in root.items() if k not in ("environments", "tool")
        }

    if env_name != "default":
        environments = root.get("environments", {})
        if not isinstance(environments, dict):
            raise ConfigInvalidError("[environments] section must be a table.")
        env_config = environments.get(env_name)
        if env_config is None:
            raise ConfigEnvironmentNotFoundError(
                f"Environment '{env_name}' not defined in configuration."
            )
        if not isinstance(env_config, dict):
            raise ConfigInvalidError(f"Environment '{env_name}' section must be a table.")
        result = _deep_merge(result, env_config)

    return result


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _string_table(values: Dict[str, Any], key: str) -> Dict[str, str]:
    table = values.get(key, {})
    if not isinstance(table, dict) or not all(
        isinstance(v, str) for v in table.values()
    ):
        raise ConfigInvalidError(f"'{key}' must be a table of strings.")
    return dict(table)


def _positive_int(values: Dict[str, Any], key: str, default: int) -> int:
    value = values.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigInvalidError(f"'{key}' must be a positive integer, got {value!r}.")
    return value


def _build_config(values: Dict[str, Any]) -> BridgeConfig:
    address = values.get("agent_address", DEFAULT_AGENT_ADDRESS)
    if not isinstance(address, str) or not address:
        raise ConfigInvalidError("'agent_address' must be a non-empty string.")

    timeout = values.get("command_timeout")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
    ):
        raise ConfigInvalidError(
            f"'command_timeout' must be a positive number, got {timeout!r}."
        )

    partition_keys = _string_table(values, "partition_fields")
    unknown = set(partition_keys) - set(DEFAULT_PARTITION_KEYS)
    if unknown:
        raise ConfigInvalidError(
            f"Unknown partition_fields entries: {', '.join(sorted(unknown))}."
        )

    return BridgeConfig(
        agent_address=address,
        chunk_size=_positive_int(values, "chunk_size", DEFAULT_CHUNK_SIZE),
        command_timeout=float(timeout) if timeout is not None else None,
        max_workers=_positive_int(values, "max_workers", DEFAULT_MAX_WORKERS),
        binaries=_string_table(values, "binaries"),
        partition_fields=partition_keys,
    )
