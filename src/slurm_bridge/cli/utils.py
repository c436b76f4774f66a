"""Shared utilities for the slurm-bridge CLI."""

from __future__ import annotations

from typing import Optional

from ..client import SlurmClient
from ..config import BridgeConfig, load_config


def get_config(
    config: Optional[str] = None,
    env: Optional[str] = None,
) -> BridgeConfig:
    """Load configuration from CLI args.

    Args:
        config: Optional path to a configuration file.
        env: Optional environment name.

    Returns:
        The resolved configuration (defaults when no file exists).
    """
    return load_config(config, env=env)


def get_client(settings: BridgeConfig) -> SlurmClient:
    """Create a Slurm client from resolved configuration."""
    return SlurmClient(
        binaries=settings.binaries,
        timeout=settings.command_timeout,
        partition_keys=settings.partition_fields,
    )


def get_version() -> str:
    """Get the installed slurm-bridge version."""
    try:
        from importlib.metadata import version

        return version("slurm-bridge")
    except Exception:
        return "unknown"
