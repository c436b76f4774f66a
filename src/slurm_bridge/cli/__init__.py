"""Command-line interface for slurm-bridge.

This module provides the `slurm-bridge` command.

Usage:
    slurm-bridge results --from PATH --to PATH [--upload] [--sock ADDR]
    slurm-bridge agent serve [--sock ADDR]
    slurm-bridge jobs submit|cancel|info|steps ...
    slurm-bridge cluster partitions|resources|version
"""

from .app import app, main

__all__ = ["app", "main"]
