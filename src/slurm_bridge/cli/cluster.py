"""Cluster subcommand for the slurm-bridge CLI."""

from __future__ import annotations

from typing import Annotated

import cyclopts

from .formatters import console, print_partitions, print_resources
from .jobs import ConfigOption, EnvOption
from .utils import get_client, get_config

cluster_app = cyclopts.App(
    name="cluster",
    help="Inspect the local Slurm cluster.",
)


@cluster_app.command(name="partitions")
def list_partitions(config: ConfigOption = None, env: EnvOption = None) -> None:
    """List partition names."""
    client = get_client(get_config(config, env))
    print_partitions(client.partitions())


@cluster_app.command(name="resources")
def show_resources(
    partition: Annotated[str, cyclopts.Parameter(help="Partition name.")],
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Show the capacity of a partition."""
    client = get_client(get_config(config, env))
    print_resources(partition, client.resources(partition))


@cluster_app.command(name="version")
def show_version(config: ConfigOption = None, env: EnvOption = None) -> None:
    """Show the Slurm version."""
    client = get_client(get_config(config, env))
    console.print(client.version())
