"""Results subcommand: move result trees to and from the agent."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

import cyclopts
from rich.console import Console

from ..transfer.client import AgentClient
from ..transfer.results import download, upload
from .jobs import ConfigOption, EnvOption
from .utils import get_config, get_version

logger = logging.getLogger(__name__)

console = Console()


def results(
    source: Annotated[
        str,
        cyclopts.Parameter(
            name=["--from"],
            help="Path to transfer.",
        ),
    ],
    destination: Annotated[
        str,
        cyclopts.Parameter(
            name=["--to"],
            help="Directory where to put the transferred tree.",
        ),
    ],
    upload_mode: Annotated[
        bool,
        cyclopts.Parameter(
            name=["--upload"],
            negative=(),
            help="Upload a local path to the agent instead of downloading.",
        ),
    ] = False,
    sock: Annotated[
        Optional[str],
        cyclopts.Parameter(
            name=["--sock", "-s"],
            help="Agent address: host:port, unix://PATH or a socket path.",
        ),
    ] = None,
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Copy a directory tree between this host and the agent as a zip archive."""
    console.print(f"version: {get_version()}")

    if not source:
        raise ValueError("--from can't be empty")
    if not destination:
        raise ValueError("--to can't be empty")

    settings = get_config(config, env)
    address = sock or settings.agent_address

    with AgentClient(address) as client:
        if upload_mode:
            upload(client, source, destination, chunk_size=settings.chunk_size)
        else:
            download(client, source, destination)

    logger.info("File is located at %s", destination)
