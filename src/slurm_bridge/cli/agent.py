"""Agent subcommand for the slurm-bridge CLI."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

import cyclopts

from ..logging import configure_logging
from ..transfer.agent import serve
from ..transfer.client import normalize_address
from .jobs import ConfigOption, EnvOption
from .utils import get_client, get_config

logger = logging.getLogger(__name__)

agent_app = cyclopts.App(
    name="agent",
    help="Run the remote agent on a Slurm login node.",
)


@agent_app.command(name="serve")
def serve_agent(
    sock: Annotated[
        Optional[str],
        cyclopts.Parameter(
            name=["--sock", "-s"],
            help="Address to listen on: host:port, unix://PATH or a socket path.",
        ),
    ] = None,
    plain_logs: Annotated[
        bool,
        cyclopts.Parameter(
            name=["--plain-logs"],
            negative=(),
            help="Log plain timestamped lines instead of Rich output.",
        ),
    ] = False,
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Serve file transfer and job RPCs until interrupted."""
    if plain_logs:
        configure_logging(logging.INFO, use_rich=False)

    settings = get_config(config, env)
    client = get_client(settings)
    address = normalize_address(sock or settings.agent_address)
    logger.debug(
        "Agent settings: workers=%d chunk_size=%d config=%s",
        settings.max_workers,
        settings.chunk_size,
        settings.path,
    )
    serve(
        client,
        address,
        max_workers=settings.max_workers,
        chunk_size=settings.chunk_size,
    )
