"""Jobs subcommand for the slurm-bridge CLI."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated, Optional

import cyclopts
from rich.console import Console

from .formatters import print_job_infos, print_job_steps
from .utils import get_client, get_config

jobs_app = cyclopts.App(
    name="jobs",
    help="Submit, cancel and inspect Slurm jobs on this host.",
)

console = Console(stderr=True)

ConfigOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name=["--config", "-c"],
        help="Path to slurm-bridge.toml.",
    ),
]
EnvOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name=["--env", "-e"],
        help="Environment name from the configuration file.",
    ),
]


@jobs_app.command(name="submit")
def submit_job(
    script: Annotated[
        str,
        cyclopts.Parameter(
            help="Batch script to submit, or '-' to read it from stdin.",
        ),
    ],
    partition: Annotated[
        str,
        cyclopts.Parameter(
            name=["--partition", "-p"],
            help="Partition to submit to.",
        ),
    ] = "",
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Submit a batch script and print the job id."""
    content = sys.stdin.read() if script == "-" else Path(script).read_text()
    client = get_client(get_config(config, env))
    job_id = client.submit(content, partition)
    print(job_id)


@jobs_app.command(name="cancel")
def cancel_job(
    job_id: Annotated[int, cyclopts.Parameter(help="Slurm job ID to cancel.")],
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Cancel a job."""
    client = get_client(get_config(config, env))
    client.cancel(job_id)
    console.print(f"Cancelled job {job_id}")


@jobs_app.command(name="info")
def job_info(
    job_id: Annotated[int, cyclopts.Parameter(help="Slurm job ID to show.")],
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Show scontrol details for a job (one panel per array task)."""
    client = get_client(get_config(config, env))
    print_job_infos(client.job_info(job_id))


@jobs_app.command(name="steps")
def job_steps(
    job_id: Annotated[int, cyclopts.Parameter(help="Slurm job ID to show.")],
    config: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    """Show the accounting history of a job."""
    client = get_client(get_config(config, env))
    print_job_steps(job_id, client.job_steps(job_id))
