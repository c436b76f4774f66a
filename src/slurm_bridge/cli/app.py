"""Root application for the slurm-bridge CLI."""

from __future__ import annotations

import logging
import sys

import cyclopts
from rich.console import Console

from ..logging import configure_logging
from .agent import agent_app
from .cluster import cluster_app
from .jobs import jobs_app
from .results import results
from .utils import get_version

console = Console(stderr=True)

app = cyclopts.App(
    name="slurm-bridge",
    help="Bridge between an orchestrator and a Slurm cluster.",
    version=get_version(),
)

app.command(results, name="results")
app.command(agent_app)
app.command(jobs_app)
app.command(cluster_app)


def _handle_error(e: Exception) -> None:
    """Log the failure with a user-friendly hint and exit non-zero."""
    from ..errors import (
        ArchiveError,
        BackendCommandError,
        BackendTimeout,
        ConfigError,
        MissingDependencyError,
        ParseError,
        TransferError,
    )

    if isinstance(e, MissingDependencyError):
        console.print(f"[red]Missing dependency:[/red] {e}")
        console.print(
            "\n[dim]Hint: Install the Slurm client tools or set 'binaries' in slurm-bridge.toml.[/dim]"
        )
    elif isinstance(e, ConfigError):
        console.print(f"[red]Configuration Error:[/red] {e}")
    elif isinstance(e, BackendTimeout):
        console.print(f"[red]Command Timeout:[/red] {e}")
    elif isinstance(e, BackendCommandError):
        console.print(f"[red]Command Error:[/red] {e}")
        if e.output:
            console.print(e.output, style="dim", markup=False)
    elif isinstance(e, ParseError):
        console.print(f"[red]Parse Error:[/red] {e}")
    elif isinstance(e, TransferError):
        console.print(f"[red]Transfer Error:[/red] {e}")
        console.print("\n[dim]Hint: Check that the agent is running at --sock.[/dim]")
    elif isinstance(e, ArchiveError):
        console.print(f"[red]Archive Error:[/red] {e}")
    else:
        console.print(f"[red]Error:[/red] {e}")

    sys.exit(1)


def main() -> None:
    """Entry point for the slurm-bridge CLI."""
    try:
        configure_logging(logging.INFO)
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    except SystemExit:
        raise
    except Exception as e:
        _handle_error(e)
