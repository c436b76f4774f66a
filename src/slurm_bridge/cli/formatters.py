"""Rich output formatters for the slurm-bridge CLI."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models import JobInfo, JobStepInfo, Resources
from ..timeparse import format_duration

console = Console()

# Color mapping for job states
STATE_COLORS: Dict[str, str] = {
    "RUNNING": "green",
    "PENDING": "yellow",
    "COMPLETED": "blue",
    "FAILED": "red",
    "CANCELLED": "magenta",
    "TIMEOUT": "red",
    "NODE_FAIL": "red",
    "OUT_OF_MEMORY": "red",
    "COMPLETING": "cyan",
    "CONFIGURING": "cyan",
    "SUSPENDED": "yellow",
}


def _get_state_color(state: str) -> str:
    """Get color for job state."""
    base_state = state.split()[0] if state else ""
    return STATE_COLORS.get(base_state, "white")


def _format_time(value: Optional[datetime]) -> str:
    return value.isoformat(sep=" ") if value is not None else "-"


def print_job_infos(infos: List[JobInfo]) -> None:
    """Display scontrol job records, one panel per job (or array task)."""
    if not infos:
        console.print("[dim]No job information returned.[/dim]")
        return

    for info in infos:
        color = _get_state_color(info.state)
        details: List[str] = [f"[bold]State:[/bold] [{color}]{info.state}[/{color}]"]

        if info.array_job_id:
            details.append(f"[bold]Array Job:[/bold] {info.array_job_id}")
        if info.name:
            details.append(f"[bold]Name:[/bold] {info.name}")
        if info.user_id:
            details.append(f"[bold]User:[/bold] {info.user_id}")
        if info.exit_code:
            details.append(f"[bold]Exit Code:[/bold] {info.exit_code}")
        if info.partition:
            details.append(f"[bold]Partition:[/bold] {info.partition}")
        details.append(f"[bold]Submitted:[/bold] {_format_time(info.submit_time)}")
        details.append(f"[bold]Started:[/bold] {_format_time(info.start_time)}")
        if info.run_time is not None:
            details.append(f"[bold]Run Time:[/bold] {format_duration(info.run_time)}")
        details.append(f"[bold]Time Limit:[/bold] {format_duration(info.time_limit)}")
        if info.work_dir:
            details.append(f"[bold]Work Dir:[/bold] {info.work_dir}")
        if info.std_out:
            details.append(f"[bold]Stdout:[/bold] {info.std_out}")
        if info.std_err:
            details.append(f"[bold]Stderr:[/bold] {info.std_err}")
        if info.node_list:
            details.append(f"[bold]Nodes:[/bold] {info.node_list} ({info.num_nodes})")

        console.print(
            Panel("\n".join(details), title=f"Job {info.id}", border_style=color)
        )


def print_job_steps(job_id: int, steps: List[JobStepInfo]) -> None:
    """Display sacct history rows as a table."""
    if not steps:
        console.print(f"[dim]No accounting records for job {job_id}.[/dim]")
        return

    table = Table(title=f"Job {job_id} steps")
    table.add_column("Step", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("State", style="white")
    table.add_column("Exit", justify="right")
    table.add_column("Started", style="dim")
    table.add_column("Finished", style="dim")

    for step in steps:
        color = _get_state_color(step.state)
        table.add_row(
            step.id,
            step.name,
            f"[{color}]{step.state}[/{color}]",
            str(step.exit_code),
            _format_time(step.started_at),
            _format_time(step.finished_at),
        )

    console.print(table)


def print_partitions(names: List[str]) -> None:
    if not names:
        console.print("[dim]No partitions configured.[/dim]")
        return
    for name in names:
        console.print(name)


def print_resources(partition: str, resources: Resources) -> None:
    """Display the capacity of one partition."""
    table = Table(title=f"Partition {partition}", show_header=False)
    table.add_column("Resource", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Nodes", str(resources.nodes))
    table.add_row("CPUs per node", str(resources.cpu_per_node))
    table.add_row("Memory per node (MB)", str(resources.mem_per_node or "unlimited"))
    table.add_row("Wall time", format_duration(resources.wall_time))
    console.print(table)
