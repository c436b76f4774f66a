"""
Slurm client backed by the scheduler's command-line tools.

This module talks to a local Slurm cluster by running ``sbatch``,
``scancel``, ``scontrol``, ``sacct`` and ``sinfo`` directly and parsing their
output into typed descriptors. It is meant to run on a cluster login node,
next to the remote agent that serves it over RPC.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import BinaryIO, Dict, List, Mapping, Optional, Sequence, Tuple

from . import archive
from .errors import (
    ArchiveError,
    BackendCommandError,
    BackendError,
    BackendTimeout,
    CancellationError,
    FileNotFound,
    MissingDependencyError,
    ParseError,
    PathTraversalError,
    SubmissionError,
)
from .models import (
    JOB_INFO_FIELDS,
    SACCT_FORMAT,
    JobInfo,
    JobStepInfo,
    Resources,
    partition_fields,
)
from .records import apply_fields, parse_key_values, split_blocks
from .tail import DEFAULT_POLL_INTERVAL, TailReader
from .timeparse import parse_optional_time

logger = logging.getLogger(__name__)

SBATCH = "sbatch"
SCANCEL = "scancel"
SCONTROL = "scontrol"
SACCT = "sacct"
SINFO = "sinfo"

REQUIRED_BINARIES: Tuple[str, ...] = (SACCT, SBATCH, SCANCEL, SCONTROL, SINFO)


class SlurmClient:
    """
    Stateless client for a local Slurm cluster.

    Every call runs one scheduler command synchronously and returns a fresh
    snapshot; nothing is cached and nothing is retried, so instances can be
    shared freely between threads.
    """

    def __init__(
        self,
        binaries: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        partition_keys: Optional[Mapping[str, str]] = None,
        tail_poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        """
        Initialize the client and verify the Slurm binaries are available.

        Args:
            binaries: Optional overrides mapping tool name to executable path.
            timeout: Optional per-command timeout in seconds. None waits forever.
            partition_keys: Optional overrides for the scontrol keys used to
                fill ``Resources`` (attribute name -> scheduler key).
            tail_poll_interval: Seconds between checks for new data in ``tail``.

        Raises:
            MissingDependencyError: If any required binary cannot be found.
        """
        self.timeout = timeout
        self.tail_poll_interval = tail_poll_interval
        self._partition_fields = partition_fields(partition_keys)

        overrides = dict(binaries or {})
        self._binaries: Dict[str, str] = {}
        missing: List[str] = []
        for name in REQUIRED_BINARIES:
            resolved = shutil.which(overrides.get(name, name))
            if resolved is None:
                missing.append(name)
            else:
                self._binaries[name] = resolved
        if missing:
            raise MissingDependencyError(missing)

        logger.debug("Using Slurm binaries: %s", self._binaries)

    def _run_command(
        self, args: Sequence[str], stdin: Optional[str] = None
    ) -> Tuple[str, str, int]:
        """
        Run a Slurm command to completion.

        Args:
            args: Command arguments; the first item is the tool name.
            stdin: Optional text written to the command's standard input.

        Returns:
            Tuple[str, str, int]: A tuple of (stdout, stderr, return_code)

        Raises:
            BackendTimeout: If the command times out
            BackendCommandError: If the command cannot be started
        """
        cmd = [self._binaries.get(args[0], args[0]), *args[1:]]
        logger.debug("Running command: %s", cmd)
        try:
            result = subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                # job names and paths are not always UTF-8
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise BackendTimeout(
                f"Command timed out after {self.timeout} seconds: {' '.join(cmd)}"
            ) from e
        except OSError as e:
            raise BackendCommandError(
                f"Failed to execute {args[0]}: {e}", command=cmd
            ) from e

        logger.debug("Command exit code: %d", result.returncode)
        if result.stderr:
            logger.debug("Command stderr: %s", result.stderr[:500])

        return result.stdout, result.stderr, result.returncode

    def _check_output(self, args: Sequence[str], what: str) -> str:
        stdout, stderr, return_code = self._run_command(args)
        if return_code != 0:
            raise BackendCommandError(
                f"{what}: {args[0]} exited with {return_code}: {stderr.strip()}",
                command=list(args),
                returncode=return_code,
                output=stderr,
            )
        return stdout

    def submit(self, script: str, partition: str = "") -> int:
        """
        Submit a batch script and return the new job id.

        Raises:
            SubmissionError: If sbatch exits with a non-zero status.
            ParseError: If sbatch does not print a job id.
        """
        args = [SBATCH, "--parsable"]
        if partition:
            args.append(f"--partition={partition}")

        stdout, stderr, return_code = self._run_command(args, stdin=script)
        if return_code != 0:
            output = (stdout + stderr).strip()
            if output:
                logger.warning("sbatch output: %s", output)
            raise SubmissionError(
                f"submission failed: sbatch exited with {return_code}",
                command=args,
                returncode=return_code,
                output=output,
            )

        # --parsable prints "<id>" or "<id>;<cluster>"
        raw = stdout.strip().split(";", 1)[0]
        try:
            job_id = int(raw)
        except ValueError as e:
            raise ParseError(
                f"could not parse job id: {stdout.strip()!r}", literal=stdout
            ) from e

        logger.info("Job submitted: %d", job_id)
        return job_id

    def cancel(self, job_id: int) -> None:
        """
        Cancel a job.

        Raises:
            CancellationError: If scancel exits with a non-zero status.
        """
        args = [SCANCEL, str(job_id)]
        stdout, stderr, return_code = self._run_command(args)
        if return_code != 0:
            output = (stdout + stderr).strip()
            if output:
                logger.warning("scancel output: %s", output)
            raise CancellationError(
                f"cancellation failed for job {job_id}",
                command=args,
                returncode=return_code,
                output=output,
            )
        logger.info("Job cancelled: %s", job_id)

    def job_info(self, job_id: int) -> List[JobInfo]:
        """Return scontrol's view of a job; array jobs yield one entry per task."""
        stdout = self._check_output(
            [SCONTROL, "show", "jobid", str(job_id)],
            f"failed to get info for jobid {job_id}",
        )
        try:
            return parse_job_info(stdout)
        except ParseError as e:
            raise ParseError(
                f"could not parse scontrol response: {e}", literal=e.literal
            ) from e

    def job_steps(self, job_id: int) -> List[JobStepInfo]:
        """Return the accounting history of a job, one entry per sacct row."""
        stdout = self._check_output(
            [
                SACCT,
                "-p",
                "-n",
                "-j",
                str(job_id),
                f"--format={','.join(SACCT_FORMAT)}",
            ],
            "failed to execute sacct",
        )
        return parse_sacct_response(stdout)

    def resources(self, partition: str) -> Resources:
        """Return the capacity of one partition."""
        stdout = self._check_output(
            [SCONTROL, "show", "partition", partition],
            "could not get partition info",
        )
        try:
            return parse_resources(stdout, self._partition_fields)
        except ParseError as e:
            raise ParseError(
                f"could not parse partition resources: {e}", literal=e.literal
            ) from e

    def partitions(self) -> List[str]:
        """Return the names of all partitions in the order scontrol lists them."""
        stdout = self._check_output(
            [SCONTROL, "show", "partition"], "could not get partition info"
        )
        return parse_partition_names(stdout)

    def version(self) -> str:
        """Return the Slurm version reported by ``sinfo -V``."""
        stdout = self._check_output([SINFO, "-V"], "could not get slurm info")
        parts = stdout.split()
        if len(parts) != 2:
            raise ParseError(
                f"could not parse version output: {stdout.strip()!r}", literal=stdout
            )
        return parts[1]

    def open(self, path: str) -> BinaryIO:
        """Open a file for binary reading.

        Raises:
            FileNotFound: If the file does not exist.
            BackendError: For any other I/O failure.
        """
        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise FileNotFound(f"file is not found: {path}") from e
        except OSError as e:
            raise BackendError(f"could not open {path}: {e}") from e

    def create(self, path: str) -> BinaryIO:
        """Open a file for binary writing, creating parent directories."""
        try:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            return open(path, "wb")
        except OSError as e:
            raise BackendError(f"could not create {path}: {e}") from e

    def tail(self, path: str) -> TailReader:
        """Open a file for reading that keeps following appended data."""
        return TailReader(path, poll_interval=self.tail_poll_interval)

    def zip(self, path: str, target: str) -> None:
        """Archive a file or directory into ``target``."""
        try:
            archive.zip_path(path, target)
        except OSError as e:
            raise ArchiveError(f"could not zip file or directory {path}: {e}") from e

    def unzip(self, source: str, path: str) -> None:
        """Extract the archive ``source`` into the directory ``path``."""
        try:
            archive.unzip_path(source, path)
        except PathTraversalError:
            raise
        except (OSError, ValueError) as e:
            raise ArchiveError(f"could not unzip file {source}: {e}") from e


def parse_job_info(output: str) -> List[JobInfo]:
    """Parse ``scontrol show jobid`` output into JobInfo records."""
    return [
        JobInfo(**apply_fields(JOB_INFO_FIELDS, parse_key_values(block)))
        for block in split_blocks(output)
    ]


def parse_sacct_response(output: str) -> List[JobStepInfo]:
    """Parse ``sacct -p -n`` output requested in ``SACCT_FORMAT`` order."""
    steps: List[JobStepInfo] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("|")
        if len(parts) < len(SACCT_FORMAT):
            raise ParseError(
                f"unable to parse sacct response: {line!r}", literal=line
            )
        start, end, exit_code, state, job_id, job_name = parts[: len(SACCT_FORMAT)]
        try:
            code = int(exit_code.split(":", 1)[0])
        except ValueError as e:
            raise ParseError(
                f"unable to parse sacct response: bad exit code {exit_code!r}",
                literal=exit_code,
            ) from e
        steps.append(
            JobStepInfo(
                id=job_id,
                name=job_name,
                started_at=parse_optional_time(start),
                finished_at=parse_optional_time(end),
                exit_code=code,
                state=state,
            )
        )
    return steps


def parse_resources(output: str, table=None) -> Resources:
    """Parse one ``scontrol show partition <name>`` block into Resources."""
    values = apply_fields(table or partition_fields(), parse_key_values(output))
    nodes = values.get("total_nodes", 0)
    cpus = values.get("total_cpus", 0)
    return Resources(
        nodes=nodes,
        mem_per_node=values.get("mem_per_node", 0),
        cpu_per_node=cpus // nodes if nodes > 0 else 0,
        wall_time=values.get("wall_time"),
    )


def parse_partition_names(output: str) -> List[str]:
    """Extract partition names from ``scontrol show partition`` output."""
    names: List[str] = []
    for block in split_blocks(output):
        name = parse_key_values(block).get("PartitionName")
        if name and name not in names:
            names.append(name)
    return names
