"""Custom error types for slurm-bridge."""

from __future__ import annotations

from typing import Iterable, List, Optional


class BridgeError(Exception):
    """Base class for every error raised by slurm-bridge."""


class MissingDependencyError(BridgeError):
    """Raised when required Slurm binaries are not found on ``PATH``.

    The scheduler client checks for its binaries once, at construction time.
    This is a precondition failure and is never retried.

    Common causes:
        - Slurm client tools are not installed on this host
        - ``PATH`` of the agent process does not include the Slurm bin directory
        - A ``binaries`` override in the configuration points to a missing file

    What to check:
        - ``which sbatch scancel scontrol sacct sinfo``
        - The ``binaries`` table of your slurm-bridge.toml

    Attributes:
        missing: Names of the binaries that could not be resolved.
    """

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: List[str] = list(missing)
        super().__init__(f"no slurm binaries found: {', '.join(self.missing)}")


class BackendError(BridgeError):
    """Base class for errors originating from scheduler tool execution.

    Subclasses represent specific failure modes (timeouts, command errors).
    """


class BackendTimeout(BackendError, TimeoutError):
    """Raised when a scheduler command exceeds the configured timeout.

    Commands are unbounded by default; this only happens when
    ``command_timeout`` is set in the configuration.
    """


class BackendCommandError(BackendError):
    """Raised when a scheduler command exits with a non-zero status.

    Attributes:
        command: The argv that was executed.
        returncode: Exit status of the process (``None`` if it never ran).
        output: Captured output of the process, kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.command = command or []
        self.returncode = returncode
        self.output = output


class SubmissionError(BackendCommandError):
    """Raised when ``sbatch`` rejects a job script.

    Common causes:
        - Unknown partition or account
        - Requested resources exceed partition limits
        - Malformed ``#SBATCH`` directives in the script
    """


class CancellationError(BackendCommandError):
    """Raised when ``scancel`` exits with a non-zero status."""


class ParseError(BridgeError, ValueError):
    """Raised when scheduler output cannot be parsed.

    Attributes:
        literal: The offending text, when a single value is to blame.
    """

    def __init__(self, message: str, *, literal: Optional[str] = None) -> None:
        super().__init__(message)
        self.literal = literal


class DurationUnlimited(BridgeError):
    """Signals that a duration field holds the scheduler's "no limit" token.

    This is not a failure: callers catch it and leave the field unset.
    """


class FileNotFound(BridgeError, FileNotFoundError):
    """Raised when a requested file does not exist.

    Kept distinct from generic I/O failures so callers can branch on it.
    """


class ArchiveError(BridgeError):
    """Raised when building or extracting an archive fails."""


class PathTraversalError(ArchiveError):
    """Raised when an archive entry would escape the extraction directory.

    Archives containing names like ``../../etc/passwd`` or absolute paths
    are rejected outright; extraction stops at the first such entry.

    Attributes:
        entry: The member name stored in the archive.
    """

    def __init__(self, entry: str, destination: str) -> None:
        self.entry = entry
        self.destination = destination
        super().__init__(f"invalid file path: {entry!r} escapes {destination}")


class TransferError(BridgeError):
    """Raised when a call to the remote agent fails.

    Attributes:
        code: The ``grpc.StatusCode`` reported by the transport, if any.
    """

    def __init__(self, message: str, *, code: Optional[object] = None) -> None:
        super().__init__(message)
        self.code = code


class ConfigError(BridgeError):
    """Base class for configuration file errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when an explicitly requested configuration file is missing."""


class ConfigInvalidError(ConfigError):
    """Raised when the configuration file has invalid TOML or values.

    What to check:
        - TOML syntax (unclosed brackets, bad escaping)
        - ``chunk_size`` and ``max_workers`` are positive integers
        - ``binaries`` and ``partition_fields`` are tables of strings
    """


class ConfigEnvironmentNotFoundError(ConfigError):
    """Raised when the selected environment is not defined in the file.

    Check the ``SLURM_BRIDGE_ENV`` environment variable; it overrides the
    default environment name.
    """
