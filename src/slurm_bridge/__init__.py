"""
slurm-bridge: run and observe Slurm jobs on behalf of an orchestrator.

The package drives the Slurm command-line tools through ``SlurmClient``,
parses their output into typed descriptors, and moves result trees between
hosts as zip archives streamed through a gRPC agent.
"""

__version__ = "0.1.0"

from .client import SlurmClient
from .errors import (
    ArchiveError,
    BackendCommandError,
    BackendError,
    BackendTimeout,
    BridgeError,
    CancellationError,
    DurationUnlimited,
    FileNotFound,
    MissingDependencyError,
    ParseError,
    PathTraversalError,
    SubmissionError,
    TransferError,
)
from .models import Feature, JobInfo, JobStepInfo, Resources

__all__ = [
    "ArchiveError",
    "BackendCommandError",
    "BackendError",
    "BackendTimeout",
    "BridgeError",
    "CancellationError",
    "DurationUnlimited",
    "Feature",
    "FileNotFound",
    "JobInfo",
    "JobStepInfo",
    "MissingDependencyError",
    "ParseError",
    "PathTraversalError",
    "Resources",
    "SlurmClient",
    "SubmissionError",
    "TransferError",
]
