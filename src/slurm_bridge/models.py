"""
Typed descriptors for Slurm jobs, job steps and partitions.

Descriptors are read-only snapshots built fresh for every query. Each one
can be converted to and from a plain dictionary so it can travel over the
agent's RPC channel.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Tuple

from .records import FieldKind, FieldSpec

JOB_INFO_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("JobId", "id"),
    FieldSpec("UserId", "user_id"),
    FieldSpec("ArrayJobId", "array_job_id"),
    FieldSpec("JobName", "name"),
    FieldSpec("ExitCode", "exit_code"),
    FieldSpec("JobState", "state"),
    FieldSpec("SubmitTime", "submit_time", FieldKind.TIME),
    FieldSpec("StartTime", "start_time", FieldKind.TIME),
    FieldSpec("RunTime", "run_time", FieldKind.DURATION),
    FieldSpec("TimeLimit", "time_limit", FieldKind.DURATION),
    FieldSpec("WorkDir", "work_dir"),
    FieldSpec("StdOut", "std_out"),
    FieldSpec("StdErr", "std_err"),
    FieldSpec("Partition", "partition"),
    FieldSpec("NodeList", "node_list"),
    FieldSpec("BatchHost", "batch_host"),
    FieldSpec("NumNodes", "num_nodes"),
)

# Resources attribute -> default scheduler key. The keys can be
# overridden per deployment through the ``partition_fields`` config table.
DEFAULT_PARTITION_KEYS: Dict[str, str] = {
    "total_nodes": "TotalNodes",
    "total_cpus": "TotalCPUs",
    "mem_per_node": "MaxMemPerNode",
    "wall_time": "MaxTime",
}

_PARTITION_KINDS: Dict[str, FieldKind] = {
    "total_nodes": FieldKind.INT,
    "total_cpus": FieldKind.INT,
    "mem_per_node": FieldKind.INT,
    "wall_time": FieldKind.DURATION,
}

# Fixed field order requested from sacct.
SACCT_FORMAT = ("start", "end", "exitcode", "state", "jobid", "jobname")


def partition_fields(overrides: Optional[Mapping[str, str]] = None) -> Tuple[FieldSpec, ...]:
    """Build the partition field table, applying key overrides."""
    keys = dict(DEFAULT_PARTITION_KEYS)
    if overrides:
        unknown = set(overrides) - set(keys)
        if unknown:
            raise ValueError(
                f"unknown partition attributes: {', '.join(sorted(unknown))}"
            )
        keys.update(overrides)
    return tuple(FieldSpec(key, attr, _PARTITION_KINDS[attr]) for attr, key in keys.items())


def _dump(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return value


def _load_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


def _load_duration(value: Optional[int]) -> Optional[timedelta]:
    return timedelta(seconds=value) if value is not None else None


@dataclass(frozen=True)
class JobInfo:
    """Information about a single Slurm job, as reported by scontrol."""

    id: str = ""
    user_id: str = ""
    array_job_id: str = ""
    name: str = ""
    exit_code: str = ""
    state: str = ""
    submit_time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    run_time: Optional[timedelta] = None
    time_limit: Optional[timedelta] = None
    work_dir: str = ""
    std_out: str = ""
    std_err: str = ""
    partition: str = ""
    node_list: str = ""
    batch_host: str = ""
    num_nodes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _dump(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobInfo":
        values = {f.name: data[f.name] for f in fields(cls) if f.name in data}
        for name in ("submit_time", "start_time"):
            if name in values:
                values[name] = _load_time(values[name])
        for name in ("run_time", "time_limit"):
            if name in values:
                values[name] = _load_duration(values[name])
        return cls(**values)


@dataclass(frozen=True)
class JobStepInfo:
    """A single row of a job's accounting history."""

    id: str = ""
    name: str = ""
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: int = 0
    state: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _dump(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobStepInfo":
        values = {f.name: data[f.name] for f in fields(cls) if f.name in data}
        for name in ("started_at", "finished_at"):
            if name in values:
                values[name] = _load_time(values[name])
        return cls(**values)


# TODO: populate features once partitions advertise them through a
# Features/Gres key we can rely on.
@dataclass(frozen=True)
class Feature:
    """A named capability advertised by a partition."""

    name: str
    version: str = ""
    quantity: int = 0


@dataclass(frozen=True)
class Resources:
    """Capacity snapshot of a Slurm partition.

    ``wall_time`` is None when the partition has no time limit.
    """

    nodes: int = 0
    mem_per_node: int = 0
    cpu_per_node: int = 0
    wall_time: Optional[timedelta] = None
    features: Tuple[Feature, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        for name in ("nodes", "mem_per_node", "cpu_per_node"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": self.nodes,
            "mem_per_node": self.mem_per_node,
            "cpu_per_node": self.cpu_per_node,
            "wall_time": _dump(self.wall_time),
            "features": [asdict(f) for f in self.features],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Resources":
        return cls(
            nodes=data.get("nodes", 0),
            mem_per_node=data.get("mem_per_node", 0),
            cpu_per_node=data.get("cpu_per_node", 0),
            wall_time=_load_duration(data.get("wall_time")),
            features=tuple(Feature(**f) for f in data.get("features", ())),
        )
