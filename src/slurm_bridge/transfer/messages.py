"""
Messages exchanged with the remote agent.

Messages are plain dataclasses. On the wire each one is a msgpack map of
its fields, so binary chunks travel as raw bytes without re-encoding.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import msgpack

SERVICE_NAME = "slurm_bridge.WorkloadManager"

M = TypeVar("M")


@dataclass
class Empty:
    pass


@dataclass
class ZipRequest:
    path: str = ""
    target: str = ""


@dataclass
class UnzipRequest:
    source: str = ""
    path: str = ""


@dataclass
class CreateFileRequest:
    """One message of a CreateFile stream.

    The first message carries ``path``; every later one carries ``content``.
    """

    path: str = ""
    content: bytes = b""


@dataclass
class OpenFileRequest:
    path: str = ""


@dataclass
class Chunk:
    content: bytes = b""


@dataclass
class SubmitJobRequest:
    script: str = ""
    partition: str = ""


@dataclass
class SubmitJobResponse:
    job_id: int = 0


@dataclass
class JobRequest:
    job_id: int = 0


@dataclass
class JobInfoResponse:
    info: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class JobStepsResponse:
    steps: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class PartitionsResponse:
    names: List[str] = field(default_factory=list)


@dataclass
class ResourcesRequest:
    partition: str = ""


@dataclass
class ResourcesResponse:
    resources: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkloadInfoResponse:
    name: str = ""
    version: str = ""


def encode(message: Any) -> bytes:
    return msgpack.packb(asdict(message), use_bin_type=True)


def decoder(cls: Type[M]) -> Callable[[bytes], M]:
    """Return a deserializer producing ``cls`` instances.

    Unknown keys are dropped so older peers can talk to newer ones.
    """
    names = {f.name for f in fields(cls)}

    def decode(data: bytes) -> M:
        raw: Optional[Dict[str, Any]] = msgpack.unpackb(data, raw=False)
        values = {k: v for k, v in (raw or {}).items() if k in names}
        return cls(**values)

    return decode


def method_path(name: str) -> str:
    return f"/{SERVICE_NAME}/{name}"
