"""Client for the remote agent.

``AgentClient`` wraps a gRPC channel and exposes each agent RPC as a plain
method. Transport failures surface as ``TransferError`` carrying the gRPC
status code.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Iterable, Iterator, List, Optional

import grpc

from ..errors import TransferError
from ..tail import DEFAULT_CHUNK_SIZE
from ..models import JobInfo, JobStepInfo, Resources
from .messages import (
    Chunk,
    CreateFileRequest,
    Empty,
    JobInfoResponse,
    JobRequest,
    JobStepsResponse,
    OpenFileRequest,
    PartitionsResponse,
    ResourcesRequest,
    ResourcesResponse,
    SubmitJobRequest,
    SubmitJobResponse,
    UnzipRequest,
    WorkloadInfoResponse,
    ZipRequest,
    decoder,
    encode,
    method_path,
)

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """Turn a bare socket path into a ``unix://`` target."""
    if address.startswith("/"):
        return f"unix://{address}"
    return address


def iter_chunks(source: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    while True:
        data = source.read(chunk_size)
        if not data:
            return
        yield data


class RemoteTail:
    """A remote file being followed through the agent's TailFile stream.

    Iteration yields appended bytes until ``cancel()`` is called. Transport
    failures surface as ``TransferError``.
    """

    def __init__(self, call, path: str):
        self._call = call
        self.path = path
        self._cancelled = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._call:
                yield chunk.content
        except grpc.RpcError as e:
            if self._cancelled and e.code() == grpc.StatusCode.CANCELLED:
                return
            raise TransferError(
                f"err while tailing file {self.path}: {e.details()}", code=e.code()
            ) from e

    def cancel(self) -> None:
        """Stop following; the agent releases the file."""
        self._cancelled = True
        self._call.cancel()


class AgentClient:
    """Typed access to a running agent.

    Args:
        address: ``host:port``, ``unix://<path>`` or a bare socket path.
        channel: An existing channel to use instead of dialing ``address``.
    """

    def __init__(self, address: str = "", channel: Optional[grpc.Channel] = None):
        if channel is None:
            if not address:
                raise ValueError("either address or channel is required")
            channel = grpc.insecure_channel(normalize_address(address))
        self.address = address
        self._channel = channel

        def unary(name, response_cls):
            return channel.unary_unary(
                method_path(name),
                request_serializer=encode,
                response_deserializer=decoder(response_cls),
            )

        self._zip = unary("Zip", Empty)
        self._unzip = unary("Unzip", Empty)
        self._submit = unary("SubmitJob", SubmitJobResponse)
        self._cancel = unary("CancelJob", Empty)
        self._job_info = unary("JobInfo", JobInfoResponse)
        self._job_steps = unary("JobSteps", JobStepsResponse)
        self._partitions = unary("Partitions", PartitionsResponse)
        self._resources = unary("Resources", ResourcesResponse)
        self._workload_info = unary("WorkloadInfo", WorkloadInfoResponse)
        self._create_file = channel.stream_unary(
            method_path("CreateFile"),
            request_serializer=encode,
            response_deserializer=decoder(Empty),
        )
        self._open_file = channel.unary_stream(
            method_path("OpenFile"),
            request_serializer=encode,
            response_deserializer=decoder(Chunk),
        )
        self._tail_file = channel.unary_stream(
            method_path("TailFile"),
            request_serializer=encode,
            response_deserializer=decoder(Chunk),
        )

    def _call(self, what: str, method, request):
        try:
            return method(request)
        except grpc.RpcError as e:
            raise TransferError(f"{what}: {e.details()}", code=e.code()) from e

    def zip(self, path: str, target: str) -> None:
        """Ask the agent to archive ``path`` into ``target`` on its filesystem."""
        self._call("can't zip remote file", self._zip, ZipRequest(path=path, target=target))

    def unzip(self, source: str, path: str) -> None:
        """Ask the agent to extract ``source`` into ``path`` on its filesystem."""
        self._call(
            "can't unzip remote file", self._unzip, UnzipRequest(source=source, path=path)
        )

    def create_file(self, path: str, chunks: Iterable[bytes]) -> None:
        """Stream ``chunks`` into a new file at ``path`` on the agent.

        The first message names the file; each chunk follows in order. The
        call returns once the agent acknowledges the closed stream.
        """

        def requests() -> Iterator[CreateFileRequest]:
            yield CreateFileRequest(path=path)
            for chunk in chunks:
                yield CreateFileRequest(content=chunk)

        self._call("can't send file", self._create_file, requests())

    def open_file(self, path: str) -> Iterator[bytes]:
        """Yield the content of a remote file chunk by chunk."""
        try:
            for chunk in self._open_file(OpenFileRequest(path=path)):
                yield chunk.content
        except grpc.RpcError as e:
            raise TransferError(
                f"err while receiving file: {e.details()}", code=e.code()
            ) from e

    def tail_file(self, path: str) -> RemoteTail:
        """Follow a remote file as it grows.

        Iterate the result for appended bytes; call its ``cancel()`` to stop
        following.
        """
        return RemoteTail(self._tail_file(OpenFileRequest(path=path)), path)

    def submit(self, script: str, partition: str = "") -> int:
        response = self._call(
            "can't submit job",
            self._submit,
            SubmitJobRequest(script=script, partition=partition),
        )
        return response.job_id

    def cancel(self, job_id: int) -> None:
        self._call("can't cancel job", self._cancel, JobRequest(job_id=job_id))

    def job_info(self, job_id: int) -> List[JobInfo]:
        response = self._call(
            "can't get job info", self._job_info, JobRequest(job_id=job_id)
        )
        return [JobInfo.from_dict(i) for i in response.info]

    def job_steps(self, job_id: int) -> List[JobStepInfo]:
        response = self._call(
            "can't get job steps", self._job_steps, JobRequest(job_id=job_id)
        )
        return [JobStepInfo.from_dict(s) for s in response.steps]

    def partitions(self) -> List[str]:
        return self._call("can't list partitions", self._partitions, Empty()).names

    def resources(self, partition: str) -> Resources:
        response = self._call(
            "can't get partition resources",
            self._resources,
            ResourcesRequest(partition=partition),
        )
        return Resources.from_dict(response.resources)

    def workload_info(self) -> WorkloadInfoResponse:
        return self._call("can't get workload info", self._workload_info, Empty())

    def close(self) -> None:
        self._channel.close()

    def __enter__(self) -> "AgentClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
