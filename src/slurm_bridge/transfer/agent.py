"""gRPC agent exposing the Slurm client to remote callers.

The agent runs on a cluster login node. It serves the file transfer
operations used to move result archives (Zip, Unzip, CreateFile, OpenFile)
along with job control and partition queries backed by ``SlurmClient``.

Usage:
    # Start via CLI
    slurm-bridge agent serve --sock /var/run/syslurm/red-box.sock

    # Or programmatically
    from slurm_bridge.transfer.agent import create_agent_server
    server, _ = create_agent_server(SlurmClient(), "unix:///tmp/agent.sock")
    server.start()
    server.wait_for_termination()
"""

from __future__ import annotations

import logging
from concurrent import futures
from typing import Callable, Iterator, Optional, Tuple

import grpc

from ..client import SlurmClient
from ..tail import DEFAULT_CHUNK_SIZE
from ..errors import (
    BridgeError,
    FileNotFound,
    MissingDependencyError,
    ParseError,
    PathTraversalError,
)
from .messages import (
    SERVICE_NAME,
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
)

logger = logging.getLogger(__name__)


def _status_for(exc: BridgeError) -> grpc.StatusCode:
    if isinstance(exc, FileNotFound):
        return grpc.StatusCode.NOT_FOUND
    if isinstance(exc, (PathTraversalError, ParseError)):
        return grpc.StatusCode.INVALID_ARGUMENT
    if isinstance(exc, MissingDependencyError):
        return grpc.StatusCode.FAILED_PRECONDITION
    return grpc.StatusCode.INTERNAL


def _abort(context: grpc.ServicerContext, exc: BridgeError, method: str) -> None:
    logger.error("%s failed: %s", method, exc)
    context.abort(_status_for(exc), str(exc))


class WorkloadManagerServicer:
    """Implements the agent RPCs on top of a ``SlurmClient``."""

    def __init__(self, client: SlurmClient, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.client = client
        self.chunk_size = chunk_size

    def Zip(self, request: ZipRequest, context: grpc.ServicerContext) -> Empty:
        logger.info("Zipping %s into %s", request.path, request.target)
        try:
            self.client.zip(request.path, request.target)
        except BridgeError as e:
            _abort(context, e, "Zip")
        return Empty()

    def Unzip(self, request: UnzipRequest, context: grpc.ServicerContext) -> Empty:
        logger.info("Unzipping %s into %s", request.source, request.path)
        try:
            self.client.unzip(request.source, request.path)
        except BridgeError as e:
            _abort(context, e, "Unzip")
        return Empty()

    def CreateFile(
        self, request_iterator: Iterator[CreateFileRequest], context: grpc.ServicerContext
    ) -> Empty:
        first = next(request_iterator, None)
        if first is None or not first.path:
            context.abort(
                grpc.StatusCode.INVALID_ARGUMENT,
                "first CreateFile message must carry a path",
            )

        logger.info("Receiving file %s", first.path)
        received = 0
        try:
            with self.client.create(first.path) as out:
                if first.content:
                    out.write(first.content)
                    received += len(first.content)
                for request in request_iterator:
                    out.write(request.content)
                    received += len(request.content)
        except BridgeError as e:
            _abort(context, e, "CreateFile")
        except OSError as e:
            logger.error("CreateFile failed: %s", e)
            context.abort(grpc.StatusCode.INTERNAL, f"could not write {first.path}: {e}")

        logger.debug("Received %d bytes into %s", received, first.path)
        return Empty()

    def OpenFile(
        self, request: OpenFileRequest, context: grpc.ServicerContext
    ) -> Iterator[Chunk]:
        logger.info("Sending file %s", request.path)
        try:
            source = self.client.open(request.path)
        except BridgeError as e:
            _abort(context, e, "OpenFile")
        with source:
            while True:
                data = source.read(self.chunk_size)
                if not data:
                    break
                yield Chunk(content=data)

    def TailFile(
        self, request: OpenFileRequest, context: grpc.ServicerContext
    ) -> Iterator[Chunk]:
        logger.info("Tailing file %s", request.path)
        try:
            reader = self.client.tail(request.path)
        except BridgeError as e:
            _abort(context, e, "TailFile")
        # stop following once the caller goes away
        context.add_callback(reader.close)
        with reader:
            for data in reader:
                yield Chunk(content=data)

    def SubmitJob(
        self, request: SubmitJobRequest, context: grpc.ServicerContext
    ) -> SubmitJobResponse:
        try:
            job_id = self.client.submit(request.script, request.partition)
        except BridgeError as e:
            _abort(context, e, "SubmitJob")
        return SubmitJobResponse(job_id=job_id)

    def CancelJob(self, request: JobRequest, context: grpc.ServicerContext) -> Empty:
        try:
            self.client.cancel(request.job_id)
        except BridgeError as e:
            _abort(context, e, "CancelJob")
        return Empty()

    def JobInfo(self, request: JobRequest, context: grpc.ServicerContext) -> JobInfoResponse:
        try:
            infos = self.client.job_info(request.job_id)
        except BridgeError as e:
            _abort(context, e, "JobInfo")
        return JobInfoResponse(info=[i.to_dict() for i in infos])

    def JobSteps(
        self, request: JobRequest, context: grpc.ServicerContext
    ) -> JobStepsResponse:
        try:
            steps = self.client.job_steps(request.job_id)
        except BridgeError as e:
            _abort(context, e, "JobSteps")
        return JobStepsResponse(steps=[s.to_dict() for s in steps])

    def Partitions(self, request: Empty, context: grpc.ServicerContext) -> PartitionsResponse:
        try:
            names = self.client.partitions()
        except BridgeError as e:
            _abort(context, e, "Partitions")
        return PartitionsResponse(names=names)

    def Resources(
        self, request: ResourcesRequest, context: grpc.ServicerContext
    ) -> ResourcesResponse:
        try:
            resources = self.client.resources(request.partition)
        except BridgeError as e:
            _abort(context, e, "Resources")
        return ResourcesResponse(resources=resources.to_dict())

    def WorkloadInfo(
        self, request: Empty, context: grpc.ServicerContext
    ) -> WorkloadInfoResponse:
        try:
            version = self.client.version()
        except BridgeError as e:
            _abort(context, e, "WorkloadInfo")
        return WorkloadInfoResponse(name="slurm", version=version)


def _handler(
    factory: Callable[..., grpc.RpcMethodHandler],
    behavior: Callable,
    request_cls: type,
) -> grpc.RpcMethodHandler:
    return factory(
        behavior,
        request_deserializer=decoder(request_cls),
        response_serializer=encode,
    )


def generic_handler(servicer: WorkloadManagerServicer) -> grpc.GenericRpcHandler:
    """Build the gRPC handler table for ``servicer``."""
    unary = grpc.unary_unary_rpc_method_handler
    handlers = {
        "Zip": _handler(unary, servicer.Zip, ZipRequest),
        "Unzip": _handler(unary, servicer.Unzip, UnzipRequest),
        "CreateFile": _handler(
            grpc.stream_unary_rpc_method_handler, servicer.CreateFile, CreateFileRequest
        ),
        "OpenFile": _handler(
            grpc.unary_stream_rpc_method_handler, servicer.OpenFile, OpenFileRequest
        ),
        "TailFile": _handler(
            grpc.unary_stream_rpc_method_handler, servicer.TailFile, OpenFileRequest
        ),
        "SubmitJob": _handler(unary, servicer.SubmitJob, SubmitJobRequest),
        "CancelJob": _handler(unary, servicer.CancelJob, JobRequest),
        "JobInfo": _handler(unary, servicer.JobInfo, JobRequest),
        "JobSteps": _handler(unary, servicer.JobSteps, JobRequest),
        "Partitions": _handler(unary, servicer.Partitions, Empty),
        "Resources": _handler(unary, servicer.Resources, ResourcesRequest),
        "WorkloadInfo": _handler(unary, servicer.WorkloadInfo, Empty),
    }
    return grpc.method_handlers_generic_handler(SERVICE_NAME, handlers)


def create_agent_server(
    client: SlurmClient,
    address: str,
    max_workers: int = 10,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Tuple[grpc.Server, int]:
    """Create (but do not start) an agent server listening on ``address``.

    Args:
        client: Slurm client used to serve requests.
        address: ``host:port`` or ``unix://<path>`` to listen on.
        max_workers: Size of the thread pool serving RPCs.
        chunk_size: Bytes per chunk sent by OpenFile.

    Returns:
        The configured ``grpc.Server`` and the bound port (0 for unix sockets).
    """
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
    server.add_generic_rpc_handlers(
        (generic_handler(WorkloadManagerServicer(client, chunk_size)),)
    )
    port = server.add_insecure_port(address)
    logger.debug("Agent bound to %s (port %s)", address, port)
    return server, port


def serve(
    client: SlurmClient,
    address: str,
    max_workers: int = 10,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    grace: Optional[float] = 5.0,
) -> None:
    """Run the agent until interrupted."""
    server, _ = create_agent_server(client, address, max_workers, chunk_size)
    server.start()
    logger.info("Agent listening on %s", address)
    try:
        server.wait_for_termination()
    except KeyboardInterrupt:
        logger.info("Shutting down agent")
        server.stop(grace)
