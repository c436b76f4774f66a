"""
Chunked file transfer between a client and the remote agent.

The agent (``agent``) serves archive and file streaming RPCs over gRPC;
``client.AgentClient`` calls them and ``results`` builds the upload and
download flows on top.
"""

from .agent import WorkloadManagerServicer, create_agent_server, serve
from .client import AgentClient, RemoteTail, normalize_address
from .results import download, upload

__all__ = [
    "AgentClient",
    "RemoteTail",
    "WorkloadManagerServicer",
    "create_agent_server",
    "download",
    "normalize_address",
    "serve",
    "upload",
]
