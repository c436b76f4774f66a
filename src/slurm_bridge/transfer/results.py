"""Upload and download of result trees through the agent.

Both directions move a single zip archive:

* upload: zip the local path, stream it to ``<remote_dir>/<name>.zip`` and
  have the agent extract it into ``remote_dir``.
* download: have the agent zip the remote path into ``<remote_path>.zip``,
  stream that archive to ``<local_dir>/<name>.zip`` and extract it into
  ``local_dir``.

Any failing step raises; nothing is resumed or cleaned up on the remote side.
"""

from __future__ import annotations

import logging
import os
import posixpath
import tempfile

from ..archive import unzip_path, zip_path
from ..tail import DEFAULT_CHUNK_SIZE
from .client import AgentClient, iter_chunks

logger = logging.getLogger(__name__)


def _archive_name(path: str) -> str:
    return os.path.basename(os.path.normpath(path)) + ".zip"


def upload(
    client: AgentClient,
    local_path: str,
    remote_dir: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Copy ``local_path`` into ``remote_dir`` on the agent.

    Returns:
        The remote path of the uploaded archive.
    """
    remote_archive = posixpath.join(remote_dir, _archive_name(local_path))

    with tempfile.TemporaryDirectory(prefix="slurm-bridge-") as tmp:
        local_archive = os.path.join(tmp, _archive_name(local_path))
        logger.info("Zipping %s", local_path)
        zip_path(local_path, local_archive)

        logger.info("Uploading %s to %s", local_archive, remote_archive)
        with open(local_archive, "rb") as source:
            client.create_file(remote_archive, iter_chunks(source, chunk_size))

    client.unzip(remote_archive, remote_dir)
    logger.info("Uploading data ended")
    return remote_archive


def download(
    client: AgentClient,
    remote_path: str,
    local_dir: str,
) -> str:
    """Copy ``remote_path`` from the agent into ``local_dir``.

    Returns:
        The local path of the downloaded archive.
    """
    remote_archive = remote_path.rstrip("/") + ".zip"
    logger.info("Zipping remote %s", remote_path)
    client.zip(remote_path, remote_archive)

    os.makedirs(local_dir, exist_ok=True)
    local_archive = os.path.join(local_dir, _archive_name(remote_path))

    logger.info("Downloading %s to %s", remote_archive, local_archive)
    received = 0
    with open(local_archive, "wb") as target:
        for chunk in client.open_file(remote_archive):
            target.write(chunk)
            received += len(chunk)
    logger.debug("Received %d bytes", received)

    unzip_path(local_archive, local_dir)
    logger.info("Collecting results ended")
    return local_archive
