"""
Streaming reads of files that are still being written.

A ``TailReader`` behaves like a binary file opened for reading, except that
reaching the current end of the file does not end the stream: ``read``
waits for more data to be appended (as with an active job log) until the
reader is closed. Closing is safe from another thread and wakes up a
blocked reader, which then returns ``b""``.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import BinaryIO, Iterator, Optional

from .errors import FileNotFound

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_CHUNK_SIZE = 32 * 1024


class TailReader:
    """Follow a file as it grows.

    Args:
        path: File to follow. It must exist when the reader is created.
        poll_interval: Seconds to wait between checks for new data.
    """

    def __init__(self, path: str, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.path = path
        self.poll_interval = poll_interval
        self._lock = threading.Lock()
        self._closed = threading.Event()
        try:
            self._file: Optional[BinaryIO] = open(path, "rb")
        except FileNotFoundError as e:
            raise FileNotFound(f"file is not found: {path}") from e
        logger.debug("Tailing %s", path)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _read_available(self, size: int) -> bytes:
        with self._lock:
            if self._file is None:
                return b""
            position = self._file.tell()
            if os.fstat(self._file.fileno()).st_size < position:
                # file was truncated, start over
                logger.debug("%s truncated, rewinding", self.path)
                self._file.seek(0)
            return self._file.read(size)

    def read(self, size: int = DEFAULT_CHUNK_SIZE) -> bytes:
        """Read up to ``size`` bytes, waiting for data if none is available.

        Returns ``b""`` only once the reader has been closed.
        """
        if size is None or size < 0:
            size = DEFAULT_CHUNK_SIZE
        while not self._closed.is_set():
            data = self._read_available(size)
            if data:
                return data
            self._closed.wait(self.poll_interval)
        return b""

    def close(self) -> None:
        """Stop following the file and release it."""
        self._closed.set()
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read()
            if not chunk:
                return
            yield chunk

    def __enter__(self) -> "TailReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
