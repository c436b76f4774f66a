"""
Zip archives of directory trees.

Archives are rooted at the base name of the archived path: zipping
``/data/results`` yields members ``results/``, ``results/out.txt`` and so
on. Extraction refuses any member that would land outside the destination
directory.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import zipfile
from typing import List, Tuple, Union

from .errors import PathTraversalError

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_COPY_BUFSIZE = 64 * 1024


def _walk(source: str) -> List[Tuple[str, bool]]:
    """Return every path below ``source`` (inclusive) with a directory flag."""

    def _raise(exc: OSError) -> None:
        raise exc

    if not os.path.isdir(source):
        os.stat(source)
        return [(source, False)]

    entries: List[Tuple[str, bool]] = [(source, True)]
    for root, dirs, files in os.walk(source, onerror=_raise):
        dirs.sort()
        for name in dirs:
            entries.append((os.path.join(root, name), True))
        for name in sorted(files):
            entries.append((os.path.join(root, name), False))
    return entries


def zip_path(source: PathLike, target: PathLike) -> None:
    """Write ``source`` (a file or directory tree) into the zip file ``target``.

    Member names are relative to the parent directory of ``source`` and
    directories end with ``/``. File contents are deflated. Symbolic links
    are followed; errors while walking abort the whole operation.
    """
    source = os.path.normpath(os.fspath(source))
    target = os.fspath(target)
    parent = os.path.dirname(os.path.abspath(source))
    target_abs = os.path.abspath(target)

    logger.debug("Zipping %s into %s", source, target)
    with zipfile.ZipFile(
        target, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
    ) as archive:
        for path, is_dir in _walk(source):
            if os.path.abspath(path) == target_abs:
                continue
            name = os.path.relpath(os.path.abspath(path), parent).replace(os.sep, "/")
            if is_dir:
                name += "/"
            archive.write(path, arcname=name)


def _resolve_member(destination: str, name: str) -> str:
    path = os.path.normpath(os.path.join(destination, name))
    if not path.startswith(destination + os.sep):
        raise PathTraversalError(name, destination)
    return path


def unzip_path(source: PathLike, destination: PathLike) -> None:
    """Extract the zip file ``source`` into ``destination``.

    Existing files are truncated and overwritten. Each file gets the mode
    stored in the archive. Extraction stops at the first failing member and
    nothing already written is rolled back.

    Raises:
        PathTraversalError: If a member name resolves outside ``destination``.
    """
    destination = os.path.normpath(os.path.abspath(os.fspath(destination)))

    logger.debug("Unzipping %s into %s", source, destination)
    with zipfile.ZipFile(os.fspath(source)) as archive:
        for info in archive.infolist():
            path = _resolve_member(destination, info.filename)

            if info.is_dir():
                os.makedirs(path, exist_ok=True)
                continue

            os.makedirs(os.path.dirname(path), exist_ok=True)
            mode = stat.S_IMODE(info.external_attr >> 16) or 0o644
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "wb") as dst, archive.open(info) as src:
                shutil.copyfileobj(src, dst, _COPY_BUFSIZE)
