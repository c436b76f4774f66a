"""
Logging setup shared by the CLI and the agent.

Interactive commands log through a Rich handler. The agent usually runs
under a service manager with stderr going to a journal, so it can ask for
plain timestamped lines instead. ``SLURM_BRIDGE_LOG_LEVEL`` overrides the
level chosen by the caller.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

LOG_LEVEL_ENV_VAR = "SLURM_BRIDGE_LOG_LEVEL"

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# grpc logs every cancelled stream at INFO.
_NOISY_LOGGERS = ("grpc", "grpc._cython.cygrpc", "grpc._server", "grpc._channel")


def resolve_level(level: Union[int, str, None] = None) -> int:
    """Return the effective level, honouring ``SLURM_BRIDGE_LOG_LEVEL``.

    Raises:
        ValueError: If a level name is not a known logging level.
    """
    value: Union[int, str, None] = os.getenv(LOG_LEVEL_ENV_VAR) or level
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {value!r}")
    return resolved


def configure_logging(
    level: Union[int, str, None] = None, use_rich: bool = True
) -> None:
    """Install a single handler on the root logger.

    Args:
        level: Level name or number; defaults to INFO.
        use_rich: Rich output for terminals; plain timestamped lines otherwise.
    """
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(resolve_level(level))

    handler: Optional[logging.Handler] = None
    if use_rich:
        from rich.logging import RichHandler

        handler = RichHandler(
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        # RichHandler renders time and level itself
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)
