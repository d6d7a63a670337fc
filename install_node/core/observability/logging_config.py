"""
Logging configuration — set up once by the CLI entrypoint.

Every module does ``logger = logging.getLogger(__name__)``; install
tasks log through a child logger per tool so the orchestrator can
buffer the background one.  Nothing below the CLI configures handlers.

Level precedence:
    --debug / -v / -q  >  INSTALL_NODE_LOG_LEVEL  >  INFO

INFO is the default: a container build log should show each
download, check and link as it happens.  Console lines are bare
messages that read well in ``docker build`` output; DEBUG adds time,
thread and logger name because two fetches run at once.

Optional file output via INSTALL_NODE_LOG_FILE / INSTALL_NODE_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import TextIO

LEVEL_ENV = "INSTALL_NODE_LOG_LEVEL"
FILE_ENV = "INSTALL_NODE_LOG_FILE"
FILE_LEVEL_ENV = "INSTALL_NODE_LOG_FILE_LEVEL"

_FMT_CONSOLE = "%(message)s"
_FMT_DEBUG = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"
_FMT_FILE = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    environ: Mapping[str, str],
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return environ.get(LEVEL_ENV) or "INFO"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a log file to append to.
        log_file_level: Level for the file; defaults to ``level``.
        stream: Console stream (default: ``sys.stderr``).
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(console_level)
    if console_level <= logging.DEBUG:
        console.setFormatter(logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_DEBUG))
    else:
        console.setFormatter(logging.Formatter(_FMT_CONSOLE))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def setup_logging_from_env(environ: Mapping[str, str], level: str) -> None:
    """``setup_logging`` with the file options taken from ``environ``."""
    setup_logging(
        level=level,
        log_file=environ.get(FILE_ENV),
        log_file_level=environ.get(FILE_LEVEL_ENV),
    )


def _parse_level(level: str | None) -> int:
    """Level name → numeric constant; unknown names fall back to INFO."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO
