"""
L4 Execution — Build-from-source for the ``make`` runtime variant.

Used where the prebuilt binaries don't run (musl-based images such as
Alpine).  Configures, compiles and installs the fetched source tree
in place, then deletes the tree.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from install_node.core.errors import BuildError
from install_node.core.services.node_install.execution.subprocess_runner import _run_subprocess

logger = logging.getLogger(__name__)


def build_steps(prefix: Path, jobs: int | None = None) -> list[tuple[str, list[str]]]:
    """``(label, command)`` pairs for an autotools-style build."""
    nproc = jobs or os.cpu_count() or 1
    return [
        ("configure", ["./configure", f"--prefix={prefix}"]),
        ("build", ["make", f"-j{nproc}"]),
        ("install", ["make", "install"]),
    ]


def build_from_source(
    source_dir: Path,
    prefix: Path,
    *,
    log: logging.Logger | None = None,
    remove_source: bool = True,
) -> None:
    """Configure, build and install ``source_dir`` under ``prefix``.

    Raises:
        BuildError: Naming the first step that failed, with the tail
            of its stderr.
    """
    log = log or logger
    for label, cmd in build_steps(prefix):
        log.info("Running %s: %s", label, " ".join(cmd))
        result = _run_subprocess(cmd, cwd=str(source_dir), timeout=None)
        if not result["ok"]:
            tail = result.get("stderr", "").strip()[-800:]
            raise BuildError(
                f"Node {label} step failed in {source_dir}: {result['error']}"
                + (f"\n{tail}" if tail else ""),
            )
        log.info("Finished %s in %.1fs", label, result["elapsed_ms"] / 1000)

    if remove_source:
        log.info("Removing source tree %s", source_dir)
        shutil.rmtree(source_dir, ignore_errors=True)
