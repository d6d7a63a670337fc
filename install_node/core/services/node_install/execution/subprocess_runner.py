"""
L4 Execution — Core subprocess runner.

The single place where ``subprocess.run`` is called for blocking
install operations (gpg, version queries, source builds).  Downloads
are the exception: they need two live processes at once and go
through ``execution.download``.

Results are plain dicts so callers decide which failure type to raise.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

# Keep the end of long outputs: compiler and gpg errors come last
_OUTPUT_TAIL = 2000


def _tail(text: str | None) -> str:
    return text[-_OUTPUT_TAIL:] if text else ""


def _run_subprocess(
    cmd: list[str],
    *,
    timeout: int | None = 120,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
) -> dict[str, Any]:
    """Run a command to completion and capture its output.

    Args:
        cmd: Command list; never passed through a shell.
        timeout: Seconds before giving up; None waits forever
            (source builds).
        env_overrides: Variables set on top of the current environment.
        cwd: Working directory for the command.

    Returns:
        ``{"ok": True, "stdout", "stderr", "elapsed_ms"}`` on exit 0;
        ``{"ok": False, "error", ...}`` otherwise, with ``returncode``
        and the output tails when the command ran at all.
    """
    env = {**os.environ, **env_overrides} if env_overrides else None

    logger.debug("Running: %s (cwd=%s)", shlex.join(cmd), cwd or ".")
    start = time.monotonic()
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    result: dict[str, Any] = {
        "ok": proc.returncode == 0,
        "stdout": _tail(proc.stdout),
        "stderr": _tail(proc.stderr),
        "elapsed_ms": int((time.monotonic() - start) * 1000),
    }
    if proc.returncode != 0:
        result["returncode"] = proc.returncode
        result["error"] = f"Command failed (exit {proc.returncode})"
        logger.debug("%s exited %d", cmd[0], proc.returncode)
    return result
