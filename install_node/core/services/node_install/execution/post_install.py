"""
L4 Execution — Post-install verification.

Runs the freshly linked executables with a version flag.  A tool that
doesn't answer is a failed install, whatever the earlier steps said.
"""

from __future__ import annotations

from pathlib import Path

from install_node.core.errors import PostInstallVerificationError
from install_node.core.services.node_install.execution.subprocess_runner import _run_subprocess

_VERSION_TIMEOUT_S = 30


def query_version(executable: Path, flag: str, failure_message: str) -> str:
    """Return the first line ``executable flag`` prints.

    Raises:
        PostInstallVerificationError: With ``failure_message`` when the
            command fails or prints nothing.
    """
    result = _run_subprocess([str(executable), flag], timeout=_VERSION_TIMEOUT_S)
    output = result.get("stdout", "").strip()
    if not result["ok"] or not output:
        detail = (result.get("stderr") or result.get("error") or "").strip()
        raise PostInstallVerificationError(
            failure_message + (f": {detail}" if detail else ""),
        )
    return output.splitlines()[0].strip()


def query_output(executable: Path, args: list[str], failure_message: str) -> str:
    """Run ``executable args`` and return its stripped stdout.

    Raises:
        PostInstallVerificationError: When the command fails.
    """
    result = _run_subprocess([str(executable), *args], timeout=_VERSION_TIMEOUT_S)
    if not result["ok"]:
        detail = (result.get("stderr") or result.get("error") or "").strip()
        raise PostInstallVerificationError(
            failure_message + (f": {detail}" if detail else ""),
        )
    return result.get("stdout", "").strip()
