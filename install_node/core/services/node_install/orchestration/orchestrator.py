"""
L5 Orchestration — Run both installs with overlapping downloads.

Sequence::

    yarn fetch  ──(background, logs buffered)──┐
    node fetch  ──(foreground, logs live)──────┤ join
                                               ├─ replay yarn logs
                                               ├─ fail if either fetch failed
                                               ├─ node install
                                               └─ yarn install

Fetch phases overlap; install phases run one after the other and only
once both fetches succeeded.  A failed node fetch cancels the yarn
fetch instead of waiting for it.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from install_node.core.config.loader import InstallSettings
from install_node.core.errors import FetchCancelled, InstallError
from install_node.core.models.outcome import FetchOutcome, FetchReport
from install_node.core.observability.log_buffer import BufferedLogSink
from install_node.core.services.node_install.orchestration.tasks import (
    InstallTask,
    PackageManagerInstallTask,
    RuntimeInstallTask,
)

logger = logging.getLogger(__name__)

SEPARATOR = "~" * 32


@dataclass
class InstallResult:
    """What a completed run installed."""

    report: FetchReport
    versions: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"fetch": self.report.to_dict(), "versions": dict(self.versions)}


def _run_fetch_phase(task: InstallTask) -> FetchOutcome:
    """Run ``task.fetch()``, turning a failure into a failure outcome.

    The error is logged through the task's logger so it is replayed
    with the rest of a background task's output.  A filesystem error
    nothing below wrapped is reported as an ``InstallError`` too.
    """
    try:
        return task.fetch()
    except FetchCancelled as e:
        task.log.warning("%s download stopped: %s", task.label, e.message)
        return FetchOutcome.failure(task.label, e)
    except InstallError as e:
        task.log.error("ERROR: %s", e.message)
        return FetchOutcome.failure(task.label, e)
    except OSError as e:
        error = InstallError(f"{task.label}: {e}")
        task.log.error("ERROR: %s", error.message)
        return FetchOutcome.failure(task.label, error)


def fetch_all(
    foreground: InstallTask,
    background: InstallTask,
    *,
    buffer_background: bool = True,
) -> FetchReport:
    """Run both fetch phases at once and collect their outcomes.

    The background task's records are held in a ``BufferedLogSink``
    and replayed as one block after the join (unless
    ``buffer_background`` is False, in which case both log live).

    When the foreground fetch fails the background one is cancelled
    rather than waited out, so nothing more is written to its install
    folder.

    Returns:
        A report with the foreground outcome first.
    """
    sink = BufferedLogSink(background.log).attach() if buffer_background else None
    report = FetchReport()

    logger.info("Downloading %s in the background", background.label)
    try:
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="install-node") as pool:
            future = pool.submit(_run_fetch_phase, background)
            outcome = _run_fetch_phase(foreground)
            report.add(outcome)
            if outcome.failed:
                background.cancel()
            report.add(future.result())
    finally:
        if sink is not None:
            sink.replay()

    return report


def run_install(
    settings: InstallSettings,
    *,
    runtime_task: InstallTask | None = None,
    pkgmgr_task: InstallTask | None = None,
) -> InstallResult:
    """Install Node.js and Yarn as configured.

    Args:
        settings: Validated settings.
        runtime_task: Override the Node.js task (tests).
        pkgmgr_task: Override the Yarn task (tests).

    Returns:
        ``InstallResult`` with both installed versions.

    Raises:
        InstallError: The first failure; a foreground (Node.js) fetch
            failure wins over a background one.
    """
    runtime = runtime_task or RuntimeInstallTask(settings)
    pkgmgr = pkgmgr_task or PackageManagerInstallTask(settings)

    report = fetch_all(
        runtime, pkgmgr, buffer_background=not settings.interleave_logs,
    )

    error = report.first_error()
    if error is not None:
        for outcome in report.failed:
            if isinstance(outcome.error, FetchCancelled):
                continue
            logger.error("Error while downloading %s", outcome.label)
        raise error

    result = InstallResult(report=report)
    logger.info(SEPARATOR)
    result.versions[runtime.name] = runtime.install()
    result.versions[pkgmgr.name] = pkgmgr.install()
    logger.info(SEPARATOR)
    return result
