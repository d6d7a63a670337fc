"""
L4 Execution — Fetcher: download, verify, extract, relocate.

``fetch_distribution`` is the heart of the installer.  For one
``DistributionSpec`` it:

    1. refuses to run if the install target is already populated
    2. creates a private scratch workspace
    3. downloads the artifact and its integrity reference concurrently
    4. verifies the artifact
    5. unpacks it and moves the archive root to the install target
    6. removes the workspace, on success and on every failure path

A cancel event stops it between steps and terminates live transfers.

Every failure raises a typed ``InstallError``; there are no retries.
Progress goes to the logger passed in, so the orchestrator can buffer
a background fetch's output.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import threading
import time
from pathlib import Path

from install_node.core.errors import ExtractionError, FetchCancelled, PreconditionError
from install_node.core.models.distribution import DistributionSpec, VerificationMode
from install_node.core.models.outcome import FetchOutcome
from install_node.core.services.node_install.execution.download import Download
from install_node.core.services.node_install.execution.verify import verify_artifact

logger = logging.getLogger(__name__)


def target_is_populated(path: Path) -> bool:
    """True when ``path`` is a directory we could ``cd`` into."""
    return path.is_dir() and os.access(path, os.X_OK)


def _check_target(spec: DistributionSpec) -> Path:
    """Resolve the install target and make sure it is free."""
    target = Path(os.path.realpath(spec.install_path))
    if target_is_populated(target):
        raise PreconditionError(
            f"Install folder for {spec.name}: '{target}' already exists",
        )
    if target.exists():
        raise PreconditionError(
            f"Install path for {spec.name}: '{target}' is occupied",
        )
    return target


def _download_pair(
    spec: DistributionSpec,
    artifact: Path,
    reference: Path,
    cancel: threading.Event | None = None,
) -> None:
    """Run both transfers at once; the artifact is joined first.

    If the artifact fails or the fetch is cancelled, the remaining
    transfer is not waited on; it is stopped so the workspace can be
    released.
    """
    started: list[Download] = []
    try:
        reference_dl = Download(spec.reference_url, reference).start()
        started.append(reference_dl)
        artifact_dl = Download(spec.artifact_url, artifact).start()
        started.append(artifact_dl)

        artifact_dl.wait(cancel)
        reference_dl.wait(cancel)
    finally:
        for dl in started:
            dl.terminate()


def _extract_archive(archive: Path, dest: Path) -> None:
    """Unpack a ``.tar.gz`` into ``dest``.

    The ``data`` filter rejects absolute paths, ``..`` traversal and
    links pointing outside ``dest``.
    """
    try:
        with tarfile.open(archive, "r:gz") as tf:
            tf.extractall(dest, filter="data")
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ExtractionError(f"Couldn't extract {archive.name}: {e}") from e


def _find_archive_root(workspace: Path, spec: DistributionSpec) -> Path:
    for name in spec.archive_roots:
        candidate = workspace / name
        if candidate.is_dir():
            return candidate
    found = sorted(
        p.name for p in workspace.iterdir()
        if p.is_dir()
    )
    raise ExtractionError(
        f"{spec.artifact_name} has no '{' or '.join(spec.archive_roots)}' "
        f"directory (found: {', '.join(found) or 'nothing'})",
    )


def _raise_if_cancelled(cancel: threading.Event | None, spec: DistributionSpec) -> None:
    if cancel is not None and cancel.is_set():
        raise FetchCancelled(f"{spec.label} fetch cancelled")


def _create_workspace(spec: DistributionSpec, scratch_root: Path | None) -> Path:
    try:
        if scratch_root is not None:
            scratch_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"install-node-{spec.name}-", dir=scratch_root))
    except OSError as e:
        where = scratch_root or tempfile.gettempdir()
        raise PreconditionError(
            f"Couldn't create a scratch workspace under '{where}': {e}",
        ) from e


def _relocate(root: Path, target: Path) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(root), str(target))
    except OSError as e:
        raise ExtractionError(f"Couldn't move '{root}' to '{target}': {e}") from e


def fetch_distribution(
    spec: DistributionSpec,
    *,
    scratch_root: Path | None = None,
    gnupg_home: Path | None = None,
    log: logging.Logger | None = None,
    cancel: threading.Event | None = None,
) -> FetchOutcome:
    """Download, verify and unpack ``spec`` into its install path.

    Args:
        spec: What to fetch and where it goes.
        scratch_root: Parent for the scratch workspace (default: system temp).
        gnupg_home: Keyring holding the signer's key (signature mode).
        log: Logger for progress lines (default: this module's).
        cancel: Once set, in-flight transfers are stopped and nothing
            further is written to the install path.

    Returns:
        A success ``FetchOutcome``.

    Raises:
        PreconditionError: The install target already exists, or no
            scratch workspace could be created.
        DownloadError: Either transfer failed.
        IntegrityError: Checksum or signature mismatch.
        ExtractionError: The archive is unreadable, lacks its root or
            cannot be moved into place.
        FetchCancelled: ``cancel`` was set before the fetch finished.
    """
    log = log or logger
    start = time.monotonic()

    log.info("Loading %s from %s", spec.label, spec.artifact_url)
    target = _check_target(spec)

    workspace = _create_workspace(spec, scratch_root)
    log.debug("Scratch workspace for %s: %s", spec.name, workspace)
    try:
        artifact = workspace / spec.artifact_name
        reference = workspace / spec.reference_name

        log.info(
            "Downloading %s and %s in parallel", spec.reference_url, spec.artifact_url,
        )
        _download_pair(spec, artifact, reference, cancel)

        _raise_if_cancelled(cancel, spec)
        verify_artifact(
            artifact, reference, spec.verification, gnupg_home=gnupg_home,
        )
        if spec.verification == VerificationMode.SIGNATURE:
            log.info("Signature verified for %s", artifact.name)
        else:
            log.info("SHASUM match")

        _raise_if_cancelled(cancel, spec)
        log.info("Extracting %s into %s", spec.label, workspace)
        _extract_archive(artifact, workspace)
        root = _find_archive_root(workspace, spec)

        _raise_if_cancelled(cancel, spec)
        log.info("Moving temp folder: '%s' to '%s'", root, target)
        _relocate(root, target)
    finally:
        shutil.rmtree(workspace, ignore_errors=True)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    return FetchOutcome.success(
        spec.label,
        f"{spec.label} {spec.version} unpacked to {target}",
        install_path=str(target),
        duration_ms=elapsed_ms,
    )
