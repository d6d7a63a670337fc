"""
L4 Execution — Integrity verification.

Proves a downloaded artifact is the one its publisher released, either
against a SHA-256 manifest or a detached OpenPGP signature.  Reads
files and runs ``gpg``; never touches the network.

Signature checks run against an explicit keyring directory
(``GNUPGHOME``) that holds only the keys this run imported, so a key
lying around in ``~/.gnupg`` can never vouch for a download.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path

from install_node.core.errors import IntegrityError, PreconditionError
from install_node.core.models.distribution import VerificationMode
from install_node.core.services.node_install.domain.checksums import find_manifest_digest
from install_node.core.services.node_install.execution.subprocess_runner import _run_subprocess

logger = logging.getLogger(__name__)

_GPG_TIMEOUT_S = 60


def sha256_file(path: Path) -> str:
    """Hex SHA-256 digest of a file, read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(artifact: Path, manifest: Path) -> str:
    """Check ``artifact`` against its line in a ``sha256sum`` manifest.

    Returns:
        The verified digest.

    Raises:
        IntegrityError: If the manifest has no line for the artifact or
            the digests differ.
    """
    try:
        text = manifest.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise IntegrityError(f"Cannot read checksum manifest {manifest}: {e}") from e

    expected = find_manifest_digest(text, artifact.name)
    if expected is None:
        raise IntegrityError(
            f"No SHASUM entry for {artifact.name} in {manifest.name}",
        )

    actual = sha256_file(artifact)
    if actual != expected:
        raise IntegrityError(
            f"Downloaded {artifact.name} SHASUM doesn't match\n"
            f"Expected: {expected}\n"
            f"Got:      {actual}",
            expected=expected,
            actual=actual,
        )
    return actual


def _gpg(args: list[str], gnupg_home: Path) -> dict:
    return _run_subprocess(
        ["gpg", "--batch", "--no-tty", "--homedir", str(gnupg_home), *args],
        timeout=_GPG_TIMEOUT_S,
        # Untranslated diagnostics in error messages
        env_overrides={"LC_ALL": "C"},
    )


def verify_signature(artifact: Path, signature: Path, gnupg_home: Path) -> None:
    """Check a detached signature with the keys in ``gnupg_home``.

    Success needs both a zero exit status and a ``GOODSIG`` status
    line; gpg exits 0 for some conditions that are not a good
    signature from a known key.

    Raises:
        IntegrityError: On a bad signature, unknown key or gpg failure.
    """
    result = _gpg(
        ["--status-fd", "1", "--verify", str(signature), str(artifact)],
        gnupg_home,
    )
    status = result.get("stdout", "")
    if not result["ok"] or "[GNUPG:] GOODSIG" not in status:
        detail = (result.get("stderr") or result.get("error") or "").strip()
        raise IntegrityError(
            f"Couldn't verify {artifact.name} with {signature.name}"
            + (f": {detail}" if detail else ""),
        )


def verify_artifact(
    artifact: Path,
    reference: Path,
    mode: VerificationMode,
    *,
    gnupg_home: Path | None = None,
) -> None:
    """Verify ``artifact`` with its integrity ``reference`` file.

    Args:
        artifact: The downloaded archive.
        reference: Checksum manifest or detached signature.
        mode: Which scheme the reference uses.
        gnupg_home: Keyring for signature mode.

    Raises:
        IntegrityError: If verification fails.
    """
    if mode == VerificationMode.SIGNATURE:
        if gnupg_home is None:
            raise IntegrityError(
                f"No keyring to verify the signature of {artifact.name}",
            )
        verify_signature(artifact, reference, gnupg_home)
        return

    verify_checksum(artifact, reference)


def create_keyring(root: Path | None = None) -> Path:
    """Create an empty, private keyring directory for one run.

    Raises:
        PreconditionError: If the directory cannot be created.
    """
    try:
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)
        home = Path(tempfile.mkdtemp(prefix="install-node-gnupg-", dir=root))
        os.chmod(home, 0o700)
    except OSError as e:
        where = root or tempfile.gettempdir()
        raise PreconditionError(f"Couldn't create a keyring under '{where}': {e}") from e
    return home


def remove_keyring(gnupg_home: Path) -> None:
    """Stop the gpg daemons started for ``gnupg_home``, then delete it.

    ``gpg --import`` and ``--verify`` launch a ``gpg-agent`` bound to
    the home directory; it would outlive the directory otherwise.
    """
    result = _run_subprocess(
        ["gpgconf", "--homedir", str(gnupg_home), "--kill", "all"],
        timeout=_GPG_TIMEOUT_S,
    )
    if not result["ok"]:
        logger.debug(
            "gpgconf --kill failed for %s: %s",
            gnupg_home, (result.get("stderr") or result.get("error") or "").strip(),
        )
    shutil.rmtree(gnupg_home, ignore_errors=True)


def import_public_key(key_file: Path, gnupg_home: Path) -> None:
    """Import a public key (armored or binary) into ``gnupg_home``.

    Raises:
        IntegrityError: If gpg rejects the key.
    """
    result = _gpg(["--import", str(key_file)], gnupg_home)
    if not result["ok"]:
        detail = (result.get("stderr") or result.get("error") or "").strip()
        raise IntegrityError(
            "Couldn't load the public key"
            + (f": {detail}" if detail else ""),
        )
    logger.debug("Imported public key from %s", key_file)
