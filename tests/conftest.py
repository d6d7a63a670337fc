"""
Shared test fixtures and configuration.

Downloads never touch the network: ``local_transfer`` swaps the curl
command for ``cp`` from files registered per URL.  Signature tests
use a throwaway gpg key and are skipped when gpg is not installed.
"""

from __future__ import annotations

import hashlib
import io
import logging
import shutil
import subprocess
import tarfile
import tempfile
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from install_node.core.config.loader import ALIASES, SETTING_KEYS, InstallSettings
from install_node.core.services.node_install.execution import download as download_mod

HAS_GPG = shutil.which("gpg") is not None


# ── Environment isolation ───────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide any install settings the host environment happens to set."""
    for key in (*SETTING_KEYS, *ALIASES.values()):
        monkeypatch.delenv(key, raising=False)
    for key in ("INSTALL_NODE_LOG_LEVEL", "INSTALL_NODE_LOG_FILE", "INSTALL_NODE_LOG_FILE_LEVEL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """CLI tests reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ── Settings ────────────────────────────────────────────────────────


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., InstallSettings]:
    """Factory for settings whose every path lives under ``tmp_path``."""

    def _make(**overrides: Any) -> InstallSettings:
        values: dict[str, Any] = {
            "runtime_version": "v8.9.4",
            "runtime_mirror": "https://mirror.test/node",
            "runtime_integrity_host": "https://origin.test/node",
            "runtime_folder": tmp_path / "var" / "node",
            "pkgmgr_version": "v1.3.2",
            "pkgmgr_mirror": "https://mirror.test/yarn",
            "pkgmgr_integrity_host": "https://origin.test/yarn",
            "pkgmgr_folder": tmp_path / "var" / "yarn",
            "pkgmgr_key_url": "https://keys.test/pubkey.gpg",
            "bin_dir": tmp_path / "usr" / "local" / "bin",
            "shell_rc_file": tmp_path / "etc" / "bash.bashrc",
            "source_prefix": tmp_path / "usr" / "local",
            "scratch_root": tmp_path / "scratch",
        }
        values.update(overrides)
        return InstallSettings(**values)

    return _make


# ── Archives ────────────────────────────────────────────────────────


def _add_file(tf: tarfile.TarFile, name: str, data: bytes, mode: int) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mode = mode
    tf.addfile(info, io.BytesIO(data))


def build_tarball(
    dest: Path,
    root: str,
    files: dict[str, str | bytes],
    *,
    executables: tuple[str, ...] = (),
    symlinks: dict[str, str] | None = None,
) -> Path:
    """Write a ``.tar.gz`` with every entry under ``root/``."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(dest, "w:gz") as tf:
        for rel, content in files.items():
            data = content.encode() if isinstance(content, str) else content
            mode = 0o755 if rel in executables else 0o644
            _add_file(tf, f"{root}/{rel}", data, mode)
        for rel, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name=f"{root}/{rel}")
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tf.addfile(info)
    return dest


@pytest.fixture
def make_tarball() -> Callable[..., Path]:
    """Factory: ``make_tarball(dest, root, files, executables=..., symlinks=...)``."""
    return build_tarball


def sha256_manifest(*paths: Path, extra: str = "") -> str:
    """``sha256sum``-style manifest for ``paths``."""
    lines = [
        f"{hashlib.sha256(p.read_bytes()).hexdigest()}  {p.name}"
        for p in paths
    ]
    return extra + "\n".join(lines) + "\n"


@pytest.fixture
def manifest_for() -> Callable[..., str]:
    return sha256_manifest


# ── Transfers ───────────────────────────────────────────────────────


class LocalTransfer:
    """URL → local file table used in place of curl.

    ``hold(url, script)`` runs a shell snippet before the copy, with
    the source in ``$0`` and the destination in ``$1``; tests use it
    to slow a transfer down or to make it wait for another one.
    """

    def __init__(self) -> None:
        self.sources: dict[str, Path] = {}
        self.holds: dict[str, str] = {}
        self.requested: list[str] = []

    def serve(self, url: str, path: Path) -> None:
        self.sources[url] = path

    def hold(self, url: str, script: str) -> None:
        self.holds[url] = script

    def command(self, url: str, dest: Path) -> list[str]:
        self.requested.append(url)
        source = self.sources.get(url)
        if source is None:
            # curl -f exits 22 on an HTTP error
            return ["sh", "-c", "echo 'curl: (22) 404 Not Found' >&2; exit 22"]
        if url in self.holds:
            return ["sh", "-c", self.holds[url] + '\nexec cp "$0" "$1"', str(source), str(dest)]
        return ["cp", str(source), str(dest)]


@pytest.fixture
def local_transfer(monkeypatch: pytest.MonkeyPatch) -> LocalTransfer:
    transfer = LocalTransfer()
    monkeypatch.setattr(download_mod, "_transfer_command", transfer.command)
    return transfer


# ── GPG ─────────────────────────────────────────────────────────────


class Signer:
    """A throwaway gpg signing key in its own home directory."""

    def __init__(self, uid: str) -> None:
        # Short path: gpg-agent sockets live in the home directory
        self.home = Path(tempfile.mkdtemp(prefix="gpgt-"))
        self.home.chmod(0o700)
        self.uid = uid
        self._gpg(
            "--pinentry-mode", "loopback", "--passphrase", "",
            "--quick-gen-key", uid, "default", "default", "never",
        )

    def _gpg(self, *args: str) -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            ["gpg", "--batch", "--no-tty", "--homedir", str(self.home), *args],
            capture_output=True, check=True, timeout=120,
        )

    def export_public_key(self, dest: Path) -> Path:
        dest.write_bytes(self._gpg("--armor", "--export", self.uid).stdout)
        return dest

    def sign(self, path: Path, dest: Path | None = None) -> Path:
        dest = dest or path.with_name(path.name + ".asc")
        self._gpg(
            "--pinentry-mode", "loopback", "--passphrase", "", "--yes",
            "--armor", "--detach-sign", "--output", str(dest), str(path),
        )
        return dest

    def close(self) -> None:
        subprocess.run(
            ["gpgconf", "--homedir", str(self.home), "--kill", "gpg-agent"],
            capture_output=True, check=False,
        )
        shutil.rmtree(self.home, ignore_errors=True)


@pytest.fixture(scope="session")
def signer() -> Iterator[Signer]:
    if not HAS_GPG:
        pytest.skip("gpg not installed")
    s = Signer("Release Signer <release@example.com>")
    yield s
    s.close()


@pytest.fixture(scope="session")
def other_signer() -> Iterator[Signer]:
    if not HAS_GPG:
        pytest.skip("gpg not installed")
    s = Signer("Someone Else <other@example.com>")
    yield s
    s.close()


# ── Processes ───────────────────────────────────────────────────────


def _commands_mentioning(text: str) -> list[str]:
    found = []
    needle = text.encode()
    for proc in Path("/proc").glob("[0-9]*"):
        try:
            cmdline = (proc / "cmdline").read_bytes()
        except OSError:
            continue
        if needle in cmdline:
            found.append(cmdline.replace(b"\0", b" ").decode(errors="replace").strip())
    return found


@pytest.fixture
def lingering_processes() -> Callable[..., list[str]]:
    """``lingering_processes(text)`` → command lines still mentioning ``text``.

    Polls for a few seconds so daemons that were told to exit get the
    chance to.
    """
    if not Path("/proc/self/cmdline").exists():
        pytest.skip("no /proc")

    def _check(text: str, timeout: float = 5.0) -> list[str]:
        deadline = time.monotonic() + timeout
        found = _commands_mentioning(text)
        while found and time.monotonic() < deadline:
            time.sleep(0.1)
            found = _commands_mentioning(text)
        return found

    return _check
