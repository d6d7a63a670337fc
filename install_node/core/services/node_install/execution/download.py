"""
L4 Execution — Downloads through the transfer tool.

Each download is one ``curl`` process streaming straight into a file.
``Download`` separates starting from waiting so the fetcher can keep
two transfers in flight and join them in the order it needs.

A wait can be given a ``threading.Event``; setting it stops the
transfer and raises ``FetchCancelled``.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path

from install_node.core.errors import DownloadError, FetchCancelled

logger = logging.getLogger(__name__)

_TERMINATE_GRACE_S = 5
_CANCEL_POLL_S = 0.1


def _transfer_command(url: str, dest: Path) -> list[str]:
    """Command that fetches ``url`` into ``dest``.

    ``-f`` makes HTTP errors a non-zero exit instead of saving the
    error page; ``-L`` follows the redirects release hosts use.
    """
    return ["curl", "-fsSL", "-o", str(dest), url]


class Download:
    """One in-flight transfer of ``url`` into ``dest``."""

    def __init__(self, url: str, dest: Path) -> None:
        self.url = url
        self.dest = dest
        self._proc: subprocess.Popen[bytes] | None = None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def start(self) -> Download:
        """Launch the transfer process.  Returns ``self`` for chaining.

        Raises:
            DownloadError: If the transfer tool cannot be started.
        """
        cmd = _transfer_command(self.url, self.dest)
        logger.debug("Starting transfer: %s", " ".join(cmd))
        try:
            self._proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise DownloadError(
                f"Couldn't start download of {self.url}: {e}", url=self.url,
            ) from e
        return self

    def wait(self, cancel: threading.Event | None = None) -> Path:
        """Block until the transfer ends.

        Args:
            cancel: Checked while the transfer runs; once set, the
                transfer is terminated.

        Returns:
            The destination path.

        Raises:
            DownloadError: If the transfer exited non-zero or left no file.
            FetchCancelled: If ``cancel`` was set first.
        """
        if self._proc is None:
            raise DownloadError(f"Download of {self.url} was never started", url=self.url)

        if cancel is not None:
            while self._proc.poll() is None:
                if cancel.wait(_CANCEL_POLL_S):
                    self.terminate()
                    raise FetchCancelled(f"Download of {self.url} cancelled")

        _, stderr = self._proc.communicate()
        if self._proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[-500:]
            raise DownloadError(
                f"Couldn't download {self.dest.name} from {self.url}"
                + (f": {detail}" if detail else f" (exit {self._proc.returncode})"),
                url=self.url,
            )
        if not self.dest.is_file():
            raise DownloadError(
                f"Download of {self.url} produced no file at {self.dest}", url=self.url,
            )
        return self.dest

    def terminate(self) -> None:
        """Stop the transfer if it is still running, and reap it."""
        if self._proc is None or self._proc.poll() is not None:
            return
        logger.debug("Terminating transfer of %s", self.url)
        self._proc.terminate()
        try:
            self._proc.wait(timeout=_TERMINATE_GRACE_S)
        except subprocess.TimeoutExpired:
            self._proc.kill()
            self._proc.wait()


def download_file(url: str, dest: Path, cancel: threading.Event | None = None) -> Path:
    """Download ``url`` to ``dest`` and wait for it."""
    dl = Download(url, dest).start()
    try:
        return dl.wait(cancel)
    finally:
        dl.terminate()
