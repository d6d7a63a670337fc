"""
L4 Execution — Linking, purging and shell init.

The destructive, irreversible part of an install: symlinks into the
system binary directory, deletion of files the image doesn't need,
and the PATH line appended to the system-wide shell rc file.

Only the install phases call these, strictly after both fetches
succeeded, and never concurrently.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from install_node.core.errors import PreconditionError

logger = logging.getLogger(__name__)


def link_executable(link: Path, target: Path) -> Path:
    """Create ``link`` → ``target``, replacing an older symlink.

    Raises:
        PreconditionError: If ``link`` is a real file or directory, or
            the link cannot be written.
    """
    if link.exists() and not link.is_symlink():
        raise PreconditionError(f"Cannot link {link}: a file already exists there")
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink():
            logger.debug("Replacing existing link %s → %s", link, link.readlink())
            link.unlink()
        link.symlink_to(target)
    except OSError as e:
        raise PreconditionError(f"Cannot link {link} to {target}: {e}") from e
    return link


def _remove(path: Path) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        raise PreconditionError(f"Cannot remove {path}: {e}") from e


def _matches(root: Path, pattern: str) -> list[Path]:
    # Literal names bypass glob() so dangling symlinks (bin/npm once
    # lib/node_modules is gone) are still found
    if not any(ch in pattern for ch in "*?["):
        return [root / pattern]
    return sorted(root.glob(pattern), key=lambda p: len(p.parts))


def purge(root: Path, patterns: tuple[str, ...]) -> list[Path]:
    """Delete everything under ``root`` matching any glob in ``patterns``.

    Patterns are relative to ``root`` and may use ``**``.  Missing
    matches are not an error.

    Returns:
        The paths that were removed.
    """
    removed: list[Path] = []
    for pattern in patterns:
        for path in _matches(root, pattern):
            # A parent removed earlier in this pass takes its children with it
            if not path.exists() and not path.is_symlink():
                continue
            _remove(path)
            removed.append(path)
    return removed


def purge_paths(paths: tuple[Path, ...]) -> list[Path]:
    """Delete absolute paths that exist; return the ones removed."""
    removed: list[Path] = []
    for path in paths:
        if path.exists() or path.is_symlink():
            _remove(path)
            removed.append(path)
    return removed


def path_export_line(path_entry: str) -> str:
    """POSIX line that appends ``path_entry`` to ``PATH``."""
    return f'export PATH="${{PATH}}:{path_entry}"'


def append_shell_line(rc_file: Path, line: str) -> bool:
    """Append ``line`` to ``rc_file`` unless it is already there.

    Returns:
        True if the line was written, False if it was present.

    Raises:
        PreconditionError: If the rc file cannot be read or written.
    """
    try:
        existing = ""
        if rc_file.is_file():
            existing = rc_file.read_text(encoding="utf-8")
            if line in existing.splitlines():
                return False

        rc_file.parent.mkdir(parents=True, exist_ok=True)
        with open(rc_file, "a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(line + "\n")
    except OSError as e:
        raise PreconditionError(f"Cannot update shell rc file {rc_file}: {e}") from e
    return True
