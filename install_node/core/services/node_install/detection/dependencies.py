"""
L3 Detection — External tool preflight.

Read-only probes for the command-line tools the installer shells out
to.  Runs before any network activity so a missing tool fails the
build in the first second instead of after a download.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Any

from install_node.core.errors import DependencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolRequirement:
    """One external tool, satisfied by any of its candidate binaries."""

    name: str
    binaries: tuple[str, ...]
    reason: str


# Always needed
CORE_TOOLS: tuple[ToolRequirement, ...] = (
    ToolRequirement("git", ("git",), "Git required for download several node packages!"),
    ToolRequirement("curl", ("curl",), "curl required to download everything!"),
    ToolRequirement("gpg", ("gpg",), "GNUPG required to verify the downloads!"),
)

# Needed to compile node; otherwise only recommended for native npm modules
BUILD_TOOLS: tuple[ToolRequirement, ...] = (
    ToolRequirement("python", ("python3", "python"), "Python"),
    ToolRequirement("make", ("make",), "Make"),
    ToolRequirement("g++", ("g++",), "g++"),
)


@dataclass
class DependencyReport:
    """Outcome of a preflight run."""

    found: dict[str, str] = field(default_factory=dict)     # name → path
    missing: list[str] = field(default_factory=list)        # mandatory only
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "found": dict(self.found),
            "missing": list(self.missing),
            "warnings": list(self.warnings),
        }


def _which_any(binaries: tuple[str, ...]) -> str | None:
    for binary in binaries:
        path = shutil.which(binary)
        if path:
            return path
    return None


def check_dependencies(build_from_source: bool) -> DependencyReport:
    """Probe PATH for every tool the run may need.

    Args:
        build_from_source: Whether the runtime will be compiled, which
            makes the build toolchain mandatory.

    Returns:
        A ``DependencyReport``; never raises.
    """
    report = DependencyReport()

    for req in CORE_TOOLS:
        path = _which_any(req.binaries)
        if path:
            report.found[req.name] = path
        else:
            logger.error(req.reason)
            report.missing.append(req.name)

    for req in BUILD_TOOLS:
        path = _which_any(req.binaries)
        if path:
            report.found[req.name] = path
        elif build_from_source:
            logger.error("%s required to make node!", req.reason)
            report.missing.append(req.name)
        else:
            message = f"WARNING: {req.reason} recommended to build some NPM packages!"
            logger.warning(message)
            report.warnings.append(message)

    return report


def require_dependencies(build_from_source: bool) -> DependencyReport:
    """Run the preflight and fail on any missing mandatory tool.

    Raises:
        DependencyError: Naming every missing mandatory tool.
    """
    report = check_dependencies(build_from_source)
    if not report.ok:
        raise DependencyError(
            f"Missing required tools: {', '.join(report.missing)}",
            missing=report.missing,
        )
    return report
