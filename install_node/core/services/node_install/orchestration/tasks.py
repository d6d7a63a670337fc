"""
L5 Orchestration — Install tasks for Node.js and Yarn.

Each task has two phases:

    fetch()    download + verify + unpack into the install folder.
               Safe to run concurrently with the other task's fetch.
    install()  link, build, purge, edit shell rc, verify the result.
               Destructive; the orchestrator runs these one at a time,
               Node first (``yarn`` is a Node script).

Tasks log through their own logger so the orchestrator can buffer
one of them while it runs in the background, and carry a cancel event
it sets to stop a fetch early.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from install_node.core.config.loader import InstallSettings
from install_node.core.models.distribution import DistributionSpec
from install_node.core.models.outcome import FetchOutcome
from install_node.core.services.node_install.domain.distributions import (
    plan_package_manager,
    plan_runtime,
)
from install_node.core.services.node_install.execution.build import build_from_source
from install_node.core.services.node_install.execution.download import download_file
from install_node.core.services.node_install.execution.fetcher import fetch_distribution
from install_node.core.services.node_install.execution.linking import (
    append_shell_line,
    link_executable,
    path_export_line,
    purge,
    purge_paths,
)
from install_node.core.services.node_install.execution.post_install import (
    query_output,
    query_version,
)
from install_node.core.services.node_install.execution.verify import (
    create_keyring,
    import_public_key,
    remove_keyring,
)

# Removed from the binary Node tree unless KEEP_EXTRAS
RUNTIME_EXTRAS: tuple[str, ...] = (
    "lib/node_modules",
    "*.md",
    "LICENSE",
    "bin/npm",
    "bin/npx",
    "bin/corepack",
    "share/man",
    "share/doc",
)

# Removed from the Yarn tree unless KEEP_EXTRAS
PKGMGR_EXTRAS: tuple[str, ...] = (
    "LICENSE",
    "*.md",
    "**/LICENSE",
    "**/*.md",
    "end_to_end_tests",
)

# Bundled npm executables linked when KEEP_EXTRAS
RUNTIME_BUNDLED_TOOLS: tuple[str, ...] = ("npm", "npx")


class InstallTask:
    """Common shape of a two-phase install task."""

    name = ""
    label = ""

    def __init__(self, settings: InstallSettings, log: logging.Logger | None = None) -> None:
        self.settings = settings
        self.log = log or logging.getLogger(f"{__name__}.{self.name}")
        self.cancelled = threading.Event()
        self.spec: DistributionSpec = self.plan()

    def cancel(self) -> None:
        """Ask a running ``fetch()`` to stop as soon as it can."""
        self.cancelled.set()

    def plan(self) -> DistributionSpec:
        raise NotImplementedError

    def fetch(self) -> FetchOutcome:
        raise NotImplementedError

    def install(self) -> str:
        """Run the install phase.  Returns the installed version string."""
        raise NotImplementedError


class RuntimeInstallTask(InstallTask):
    """Node.js: prebuilt binaries, or a source build for ``make``."""

    name = "node"
    label = "Node.js"

    def plan(self) -> DistributionSpec:
        return plan_runtime(self.settings)

    def fetch(self) -> FetchOutcome:
        return fetch_distribution(
            self.spec,
            scratch_root=self.settings.scratch_root,
            log=self.log,
            cancel=self.cancelled,
        )

    @property
    def executable(self) -> Path:
        """Where ``node`` is found once installed."""
        if self.settings.build_from_source:
            return self.settings.source_prefix / "bin" / "node"
        return self.settings.bin_dir / "node"

    def install(self) -> str:
        s = self.settings
        folder = s.runtime_folder

        if s.build_from_source:
            self.log.info("Building Node")
            build_from_source(folder, s.source_prefix, log=self.log)
        else:
            self.log.info("Linking Node")
            link_executable(s.bin_dir / "node", folder / "bin" / "node")

        if not s.keep_extras:
            self.log.info("Purging node extras")
            if s.build_from_source:
                removed = purge_paths((
                    s.source_prefix / "bin" / "npm",
                    s.source_prefix / "bin" / "npx",
                    s.source_prefix / "lib" / "node_modules" / "npm",
                ))
            else:
                removed = purge(folder, RUNTIME_EXTRAS)
            self.log.debug("Removed %d node extras", len(removed))
        elif not s.build_from_source:
            # A source build's `make install` already put npm under the prefix
            self.log.info("Linking NPM")
            for tool in RUNTIME_BUNDLED_TOOLS:
                bundled = folder / "bin" / tool
                if bundled.exists() or bundled.is_symlink():
                    link_executable(s.bin_dir / tool, bundled)

        version = query_version(self.executable, "-v", "Node not properly installed")
        self.log.info("Installed Node.js: %s", version)
        return version


class PackageManagerInstallTask(InstallTask):
    """Yarn: signature-verified release tarball."""

    name = "yarn"
    label = "Yarn"

    def plan(self) -> DistributionSpec:
        return plan_package_manager(self.settings)

    def fetch(self) -> FetchOutcome:
        """Import the maintainers' key into a fresh keyring, then fetch.

        The key is downloaded and imported on every run; nothing is
        reused from an existing trust store.
        """
        s = self.settings
        keyring = create_keyring(s.scratch_root)
        try:
            self.log.info("Loading yarn public key from %s", s.pkgmgr_key_url)
            key_file = download_file(
                s.pkgmgr_key_url, keyring / "maintainers.gpg", self.cancelled,
            )
            import_public_key(key_file, keyring)
            return fetch_distribution(
                self.spec,
                scratch_root=s.scratch_root,
                gnupg_home=keyring,
                log=self.log,
                cancel=self.cancelled,
            )
        finally:
            remove_keyring(keyring)

    @property
    def executable(self) -> Path:
        return self.settings.bin_dir / "yarn"

    def install(self) -> str:
        s = self.settings
        folder = s.pkgmgr_folder

        self.log.info("Linking Yarn")
        link_executable(self.executable, folder / "bin" / "yarn")

        global_bin = query_output(
            self.executable, ["global", "bin"], "Yarn not properly installed",
        )
        if global_bin:
            line = path_export_line(global_bin.splitlines()[-1].strip())
            if append_shell_line(s.shell_rc_file, line):
                self.log.info("Added yarn global bin to %s", s.shell_rc_file)
        else:
            self.log.warning("yarn global bin printed nothing; PATH left unchanged")

        if not s.keep_extras:
            self.log.info("Purging yarn extras")
            removed = purge(folder, PKGMGR_EXTRAS)
            self.log.debug("Removed %d yarn extras", len(removed))

        version = query_version(self.executable, "--version", "Yarn not properly installed")
        self.log.info("Installed yarn: %s", version)
        return version
