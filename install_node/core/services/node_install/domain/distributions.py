"""
L1 Domain — Distribution planning (pure).

Builds the two ``DistributionSpec`` values for a run from the settings:
archive names, download URLs, integrity references, install targets.

Integrity references always point at the origin hosts
(``*_INTEGRITY_HOST``), even when a mirror serves the archive, so a
compromised mirror cannot ship a matching checksum or signature.
"""

from __future__ import annotations

from install_node.core.config.loader import InstallSettings
from install_node.core.models.distribution import DistributionSpec, VerificationMode

RUNTIME_CHECKSUM_FILE = "SHASUMS256.txt"


def runtime_archive_name(version: str, variant: str, build_from_source: bool) -> str:
    """``node-v8.9.4-linux-x64`` or, for source builds, ``node-v8.9.4``."""
    name = f"node-{version}"
    if not build_from_source and variant:
        name = f"{name}-{variant}"
    return name


def plan_runtime(settings: InstallSettings) -> DistributionSpec:
    """Distribution spec for Node.js (checksum-verified)."""
    version = settings.runtime_version
    archive = runtime_archive_name(
        version, settings.runtime_variant, settings.build_from_source,
    )
    return DistributionSpec(
        name="node",
        label="Node.js",
        version=version,
        variant=settings.runtime_variant,
        artifact_url=f"{settings.runtime_mirror}/{version}/{archive}.tar.gz",
        reference_url=(
            f"{settings.runtime_integrity_host}/{version}/{RUNTIME_CHECKSUM_FILE}"
        ),
        verification=VerificationMode.CHECKSUM,
        install_path=settings.runtime_folder,
        archive_roots=(archive,),
    )


def package_manager_archive_roots(version: str) -> tuple[str, ...]:
    """Root directory candidates inside a Yarn release tarball.

    Early releases unpack to ``dist/``, later ones to ``yarn-<version>/``.
    """
    return ("dist", f"yarn-{version}")


def plan_package_manager(settings: InstallSettings) -> DistributionSpec:
    """Distribution spec for Yarn (signature-verified)."""
    version = settings.pkgmgr_version
    archive = f"yarn-{version}.tar.gz"
    return DistributionSpec(
        name="yarn",
        label="Yarn",
        version=version,
        artifact_url=f"{settings.pkgmgr_mirror}/{version}/{archive}",
        reference_url=f"{settings.pkgmgr_integrity_host}/{version}/{archive}.asc",
        verification=VerificationMode.SIGNATURE,
        install_path=settings.pkgmgr_folder,
        archive_roots=package_manager_archive_roots(version),
    )
