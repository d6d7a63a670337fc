"""
Distribution model — what to download, how to check it, where it goes.

One ``DistributionSpec`` is built per tool per run by the planning
functions in ``node_install.domain.distributions`` and never changes
afterwards.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class VerificationMode(str, Enum):
    """Integrity scheme a distribution publishes."""

    CHECKSUM = "checksum"      # SHA-256 manifest ("<hex>  <file>" lines)
    SIGNATURE = "signature"    # detached OpenPGP signature


class DistributionSpec(BaseModel):
    """A downloadable tool distribution."""

    model_config = ConfigDict(frozen=True)

    name: str                               # "node", "yarn"
    label: str                              # human-readable, used in logs
    version: str
    variant: str = ""                       # "linux-x64", "make", ""
    artifact_url: str
    reference_url: str                      # checksum manifest or signature
    verification: VerificationMode
    install_path: Path
    archive_roots: tuple[str, ...]          # candidates, first existing wins

    @property
    def artifact_name(self) -> str:
        """File name of the artifact (trailing URL path segment)."""
        return url_basename(self.artifact_url)

    @property
    def reference_name(self) -> str:
        """File name of the integrity reference."""
        return url_basename(self.reference_url)


def url_basename(url: str) -> str:
    """Return the trailing path segment of a URL, without query string."""
    path = url.split("?", 1)[0].split("#", 1)[0]
    return path.rstrip("/").rsplit("/", 1)[-1]
