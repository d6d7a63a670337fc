"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from install_node.core.services.node_install.domain.checksums import (  # noqa: F401
    find_manifest_digest,
    parse_manifest,
)
from install_node.core.services.node_install.domain.distributions import (  # noqa: F401
    package_manager_archive_roots,
    plan_package_manager,
    plan_runtime,
    runtime_archive_name,
)
