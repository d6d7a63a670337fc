"""
L3 Detection — read-only probes of the host system.
"""

from install_node.core.services.node_install.detection.dependencies import (  # noqa: F401
    BUILD_TOOLS,
    CORE_TOOLS,
    DependencyReport,
    check_dependencies,
    require_dependencies,
)
