"""
L5 Orchestration — ``__init__.py`` re-exports top-level coordinators.

These are the entry points that external code calls.
"""

from install_node.core.services.node_install.orchestration.orchestrator import (  # noqa: F401
    InstallResult,
    fetch_all,
    run_install,
)
from install_node.core.services.node_install.orchestration.tasks import (  # noqa: F401
    PackageManagerInstallTask,
    RuntimeInstallTask,
)
