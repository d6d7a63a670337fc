"""
Node install service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate layer (domain → detection → execution → orchestration)::

    from install_node.core.services.node_install import run_install
"""

# ── L1: Domain ──
from install_node.core.services.node_install.domain.distributions import (  # noqa: F401
    plan_package_manager,
    plan_runtime,
)

# ── L3: Detection ──
from install_node.core.services.node_install.detection.dependencies import (  # noqa: F401
    check_dependencies,
    require_dependencies,
)

# ── L4: Execution ──
from install_node.core.services.node_install.execution.fetcher import (  # noqa: F401
    fetch_distribution,
)
from install_node.core.services.node_install.execution.verify import (  # noqa: F401
    verify_artifact,
)

# ── L5: Orchestration ──
from install_node.core.services.node_install.orchestration.orchestrator import (  # noqa: F401
    run_install,
)
