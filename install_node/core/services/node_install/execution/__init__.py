"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: subprocess calls, downloads,
archive extraction, symlinks, purges and shell rc edits.
"""

from install_node.core.services.node_install.execution.build import (  # noqa: F401
    build_from_source,
    build_steps,
)
from install_node.core.services.node_install.execution.download import (  # noqa: F401
    Download,
    download_file,
)
from install_node.core.services.node_install.execution.fetcher import (  # noqa: F401
    fetch_distribution,
    target_is_populated,
)
from install_node.core.services.node_install.execution.linking import (  # noqa: F401
    append_shell_line,
    link_executable,
    path_export_line,
    purge,
    purge_paths,
)
from install_node.core.services.node_install.execution.post_install import (  # noqa: F401
    query_output,
    query_version,
)
from install_node.core.services.node_install.execution.subprocess_runner import (  # noqa: F401
    _run_subprocess,
)
from install_node.core.services.node_install.execution.verify import (  # noqa: F401
    create_keyring,
    import_public_key,
    remove_keyring,
    sha256_file,
    verify_artifact,
    verify_checksum,
    verify_signature,
)
