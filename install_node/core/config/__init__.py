"""
Configuration — immutable install settings built once at startup.
"""

from install_node.core.config.loader import (  # noqa: F401
    InstallSettings,
    load_settings,
)
