"""
install-node — fast, verified Node.js + Yarn installs for container images.
"""

__version__ = "0.1.0"
