"""
Domain models — Pydantic types for the install pipeline.

All models are re-exported here for convenient access:

    from install_node.core.models import DistributionSpec, FetchOutcome
"""

from install_node.core.models.distribution import DistributionSpec, VerificationMode
from install_node.core.models.outcome import FetchOutcome, FetchReport

__all__ = [
    # distribution.py
    "DistributionSpec",
    # outcome.py
    "FetchOutcome",
    "FetchReport",
    "VerificationMode",
]
