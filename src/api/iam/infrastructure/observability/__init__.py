"""Domain-Oriented Observability for IAM infrastructure.

Probes for repository operations following Domain-Oriented Observability patterns.
"""

from iam.infrastructure.observability.identity_repository_probe import (
    DefaultIdentityRepositoryProbe,
    IdentityRepositoryProbe,
)

__all__ = [
    "DefaultIdentityRepositoryProbe",
    "IdentityRepositoryProbe",
]
