"""Domain-Oriented Observability for IAM application layer.

Probes for application service operations following Domain-Oriented Observability patterns.
"""

from iam.application.observability.identity_service_probe import (
    DefaultIdentityServiceProbe,
    IdentityServiceProbe,
)

__all__ = [
    "DefaultIdentityServiceProbe",
    "IdentityServiceProbe",
]
