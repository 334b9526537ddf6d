"""Ports (interfaces) for IAM bounded context.

Ports define the contracts for repositories without specifying
implementation details. This allows for dependency inversion and makes the
domain layer independent of infrastructure.
"""

from iam.ports.exceptions import (
    CorruptedRecordError,
    InvalidClaimError,
    PersistenceError,
)
from iam.ports.models import EncryptedIdentityRow
from iam.ports.repositories import IIdentityRepository

__all__ = [
    "CorruptedRecordError",
    "EncryptedIdentityRow",
    "IIdentityRepository",
    "InvalidClaimError",
    "PersistenceError",
]
