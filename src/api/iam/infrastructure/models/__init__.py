"""SQLAlchemy ORM models for IAM bounded context.

These models map to database tables and are used by repository implementations.
"""

from iam.infrastructure.models.identity import IdentityModel

__all__ = [
    "IdentityModel",
]
