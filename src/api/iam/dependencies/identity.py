"""Identity service dependencies for the IAM routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultIdentityServiceProbe,
    IdentityServiceProbe,
)
from iam.application.services import IdentityService
from iam.infrastructure.identity_repository import IdentityRepository
from infrastructure.database.dependencies import get_read_session, get_write_session
from infrastructure.settings import get_crypto_settings
from shared_kernel.crypto import FieldCipher
from shared_kernel.observability_context import ObservationContext


@lru_cache
def get_field_cipher() -> FieldCipher:
    """Get the process-wide field cipher.

    The key is read from settings once; every request shares the instance.

    Raises:
        pydantic.ValidationError: If the crypto key is missing or malformed
    """
    return FieldCipher(get_crypto_settings().key_bytes)


def get_identity_service_probe(request: Request) -> IdentityServiceProbe:
    """Get IdentityServiceProbe bound to the current request.

    Args:
        request: Incoming request; its X-Request-ID header and path are
            attached to every event the probe emits

    Returns:
        DefaultIdentityServiceProbe instance for observability
    """
    context = ObservationContext(
        request_id=request.headers.get("x-request-id"),
        route=request.url.path,
    )
    return DefaultIdentityServiceProbe().with_context(context)


def get_identity_service(
    session: Annotated[AsyncSession, Depends(get_write_session)],
    cipher: Annotated[FieldCipher, Depends(get_field_cipher)],
    probe: Annotated[IdentityServiceProbe, Depends(get_identity_service_probe)],
) -> IdentityService:
    """Get IdentityService bound to a write session (reconciliation).

    Args:
        session: Async database session
        cipher: Process-wide field cipher
        probe: Identity service probe

    Returns:
        IdentityService instance
    """
    return IdentityService(
        identity_repository=IdentityRepository(session=session),
        session=session,
        cipher=cipher,
        probe=probe,
    )


def get_identity_listing_service(
    session: Annotated[AsyncSession, Depends(get_read_session)],
    cipher: Annotated[FieldCipher, Depends(get_field_cipher)],
    probe: Annotated[IdentityServiceProbe, Depends(get_identity_service_probe)],
) -> IdentityService:
    """Get IdentityService bound to a read session (listing only).

    Args:
        session: Async read-only database session
        cipher: Process-wide field cipher
        probe: Identity service probe

    Returns:
        IdentityService instance
    """
    return IdentityService(
        identity_repository=IdentityRepository(session=session),
        session=session,
        cipher=cipher,
        probe=probe,
    )
