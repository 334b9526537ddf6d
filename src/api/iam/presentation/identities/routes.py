"""HTTP routes for identity sign-in and listing."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from iam.application.services import IdentityService
from iam.dependencies.authentication import get_token_verifier
from iam.dependencies.identity import (
    get_identity_listing_service,
    get_identity_service,
)
from iam.domain.value_objects import IdentityClaim
from iam.ports.exceptions import InvalidClaimError, PersistenceError
from iam.presentation.identities.models import (
    FirebaseLoginRequest,
    IdentityResponse,
    LoginResponse,
)
from shared_kernel.auth import FirebaseTokenVerifier, InvalidTokenError

router = APIRouter(tags=["identities"])


@router.post(
    "/auth/firebase-login",
    response_model=LoginResponse,
    summary="Sign in with a Firebase ID token",
    description="Verify the token, then create or refresh the caller's identity",
    responses={
        200: {"description": "Identity reconciled"},
        400: {"description": "Token carries no usable subject"},
        401: {"description": "Invalid token"},
        500: {"description": "Internal server error"},
    },
)
async def firebase_login(
    request: FirebaseLoginRequest,
    verifier: Annotated[FirebaseTokenVerifier, Depends(get_token_verifier)],
    service: Annotated[IdentityService, Depends(get_identity_service)],
) -> LoginResponse:
    """Sign in (or sign up) with a Firebase ID token.

    Args:
        request: Login request carrying the ID token
        verifier: Firebase token verifier
        service: Identity service bound to a write session

    Returns:
        LoginResponse with the decrypted identity

    Raises:
        HTTPException: 401 if the token is rejected
        HTTPException: 400 if the verified claim has no subject
        HTTPException: 500 if the identity could not be stored or read back
    """
    try:
        verified = await verifier.verify(request.token)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from e

    claim = IdentityClaim(
        subject_id=verified.subject_id,
        name=verified.name,
        email=verified.email,
        avatar_url=verified.picture,
        provider=verified.provider,
    )

    try:
        identity = await service.reconcile(claim)
    except InvalidClaimError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not store identity",
        ) from e

    return LoginResponse(
        message="User logged in successfully",
        user=IdentityResponse.from_domain(identity),
    )


@router.get(
    "/users",
    response_model=list[IdentityResponse],
    summary="List identities",
    description="List every stored identity with PII decrypted",
    responses={
        200: {"description": "Identities listed; unreadable fields are null"},
        500: {"description": "Internal server error"},
    },
)
async def list_users(
    service: Annotated[IdentityService, Depends(get_identity_listing_service)],
) -> list[IdentityResponse]:
    """List all identities.

    A row whose ciphertext cannot be decrypted is still returned, with the
    affected fields null and named in unreadable_fields.

    Raises:
        HTTPException: 500 if storage cannot be read
    """
    try:
        return [
            IdentityResponse.from_domain(identity)
            async for identity in service.list_all()
        ]
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not list identities",
        ) from e
