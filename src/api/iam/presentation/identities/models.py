"""Pydantic models for identity API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from iam.domain.aggregates import Identity


class FirebaseLoginRequest(BaseModel):
    """Request model for signing in with a Firebase ID token."""

    token: str = Field(..., description="Firebase ID token", min_length=1)


class IdentityResponse(BaseModel):
    """Response model for an identity, PII decrypted."""

    subject_id: str = Field(..., description="Identity provider subject id")
    name: str | None = Field(..., description="Display name (null if unreadable)")
    email: str | None = Field(..., description="Email (null if unreadable)")
    avatar: str | None = Field(default=None, description="Avatar URL")
    provider: str = Field(..., description="Sign-in provider")
    unreadable_fields: list[str] = Field(
        default_factory=list,
        description="Encrypted fields that could not be decrypted",
    )

    @classmethod
    def from_domain(cls, identity: Identity) -> IdentityResponse:
        """Convert domain Identity aggregate to API response."""
        return cls(
            subject_id=identity.subject_id.value,
            name=identity.name,
            email=identity.email,
            avatar=identity.avatar_url,
            provider=identity.provider,
            unreadable_fields=sorted(identity.unreadable_fields),
        )


class LoginResponse(BaseModel):
    """Response model for a successful sign-in."""

    message: str = Field(..., description="Human-readable outcome")
    user: IdentityResponse = Field(..., description="The reconciled identity")
