"""Value objects for IAM domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers and domain concepts.
"""

from __future__ import annotations

from dataclasses import dataclass

ANONYMOUS_NAME = "Anonymous"
PLACEHOLDER_EMAIL_DOMAIN = "firebaseuser.local"
UNKNOWN_PROVIDER = "unknown"

SUBJECT_ID_MAX_LENGTH = 255


@dataclass(frozen=True)
class SubjectId:
    """Identifier for an Identity aggregate.

    Issued by the identity provider (Firebase uid), so it is opaque to us:
    no format is assumed beyond being non-blank and fitting the column.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def from_string(cls, value: str | None) -> SubjectId:
        """Create SubjectId from a provider-issued string.

        Raises:
            ValueError: If value is missing, blank, or too long
        """
        if value is None or not value.strip():
            raise ValueError("Subject id is required")
        if len(value) > SUBJECT_ID_MAX_LENGTH:
            raise ValueError(
                f"Subject id exceeds {SUBJECT_ID_MAX_LENGTH} characters"
            )
        return cls(value=value)


@dataclass(frozen=True)
class NormalizedClaim:
    """An identity claim with every stored field filled in."""

    subject_id: SubjectId
    name: str
    email: str
    avatar_url: str | None
    provider: str


@dataclass(frozen=True)
class IdentityClaim:
    """Profile fields asserted by the identity provider for one subject.

    Only the subject id is guaranteed by the provider. Everything else may
    be absent and is defaulted by normalized().
    """

    subject_id: str | None
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    provider: str | None = None

    def normalized(self) -> NormalizedClaim:
        """Apply deterministic defaults for absent fields.

        Empty strings count as absent. The placeholder email is derived from
        the subject id so the email column is never null.

        Raises:
            ValueError: If the subject id is missing or invalid
        """
        subject_id = SubjectId.from_string(self.subject_id)
        return NormalizedClaim(
            subject_id=subject_id,
            name=self.name or ANONYMOUS_NAME,
            email=self.email or placeholder_email(subject_id),
            avatar_url=self.avatar_url or None,
            provider=self.provider or UNKNOWN_PROVIDER,
        )


def placeholder_email(subject_id: SubjectId) -> str:
    """Email stored for subjects whose provider shares none."""
    return f"{subject_id.value}@{PLACEHOLDER_EMAIL_DOMAIN}"
