"""Identity aggregate for IAM context."""

from __future__ import annotations

from dataclasses import dataclass, field

from iam.domain.value_objects import SubjectId


@dataclass(frozen=True)
class Identity:
    """A subject's profile as seen by callers, with PII in plaintext.

    name and email are None only when the stored ciphertext could not be
    decoded while listing; the affected column names are then recorded in
    unreadable_fields.
    """

    subject_id: SubjectId
    name: str | None
    email: str | None
    avatar_url: str | None
    provider: str
    unreadable_fields: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_complete(self) -> bool:
        """True when every encrypted field was decoded."""
        return not self.unreadable_fields

    def __str__(self) -> str:
        """Return string representation without PII."""
        return f"Identity({self.subject_id})"

    def __eq__(self, other: object) -> bool:
        """Identities are equal if they have the same subject id."""
        if not isinstance(other, Identity):
            return False
        return self.subject_id == other.subject_id

    def __hash__(self) -> int:
        """Hash based on subject id for use in sets and dicts."""
        return hash(self.subject_id)
