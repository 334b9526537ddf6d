"""Persistence-facing shapes for the IAM ports.

Repositories never see plaintext PII: the identity service hands them rows
whose name and email are already field-cipher ciphertext.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class EncryptedIdentityRow:
    """One row of the identities table.

    created_at and updated_at are None on rows built for writing and are
    filled in on rows returned by the repository.
    """

    subject_id: str
    name_ciphertext: str
    email_ciphertext: str
    avatar_url: str | None
    provider: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def was_inserted(self) -> bool:
        """True when the upsert that returned this row created it."""
        return self.created_at is not None and self.created_at == self.updated_at
