"""Identity application service for IAM bounded context.

Reconciles verified identity provider claims into exactly one stored,
encrypted identity per subject, and decrypts identities on the way out.
"""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultIdentityServiceProbe,
    IdentityServiceProbe,
)
from iam.domain.aggregates import Identity
from iam.domain.value_objects import IdentityClaim, SubjectId
from iam.ports.exceptions import (
    CorruptedRecordError,
    InvalidClaimError,
    PersistenceError,
)
from iam.ports.models import EncryptedIdentityRow
from iam.ports.repositories import IIdentityRepository
from shared_kernel.crypto import DecodeError, FieldCipher


class IdentityService:
    """Application service for identity reconciliation and listing.

    Holds no locks: concurrent reconciliations of the same subject are
    serialized by the repository's atomic upsert, which also covers several
    application processes sharing one database.
    """

    def __init__(
        self,
        identity_repository: IIdentityRepository,
        session: AsyncSession,
        cipher: FieldCipher,
        probe: IdentityServiceProbe | None = None,
    ):
        """Initialize IdentityService with dependencies.

        Args:
            identity_repository: Repository for encrypted identity rows
            session: Database session for transaction management
            cipher: Field cipher holding the process-wide key
            probe: Optional domain probe for observability
        """
        self._identity_repository = identity_repository
        self._session = session
        self._cipher = cipher
        self._probe = probe or DefaultIdentityServiceProbe()

    async def reconcile(self, claim: IdentityClaim) -> Identity:
        """Make the stored identity for claim's subject match the claim.

        Inserts the identity on first sight of the subject and replaces
        name, email, avatar and provider on every later call. The result is
        decoded from the row the upsert returned, not from the claim.

        Args:
            claim: Verified identity provider claim

        Returns:
            The stored Identity with name and email decrypted

        Raises:
            InvalidClaimError: If the claim has no usable subject id
            PersistenceError: If the upsert or its commit fails
            CorruptedRecordError: If the returned row cannot be decrypted
        """
        try:
            normalized = claim.normalized()
        except ValueError as e:
            self._probe.claim_rejected(reason=str(e))
            raise InvalidClaimError(str(e)) from e

        subject_id = normalized.subject_id.value
        row = EncryptedIdentityRow(
            subject_id=subject_id,
            name_ciphertext=self._cipher.encode(normalized.name),
            email_ciphertext=self._cipher.encode(normalized.email),
            avatar_url=normalized.avatar_url,
            provider=normalized.provider,
        )

        try:
            # Rolled back on any exception, including cancellation
            async with self._session.begin():
                stored = await self._identity_repository.upsert(row)
        except PersistenceError as e:
            self._probe.identity_reconcile_failed(subject_id=subject_id, error=str(e))
            raise
        except SQLAlchemyError as e:
            self._probe.identity_reconcile_failed(
                subject_id=subject_id, error=type(e).__name__
            )
            raise PersistenceError(
                f"Failed to commit identity {subject_id}"
            ) from e

        name = self._decode_stored(subject_id, "name", stored.name_ciphertext)
        email = self._decode_stored(subject_id, "email", stored.email_ciphertext)

        self._probe.identity_reconciled(
            subject_id=subject_id,
            provider=stored.provider,
            was_created=stored.was_inserted,
        )
        return Identity(
            subject_id=SubjectId(value=stored.subject_id),
            name=name,
            email=email,
            avatar_url=stored.avatar_url,
            provider=stored.provider,
        )

    async def list_all(self) -> AsyncIterator[Identity]:
        """Stream every stored identity, decrypted.

        A field that fails to decode is yielded as None and named in the
        identity's unreadable_fields; the rest of the listing continues.
        Single pass: call list_all() again for a fresh listing.

        Raises:
            PersistenceError: If reading from storage fails
        """
        count = 0
        unreadable_count = 0
        async for row in self._identity_repository.list_all():
            identity = self._decode_listed(row)
            count += 1
            if not identity.is_complete:
                unreadable_count += 1
            yield identity

        self._probe.identities_listed(count=count, unreadable_count=unreadable_count)

    def _decode_stored(self, subject_id: str, field: str, ciphertext: str) -> str:
        try:
            return self._cipher.decode(ciphertext)
        except DecodeError as e:
            self._probe.identity_reconcile_failed(
                subject_id=subject_id, error=f"unreadable {field}"
            )
            raise CorruptedRecordError(subject_id=subject_id, field=field) from e

    def _decode_listed(self, row: EncryptedIdentityRow) -> Identity:
        unreadable: set[str] = set()
        decoded: dict[str, str | None] = {}
        for field, ciphertext in (
            ("name", row.name_ciphertext),
            ("email", row.email_ciphertext),
        ):
            try:
                decoded[field] = self._cipher.decode(ciphertext)
            except DecodeError:
                decoded[field] = None
                unreadable.add(field)
                self._probe.identity_record_unreadable(
                    subject_id=row.subject_id, field=field
                )

        return Identity(
            subject_id=SubjectId(value=row.subject_id),
            name=decoded["name"],
            email=decoded["email"],
            avatar_url=row.avatar_url,
            provider=row.provider,
            unreadable_fields=frozenset(unreadable),
        )
