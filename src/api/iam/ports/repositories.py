"""Repository protocols (ports) for IAM bounded context."""

from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from iam.ports.models import EncryptedIdentityRow


@runtime_checkable
class IIdentityRepository(Protocol):
    """Repository for encrypted identity rows.

    Implementations must provide the upsert as one atomic storage operation.
    Concurrent upserts for the same subject id are serialized by the store,
    never by application locks.
    """

    async def upsert(self, row: EncryptedIdentityRow) -> EncryptedIdentityRow:
        """Insert the row, or replace name/email/avatar/provider on conflict.

        Runs inside the caller's transaction and returns the stored row from
        the same statement (no separate read).

        Args:
            row: The encrypted row to write

        Returns:
            The row as stored, including timestamps

        Raises:
            PersistenceError: If the storage operation fails
        """
        ...

    def list_all(self) -> AsyncIterator[EncryptedIdentityRow]:
        """Stream every stored row, oldest first.

        The iterator is single-pass; call list_all() again for a new pass.

        Raises:
            PersistenceError: If the storage operation fails mid-stream
        """
        ...
