"""PostgreSQL implementation of IIdentityRepository.

The upsert is a single INSERT ... ON CONFLICT (subject_id) DO UPDATE ...
RETURNING statement. PostgreSQL takes the row lock while resolving the
conflict, so two concurrent logins for one subject are applied one after the
other and each statement returns the row exactly as it wrote it.
"""

from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from iam.infrastructure.models import IdentityModel
from iam.infrastructure.observability import (
    DefaultIdentityRepositoryProbe,
    IdentityRepositoryProbe,
)
from iam.ports.exceptions import PersistenceError
from iam.ports.models import EncryptedIdentityRow
from iam.ports.repositories import IIdentityRepository


class IdentityRepository(IIdentityRepository):
    """PostgreSQL-backed repository for encrypted identity rows."""

    def __init__(
        self, session: AsyncSession, probe: IdentityRepositoryProbe | None = None
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultIdentityRepositoryProbe()

    async def upsert(self, row: EncryptedIdentityRow) -> EncryptedIdentityRow:
        """Insert the row or replace its mutable columns, returning the result.

        Timestamps come from the database clock. Both get the transaction
        time on insert; a conflict moves only updated_at, to the statement's
        wall-clock time, which is later than any committed created_at.
        EncryptedIdentityRow.was_inserted relies on that.

        Args:
            row: Encrypted row to write

        Returns:
            The row as stored

        Raises:
            PersistenceError: If the statement fails
        """
        insert_stmt = insert(IdentityModel).values(
            subject_id=row.subject_id,
            name=row.name_ciphertext,
            email=row.email_ciphertext,
            avatar=row.avatar_url,
            provider=row.provider,
            created_at=func.now(),
            updated_at=func.now(),
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[IdentityModel.subject_id],
            set_={
                "name": insert_stmt.excluded.name,
                "email": insert_stmt.excluded.email,
                "avatar": insert_stmt.excluded.avatar,
                "provider": insert_stmt.excluded.provider,
                "updated_at": func.clock_timestamp(),
            },
        ).returning(IdentityModel)

        try:
            result = await self._session.execute(
                stmt, execution_options={"populate_existing": True}
            )
            model = result.scalar_one()
        except SQLAlchemyError as e:
            self._probe.identity_upsert_failed(
                subject_id=row.subject_id, error_type=type(e).__name__
            )
            raise PersistenceError(
                f"Failed to upsert identity {row.subject_id}"
            ) from e

        stored = self._to_row(model)
        self._probe.identity_upserted(
            subject_id=stored.subject_id, was_inserted=stored.was_inserted
        )
        return stored

    async def list_all(self) -> AsyncIterator[EncryptedIdentityRow]:
        """Stream every stored row, oldest first.

        Uses a server-side cursor so a large table is never held in memory.

        Raises:
            PersistenceError: If the query fails mid-stream
        """
        stmt = select(IdentityModel).order_by(
            IdentityModel.created_at, IdentityModel.subject_id
        )
        count = 0
        try:
            models = await self._session.stream_scalars(stmt)
            async for model in models:
                count += 1
                yield self._to_row(model)
        except SQLAlchemyError as e:
            self._probe.identity_listing_failed(error_type=type(e).__name__)
            raise PersistenceError("Failed to list identities") from e

        self._probe.identities_streamed(count=count)

    @staticmethod
    def _to_row(model: IdentityModel) -> EncryptedIdentityRow:
        return EncryptedIdentityRow(
            subject_id=model.subject_id,
            name_ciphertext=model.name,
            email_ciphertext=model.email,
            avatar_url=model.avatar,
            provider=model.provider,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
