"""Integration tests for identity reconciliation against PostgreSQL.

Tests the vertical slice IdentityService -> IdentityRepository -> PostgreSQL,
including concurrent logins for one subject from separate sessions.
"""

import asyncio

import pytest
from sqlalchemy import func, select, text, update

from iam.application.services import IdentityService
from iam.domain.value_objects import IdentityClaim
from iam.infrastructure.identity_repository import IdentityRepository
from iam.infrastructure.models import IdentityModel
from shared_kernel.crypto import FieldCipher

pytestmark = pytest.mark.integration


@pytest.fixture
def cipher(crypto_key: bytes) -> FieldCipher:
    return FieldCipher(crypto_key)


def _service(session, cipher: FieldCipher) -> IdentityService:
    return IdentityService(
        identity_repository=IdentityRepository(session=session),
        session=session,
        cipher=cipher,
    )


async def _row_count(sessionmaker) -> int:
    async with sessionmaker() as session:
        return await session.scalar(select(func.count()).select_from(IdentityModel))


class TestReconcile:
    """Tests for reconciliation persistence semantics."""

    @pytest.mark.asyncio
    async def test_first_login_inserts_encrypted_row(
        self, async_session, sessionmaker, cipher
    ):
        identity = await _service(async_session, cipher).reconcile(
            IdentityClaim(
                subject_id="uid-1",
                name="Ada Lovelace",
                email="ada@example.com",
                provider="google.com",
            )
        )

        assert identity.name == "Ada Lovelace"
        async with sessionmaker() as session:
            raw = (
                await session.execute(
                    text("SELECT name, email, created_at, updated_at FROM identities")
                )
            ).one()
        assert "Ada" not in raw.name
        assert cipher.decode(raw.email) == "ada@example.com"
        assert raw.created_at == raw.updated_at

    @pytest.mark.asyncio
    async def test_repeat_login_keeps_one_row_and_created_at(
        self, async_session, sessionmaker, cipher
    ):
        service = _service(async_session, cipher)
        claim = IdentityClaim(subject_id="uid-1", name="Ada")

        await service.reconcile(claim)
        async with sessionmaker() as session:
            first = await session.scalar(select(IdentityModel.created_at))
        await service.reconcile(claim)

        async with sessionmaker() as session:
            model = await session.scalar(select(IdentityModel))
        assert await _row_count(sessionmaker) == 1
        assert model.created_at == first
        assert model.updated_at > model.created_at

    @pytest.mark.asyncio
    async def test_last_write_wins(self, async_session, cipher):
        service = _service(async_session, cipher)

        await service.reconcile(
            IdentityClaim(subject_id="uid-1", name="Ada", email="old@example.com")
        )
        await service.reconcile(
            IdentityClaim(subject_id="uid-1", name="Ada L.", email="new@example.com")
        )

        [identity] = [i async for i in service.list_all()]
        assert identity.name == "Ada L."
        assert identity.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_concurrent_logins_for_one_subject(self, sessionmaker, cipher):
        pairs = {(f"Name {i}", f"n{i}@x") for i in range(20)}

        async def login(name: str, email: str):
            async with sessionmaker() as session:
                return await _service(session, cipher).reconcile(
                    IdentityClaim(subject_id="uid-race", name=name, email=email)
                )

        results = await asyncio.gather(*(login(*pair) for pair in pairs))

        assert await _row_count(sessionmaker) == 1
        assert {(r.name, r.email) for r in results} == pairs
        async with sessionmaker() as session:
            [identity] = [i async for i in _service(session, cipher).list_all()]
        assert (identity.name, identity.email) in pairs
        async with sessionmaker() as session:
            model = await session.scalar(select(IdentityModel))
        assert model.updated_at > model.created_at

    @pytest.mark.asyncio
    async def test_concurrent_logins_for_distinct_subjects(
        self, sessionmaker, cipher
    ):
        async def login(index: int):
            async with sessionmaker() as session:
                return await _service(session, cipher).reconcile(
                    IdentityClaim(subject_id=f"uid-{index}")
                )

        await asyncio.gather(*(login(i) for i in range(15)))

        assert await _row_count(sessionmaker) == 15


class TestListAll:
    """Tests for listing with damaged rows."""

    @pytest.mark.asyncio
    async def test_corrupted_row_is_listed_with_null_field(
        self, async_session, sessionmaker, cipher
    ):
        service = _service(async_session, cipher)
        for subject_id in ("uid-1", "uid-2", "uid-3"):
            await service.reconcile(
                IdentityClaim(subject_id=subject_id, name=subject_id.upper())
            )

        async with sessionmaker() as session, session.begin():
            await session.execute(
                update(IdentityModel)
                .where(IdentityModel.subject_id == "uid-2")
                .values(email="deadbeef")
            )

        async with sessionmaker() as session:
            identities = [i async for i in _service(session, cipher).list_all()]

        assert [str(i.subject_id) for i in identities] == ["uid-1", "uid-2", "uid-3"]
        assert identities[1].email is None
        assert identities[1].name == "UID-2"
        assert identities[1].unreadable_fields == frozenset({"email"})
        assert identities[0].is_complete and identities[2].is_complete

    @pytest.mark.asyncio
    async def test_reconcile_after_key_rotation_overwrites_old_row(
        self, async_session, sessionmaker, cipher
    ):
        old_cipher = FieldCipher(bytes(range(32)))
        await _service(async_session, old_cipher).reconcile(
            IdentityClaim(subject_id="uid-1", name="Ada")
        )

        async with sessionmaker() as session:
            identity = await _service(session, cipher).reconcile(
                IdentityClaim(subject_id="uid-1", name="Ada")
            )

        assert identity.name == "Ada"

