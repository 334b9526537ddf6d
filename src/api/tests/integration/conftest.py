"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance.
Point IDENTITY_VAULT_TEST_DB_* at it, e.g. a docker postgres:16 container.
"""

from collections.abc import AsyncGenerator
import os

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from iam.infrastructure.models import IdentityModel  # noqa: F401
from infrastructure.database.engines import create_write_engine
from infrastructure.database.models import Base
from infrastructure.settings import DatabaseSettings

TEST_CRYPTO_KEY_HEX = "0f1e2d3c4b5a69788796a5b4c3d2e1f0" * 2


@pytest.fixture(scope="session")
def crypto_key() -> bytes:
    """Fixed AES-256 key for integration tests."""
    return bytes.fromhex(TEST_CRYPTO_KEY_HEX)


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        IDENTITY_VAULT_TEST_DB_HOST, IDENTITY_VAULT_TEST_DB_PORT, etc.
    """
    return DatabaseSettings(
        host=os.getenv("IDENTITY_VAULT_TEST_DB_HOST", "localhost"),
        port=int(os.getenv("IDENTITY_VAULT_TEST_DB_PORT", "5432")),
        database=os.getenv("IDENTITY_VAULT_TEST_DB_DATABASE", "identity_vault"),
        username=os.getenv("IDENTITY_VAULT_TEST_DB_USERNAME", "identity_vault"),
        password=SecretStr(
            os.getenv("IDENTITY_VAULT_TEST_DB_PASSWORD", "identity_vault_dev_password")
        ),
        pool_size=10,
        max_overflow=10,
    )


@pytest_asyncio.fixture
async def engine(
    integration_db_settings: DatabaseSettings,
) -> AsyncGenerator[AsyncEngine, None]:
    """Provide an engine with the identities table present and empty."""
    engine = create_write_engine(integration_db_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text("TRUNCATE identities"))

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("TRUNCATE identities"))
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory; each concurrent caller needs its own session."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_session(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async session for integration tests."""
    async with sessionmaker() as session:
        yield session
