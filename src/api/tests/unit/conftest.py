"""Unit test fixtures with mocked dependencies."""

import pytest


TEST_CRYPTO_KEY_HEX = "00112233445566778899aabbccddeeff" * 2


@pytest.fixture
def crypto_key() -> bytes:
    """Provide a fixed 32-byte AES-256 test key."""
    return bytes.fromhex(TEST_CRYPTO_KEY_HEX)


@pytest.fixture
def other_crypto_key() -> bytes:
    """Provide a second, different 32-byte key."""
    return bytes(range(32))


@pytest.fixture
def mock_db_settings():
    """Provide test database settings."""
    from infrastructure.settings import DatabaseSettings

    return DatabaseSettings(
        host="testhost",
        port=5432,
        database="testdb",
        username="testuser",
        password="testpass",
    )
