"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly,
and the field encryption key has no default at all.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

AES_256_KEY_BYTES = 32


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        IDENTITY_VAULT_DB_HOST: Database host (default: localhost)
        IDENTITY_VAULT_DB_PORT: Database port (default: 5432)
        IDENTITY_VAULT_DB_DATABASE: Database name (default: identity_vault)
        IDENTITY_VAULT_DB_USERNAME: Database user (default: identity_vault)
        IDENTITY_VAULT_DB_PASSWORD: Database password (required in production)
        IDENTITY_VAULT_DB_POOL_SIZE: Connections kept in the pool (default: 10)
        IDENTITY_VAULT_DB_MAX_OVERFLOW: Extra connections allowed (default: 0)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_VAULT_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="identity_vault", description="Database name")
    username: str = Field(default="identity_vault", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_size: int = Field(
        default=10,
        description="Connections kept in the pool",
        ge=1,
        le=100,
    )
    max_overflow: int = Field(
        default=0,
        description="Connections allowed beyond pool_size",
        ge=0,
        le=100,
    )

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class CryptoSettings(BaseSettings):
    """Field encryption settings.

    Environment variables:
        IDENTITY_VAULT_CRYPTO_KEY: 64 hex characters (32-byte AES-256 key)

    Rotating the key makes every value encrypted under the previous key
    unreadable; there is no re-encryption path.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_VAULT_CRYPTO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    key: SecretStr = Field(description="Hex-encoded AES-256 key")

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: SecretStr) -> SecretStr:
        """Reject keys that are not exactly 32 bytes of hex."""
        raw = value.get_secret_value()
        try:
            decoded = bytes.fromhex(raw)
        except ValueError as e:
            raise ValueError("crypto key must be hex-encoded") from e
        if len(decoded) != AES_256_KEY_BYTES:
            raise ValueError(
                f"crypto key must decode to {AES_256_KEY_BYTES} bytes, "
                f"got {len(decoded)}"
            )
        return value

    @property
    def key_bytes(self) -> bytes:
        """Raw key material."""
        return bytes.fromhex(self.key.get_secret_value())


class FirebaseSettings(BaseSettings):
    """Identity provider (Firebase Authentication) settings.

    Environment variables:
        IDENTITY_VAULT_FIREBASE_PROJECT_ID: Firebase project id (token audience)
        IDENTITY_VAULT_FIREBASE_ISSUER_BASE_URL: Secure token issuer base URL
        IDENTITY_VAULT_FIREBASE_JWKS_CACHE_TTL_SECONDS: JWKS cache lifetime
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_VAULT_FIREBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_id: str = Field(default="", description="Firebase project id")
    issuer_base_url: str = Field(
        default="https://securetoken.google.com",
        description="Base URL of the Firebase secure token issuer",
    )
    jwks_cache_ttl_seconds: int = Field(
        default=3600,
        description="How long fetched signing keys are reused",
        ge=0,
    )

    @property
    def issuer_url(self) -> str:
        """Expected `iss` claim of Firebase ID tokens."""
        return f"{self.issuer_base_url.rstrip('/')}/{self.project_id}"

    @property
    def audience(self) -> str:
        """Expected `aud` claim of Firebase ID tokens."""
        return self.project_id


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Identity Vault API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache
def get_crypto_settings() -> CryptoSettings:
    """Get cached field encryption settings.

    Raises:
        pydantic.ValidationError: If IDENTITY_VAULT_CRYPTO_KEY is unset or invalid
    """
    return CryptoSettings()  # type: ignore[call-arg]


@lru_cache
def get_firebase_settings() -> FirebaseSettings:
    """Get cached identity provider settings."""
    return FirebaseSettings()
