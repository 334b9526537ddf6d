"""Unit tests for the Firebase ID token verifier.

Uses mocking for the discovery and JWKS endpoints so no network access to
the Google secure token service is needed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt
from jose.constants import ALGORITHMS

from shared_kernel.auth import (
    FirebaseTokenVerifier,
    InvalidTokenError,
    TokenVerifierProbe,
    VerifiedClaims,
)

TEST_PROJECT_ID = "identity-vault-test"
TEST_ISSUER = f"https://securetoken.google.com/{TEST_PROJECT_ID}"
TEST_KID = "firebase-test-kid"


def _generate_pem_pair() -> tuple[str, str]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return private_pem, public_pem


TEST_PRIVATE_KEY, TEST_PUBLIC_KEY = _generate_pem_pair()
OTHER_PRIVATE_KEY, _ = _generate_pem_pair()


def create_jwks_response() -> dict[str, Any]:
    """Create a JWKS response matching the test public key."""
    key = jwk.construct(TEST_PUBLIC_KEY, ALGORITHMS.RS256)
    jwk_dict = key.to_dict()
    jwk_dict["kid"] = TEST_KID
    jwk_dict["use"] = "sig"
    jwk_dict["alg"] = "RS256"
    return {"keys": [jwk_dict]}


def create_id_token(
    sub: str | None = "firebase-uid-1",
    issuer: str = TEST_ISSUER,
    audience: str = TEST_PROJECT_ID,
    exp_delta: timedelta = timedelta(hours=1),
    extra_claims: dict[str, Any] | None = None,
    signing_key: str = TEST_PRIVATE_KEY,
) -> str:
    """Create a signed Firebase-style ID token for testing."""
    now = datetime.now(tz=timezone.utc)
    claims: dict[str, Any] = {
        "iss": issuer,
        "aud": audience,
        "exp": int((now + exp_delta).timestamp()),
        "iat": int(now.timestamp()),
        "auth_time": int(now.timestamp()),
    }
    if sub is not None:
        claims["sub"] = sub
    if extra_claims:
        claims.update(extra_claims)

    headers = {"kid": TEST_KID, "alg": "RS256"}
    return jwt.encode(claims, signing_key, algorithm="RS256", headers=headers)


def _response(json_data: dict[str, Any]) -> MagicMock:
    response = MagicMock()
    response.json.return_value = json_data
    response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def mock_probe() -> MagicMock:
    return MagicMock(spec=TokenVerifierProbe)


@pytest.fixture
def openid_config() -> dict[str, Any]:
    return {
        "issuer": TEST_ISSUER,
        "jwks_uri": "https://www.googleapis.com/service_accounts/v1/jwk/"
        "securetoken@system.gserviceaccount.com",
    }


@pytest.fixture
def verifier(mock_probe: MagicMock) -> FirebaseTokenVerifier:
    return FirebaseTokenVerifier(
        issuer_url=TEST_ISSUER,
        audience=TEST_PROJECT_ID,
        probe=mock_probe,
    )


@pytest.fixture
def mock_http(openid_config: dict[str, Any]):
    """Patch httpx.AsyncClient to serve discovery then JWKS."""
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client_class.return_value.__aenter__.return_value = mock_client
        mock_client.get.side_effect = [
            _response(openid_config),
            _response(create_jwks_response()),
        ]
        yield mock_client


class TestVerify:
    """Tests for FirebaseTokenVerifier.verify()."""

    @pytest.mark.asyncio
    async def test_returns_profile_claims(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock, mock_http
    ) -> None:
        """A valid token yields subject and profile claims."""
        token = create_id_token(
            extra_claims={
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "picture": "https://example.com/ada.png",
                "firebase": {"sign_in_provider": "google.com"},
            }
        )

        claims = await verifier.verify(token)

        assert claims == VerifiedClaims(
            subject_id="firebase-uid-1",
            name="Ada Lovelace",
            email="ada@example.com",
            picture="https://example.com/ada.png",
            provider="google.com",
        )
        mock_probe.token_verified.assert_called_once_with(subject_id="firebase-uid-1")

    @pytest.mark.asyncio
    async def test_missing_profile_claims_are_none(
        self, verifier: FirebaseTokenVerifier, mock_http
    ) -> None:
        """Anonymous sign-ins carry only a subject."""
        claims = await verifier.verify(create_id_token())

        assert claims.name is None
        assert claims.email is None
        assert claims.picture is None
        assert claims.provider is None

    @pytest.mark.asyncio
    async def test_user_id_is_used_when_sub_absent(
        self, verifier: FirebaseTokenVerifier, mock_http
    ) -> None:
        token = create_id_token(sub=None, extra_claims={"user_id": "uid-from-user-id"})

        claims = await verifier.verify(token)

        assert claims.subject_id == "uid-from-user-id"

    @pytest.mark.asyncio
    async def test_missing_subject_is_rejected(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock, mock_http
    ) -> None:
        with pytest.raises(InvalidTokenError, match="sub"):
            await verifier.verify(create_id_token(sub=None))

        mock_probe.token_rejected.assert_called_once()

    @pytest.mark.asyncio
    async def test_expired_token_is_rejected(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock, mock_http
    ) -> None:
        with pytest.raises(InvalidTokenError) as exc_info:
            await verifier.verify(create_id_token(exp_delta=timedelta(hours=-1)))

        assert "expired" in str(exc_info.value).lower()
        mock_probe.token_rejected.assert_called_once()

    @pytest.mark.asyncio
    async def test_wrong_signing_key_is_rejected(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock, mock_http
    ) -> None:
        token = create_id_token(signing_key=OTHER_PRIVATE_KEY)

        with pytest.raises(InvalidTokenError):
            await verifier.verify(token)

        mock_probe.token_rejected.assert_called_once()
        mock_probe.token_verified.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_project_issuer_is_rejected(
        self, verifier: FirebaseTokenVerifier, mock_http
    ) -> None:
        token = create_id_token(issuer="https://securetoken.google.com/other-project")

        with pytest.raises(InvalidTokenError) as exc_info:
            await verifier.verify(token)

        assert "issuer" in str(exc_info.value).lower()

    @pytest.mark.asyncio
    async def test_other_project_audience_is_rejected(
        self, verifier: FirebaseTokenVerifier, mock_http
    ) -> None:
        token = create_id_token(audience="other-project")

        with pytest.raises(InvalidTokenError) as exc_info:
            await verifier.verify(token)

        assert "audience" in str(exc_info.value).lower()

    @pytest.mark.asyncio
    async def test_garbage_token_is_rejected_without_fetching_keys(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            with pytest.raises(InvalidTokenError):
                await verifier.verify("not-a-jwt")

        mock_client_class.assert_not_called()
        mock_probe.token_rejected.assert_called_once()


class TestJwksFetching:
    """Tests for JWKS discovery and caching."""

    @pytest.mark.asyncio
    async def test_jwks_is_cached_between_verifications(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock, mock_http
    ) -> None:
        await verifier.verify(create_id_token())
        await verifier.verify(create_id_token(sub="firebase-uid-2"))

        assert mock_http.get.call_count == 2
        mock_probe.jwks_fetched.assert_called_once_with(key_count=1)
        mock_probe.jwks_cache_hit.assert_called_once()

    @pytest.mark.asyncio
    async def test_expired_cache_is_refreshed(
        self, mock_probe: MagicMock, openid_config: dict[str, Any]
    ) -> None:
        verifier = FirebaseTokenVerifier(
            issuer_url=TEST_ISSUER,
            audience=TEST_PROJECT_ID,
            probe=mock_probe,
            jwks_cache_ttl=timedelta(seconds=0),
        )

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.side_effect = [
                _response(openid_config),
                _response(create_jwks_response()),
                _response(openid_config),
                _response(create_jwks_response()),
            ]

            await verifier.verify(create_id_token())
            await verifier.verify(create_id_token())

        assert mock_client.get.call_count == 4

    @pytest.mark.asyncio
    async def test_discovery_uses_issuer_well_known_url(
        self, verifier: FirebaseTokenVerifier, mock_http
    ) -> None:
        await verifier.verify(create_id_token())

        first_url = mock_http.get.call_args_list[0].args[0]
        assert first_url == f"{TEST_ISSUER}/.well-known/openid-configuration"

    @pytest.mark.asyncio
    async def test_http_failure_becomes_invalid_token(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.side_effect = httpx.ConnectError("unreachable")

            with pytest.raises(InvalidTokenError, match="JWKS"):
                await verifier.verify(create_id_token())

        mock_probe.jwks_fetch_failed.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_jwks_uri_becomes_invalid_token(
        self, verifier: FirebaseTokenVerifier, mock_probe: MagicMock
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client_class.return_value.__aenter__.return_value = mock_client
            mock_client.get.side_effect = [_response({"issuer": TEST_ISSUER})]

            with pytest.raises(InvalidTokenError, match="jwks_uri"):
                await verifier.verify(create_id_token())

        mock_probe.jwks_fetch_failed.assert_called_once()
