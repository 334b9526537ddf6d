"""Firebase ID token verification.

Validates Firebase Authentication ID tokens against the secure token
issuer's JWKS with caching. The verified claims are trusted as-is by the
identity service; this module is the only place signatures are checked.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httpx
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

if TYPE_CHECKING:
    from shared_kernel.auth.observability import TokenVerifierProbe


@dataclass(frozen=True)
class VerifiedClaims:
    """Profile claims carried by a verified Firebase ID token."""

    subject_id: str
    name: str | None
    email: str | None
    picture: str | None
    provider: str | None


class InvalidTokenError(Exception):
    """Raised when ID token verification fails."""

    pass


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens using the issuer's JWKS.

    Fetches JWKS through OpenID Connect discovery and caches them for the
    configured TTL. Validates signature, expiry, issuer, and audience.
    """

    def __init__(
        self,
        issuer_url: str,
        audience: str,
        probe: TokenVerifierProbe,
        jwks_cache_ttl: timedelta = timedelta(hours=1),
    ):
        """Initialize the verifier.

        Args:
            issuer_url: Token issuer, https://securetoken.google.com/<project_id>
            audience: Expected audience, the Firebase project id
            probe: Observability probe for logging events
            jwks_cache_ttl: How long to cache JWKS keys (default: 1 hour)
        """
        self._issuer_url = issuer_url.rstrip("/")
        self._audience = audience
        self._probe = probe
        self._jwks_cache_ttl = jwks_cache_ttl

        self._jwks: dict[str, Any] | None = None
        self._jwks_fetched_at: datetime | None = None
        self._jwks_lock = asyncio.Lock()

    async def verify(self, token: str) -> VerifiedClaims:
        """Verify an ID token and return its profile claims.

        Args:
            token: The Firebase ID token (a signed JWT).

        Returns:
            VerifiedClaims for the token's subject.

        Raises:
            InvalidTokenError: If the token is invalid, expired, or verification fails.
        """
        try:
            unverified_header = jwt.get_unverified_header(token)
        except JWTError as e:
            self._probe.token_rejected(reason=f"Malformed token: {e}")
            raise InvalidTokenError(f"Invalid token format: {e}") from e

        if not unverified_header:
            self._probe.token_rejected(reason="Missing token header")
            raise InvalidTokenError("Invalid token: missing header")

        jwks = await self._get_jwks()

        try:
            claims = jwt.decode(
                token=token,
                key=jwks,
                algorithms=["RS256"],
                audience=self._audience,
                issuer=self._issuer_url,
                options={
                    "verify_signature": True,
                    "verify_aud": True,
                    "verify_iss": True,
                    "verify_exp": True,
                    "verify_iat": True,
                    # Firebase tokens carry no at_hash
                    "verify_at_hash": False,
                },
            )
        except ExpiredSignatureError as e:
            self._probe.token_rejected(reason="Token expired")
            raise InvalidTokenError("Token has expired") from e
        except JWTClaimsError as e:
            error_msg = str(e).lower()
            if "audience" in error_msg:
                self._probe.token_rejected(reason="Invalid audience")
                raise InvalidTokenError("Invalid audience claim") from e
            if "issuer" in error_msg:
                self._probe.token_rejected(reason="Invalid issuer")
                raise InvalidTokenError("Invalid issuer claim") from e
            self._probe.token_rejected(reason=f"Claims error: {e}")
            raise InvalidTokenError(f"Invalid token claims: {e}") from e
        except JWTError as e:
            error_msg = str(e).lower()
            if "signature" in error_msg:
                self._probe.token_rejected(reason="Invalid signature")
                raise InvalidTokenError("Invalid token signature") from e
            self._probe.token_rejected(reason=f"JWT error: {e}")
            raise InvalidTokenError(f"Invalid token: {e}") from e

        # Firebase mirrors sub into user_id; sub is the one that is signed-for
        subject_id = claims.get("sub") or claims.get("user_id")
        if not subject_id:
            self._probe.token_rejected(reason="Missing sub claim")
            raise InvalidTokenError("Missing required claim: sub")

        firebase = claims.get("firebase")
        provider = firebase.get("sign_in_provider") if isinstance(firebase, dict) else None

        self._probe.token_verified(subject_id=str(subject_id))

        return VerifiedClaims(
            subject_id=str(subject_id),
            name=_optional_str(claims.get("name")),
            email=_optional_str(claims.get("email")),
            picture=_optional_str(claims.get("picture")),
            provider=_optional_str(provider),
        )

    async def _get_jwks(self) -> dict[str, Any]:
        """Get JWKS, fetching from issuer if cache expired.

        Raises:
            InvalidTokenError: If JWKS cannot be fetched.
        """
        if self._is_cache_valid():
            self._probe.jwks_cache_hit()
            return self._jwks  # type: ignore[return-value]

        async with self._jwks_lock:
            # Another request may have refreshed while we waited
            if self._is_cache_valid():
                self._probe.jwks_cache_hit()
                return self._jwks  # type: ignore[return-value]

            return await self._fetch_jwks()

    def _is_cache_valid(self) -> bool:
        """Check if JWKS cache is still valid."""
        if self._jwks is None or self._jwks_fetched_at is None:
            return False

        now = datetime.now(tz=timezone.utc)
        return (now - self._jwks_fetched_at) < self._jwks_cache_ttl

    async def _fetch_jwks(self) -> dict[str, Any]:
        """Fetch JWKS from the issuer via its OpenID configuration.

        Raises:
            InvalidTokenError: If JWKS cannot be fetched.
        """
        try:
            async with httpx.AsyncClient() as client:
                config_response = await client.get(
                    f"{self._issuer_url}/.well-known/openid-configuration"
                )
                config_response.raise_for_status()
                openid_config = config_response.json()

                jwks_uri = openid_config.get("jwks_uri")
                if not jwks_uri:
                    self._probe.jwks_fetch_failed(
                        error="Missing jwks_uri in OpenID configuration"
                    )
                    raise InvalidTokenError(
                        "Token issuer missing jwks_uri in configuration"
                    )

                jwks_response = await client.get(jwks_uri)
                jwks_response.raise_for_status()
                jwks = jwks_response.json()

                self._jwks = jwks
                self._jwks_fetched_at = datetime.now(tz=timezone.utc)

                self._probe.jwks_fetched(key_count=len(jwks.get("keys", [])))

                return jwks

        except httpx.HTTPError as e:
            self._probe.jwks_fetch_failed(error=str(e))
            raise InvalidTokenError(f"Failed to fetch JWKS from token issuer: {e}") from e
        except ValueError as e:
            # Non-JSON discovery or JWKS document
            self._probe.jwks_fetch_failed(error=str(e))
            raise InvalidTokenError(f"Token issuer returned invalid JWKS: {e}") from e
