"""Identity provider dependencies for the IAM routes."""

from datetime import timedelta
from functools import lru_cache

from infrastructure.settings import get_firebase_settings
from shared_kernel.auth import DefaultTokenVerifierProbe, FirebaseTokenVerifier


@lru_cache
def get_token_verifier() -> FirebaseTokenVerifier:
    """Get cached Firebase ID token verifier.

    Uses lru_cache so one verifier instance, and therefore one JWKS cache,
    is reused across requests.

    Returns:
        FirebaseTokenVerifier configured from Firebase settings.
    """
    settings = get_firebase_settings()
    return FirebaseTokenVerifier(
        issuer_url=settings.issuer_url,
        audience=settings.audience,
        probe=DefaultTokenVerifierProbe(),
        jwks_cache_ttl=timedelta(seconds=settings.jwks_cache_ttl_seconds),
    )
