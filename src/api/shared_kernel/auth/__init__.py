"""Authentication shared kernel module."""

from shared_kernel.auth.firebase_verifier import (
    FirebaseTokenVerifier,
    InvalidTokenError,
    VerifiedClaims,
)
from shared_kernel.auth.observability import (
    DefaultTokenVerifierProbe,
    TokenVerifierProbe,
)

__all__ = [
    "DefaultTokenVerifierProbe",
    "FirebaseTokenVerifier",
    "InvalidTokenError",
    "TokenVerifierProbe",
    "VerifiedClaims",
]
