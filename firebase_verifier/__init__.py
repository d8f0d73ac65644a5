"""
Verification of Firebase Authentication ID tokens.

Usage::

    verifier = JWTVerifier("my-project")
    identity = await verifier.verify(id_token)

Tokens are checked for algorithm, audience, issuer, subject, issue and
expiry times, and an RS256 signature made with one of Google's published
securetoken certificates. Every failure raises VerificationError.
"""

from shared.errors import VerificationError, VerificationErrorKind
from .certificates import (
    CachingCertificateFetcher,
    CertificateFetcher,
    GooglePublicCertificateFetcher,
    KeySetSource,
)
from .factory import build_verifier
from .models import PublicKeySet, RawToken, VerifiedIdentity
from .token import parse_token
from .verifier import JWTVerifier, Verifier

__all__ = [
    "JWTVerifier",
    "Verifier",
    "VerifiedIdentity",
    "RawToken",
    "PublicKeySet",
    "CertificateFetcher",
    "KeySetSource",
    "GooglePublicCertificateFetcher",
    "CachingCertificateFetcher",
    "VerificationError",
    "VerificationErrorKind",
    "build_verifier",
    "parse_token",
]
