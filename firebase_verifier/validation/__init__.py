"""
Token validation package.

- claims: pure checks over the decoded header and payload
- signature: RS256 verification of the signing input against a certificate

Claim checks never touch the network, so the verifier runs them before
fetching any key material.
"""

from .claims import (
    verify_algorithm,
    verify_audience,
    verify_issuer,
    require_key_identifier,
    verify_subject,
    verify_expiration_time,
)
from .signature import verify_signature

__all__ = [
    "verify_algorithm",
    "verify_audience",
    "verify_issuer",
    "require_key_identifier",
    "verify_subject",
    "verify_expiration_time",
    "verify_signature",
]
