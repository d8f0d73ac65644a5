"""
Value types passed between the verifier components.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class RawToken:
    """Decoded segments of a compact JWS.

    ``signing_input`` is the exact ``header.payload`` byte string the
    signature was computed over.
    """

    header: Mapping[str, Any]
    payload: Mapping[str, Any]
    signing_input: bytes
    signature: bytes = field(repr=False)


@dataclass(frozen=True)
class PublicKeySet:
    """Certificates published by the identity provider, keyed by kid."""

    certificates: Mapping[str, str]
    max_age: Optional[float] = None

    def __contains__(self, key_identifier: object) -> bool:
        return key_identifier in self.certificates


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity extracted from a fully verified token.

    ``result_timestamp`` carries the token's ``exp`` claim; the actual
    ``auth_time`` claim, when present, is in ``auth_time``.
    """

    subject: str
    result_timestamp: datetime
    auth_time: Optional[datetime] = None
    issued_at: Optional[datetime] = None
    sign_in_provider: Optional[str] = None
    claims: Mapping[str, Any] = field(default_factory=dict, repr=False)

    @property
    def user_id(self) -> str:
        return self.subject
