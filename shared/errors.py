"""
Shared error handling for the Firebase token verifier.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    key: Optional[str] = None
    details: Dict[str, Any] = {}


class FirebaseAuthException(Exception):
    """Base exception for the verifier packages."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class VerificationErrorKind(str, Enum):
    """Reasons a token can be rejected."""
    EMPTY_PROJECT_ID = "EMPTY_PROJECT_ID"
    NOT_FOUND = "NOT_FOUND"
    INCORRECT = "INCORRECT"
    EXPIRATION_TIME_IS_PAST = "EXPIRATION_TIME_IS_PAST"
    ISSUED_AT_TIME_IS_FUTURE = "ISSUED_AT_TIME_IS_FUTURE"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    PARSE_FAILURE = "PARSE_FAILURE"
    CERTIFICATE_FETCH_FAILED = "CERTIFICATE_FETCH_FAILED"


class VerificationError(FirebaseAuthException):
    """A token (or verifier construction) failed a verification rule.

    ``key`` names the claim involved for NOT_FOUND and INCORRECT kinds.
    """

    def __init__(
        self,
        kind: VerificationErrorKind,
        message: Optional[str] = None,
        *,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.key = key
        super().__init__(kind.value, message or _default_message(kind, key), details)

    def to_response(self) -> ErrorResponse:
        response = super().to_response()
        response.key = self.key
        return response

    def __repr__(self) -> str:
        return f"VerificationError(kind={self.kind.value}, key={self.key!r}, message={self.message!r})"


class ConfigurationError(FirebaseAuthException):
    """Invalid verifier configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


def _default_message(kind: VerificationErrorKind, key: Optional[str]) -> str:
    if kind is VerificationErrorKind.EMPTY_PROJECT_ID:
        return "Firebase project id must be a non-empty string."
    if kind is VerificationErrorKind.NOT_FOUND:
        return f"Firebase ID token has no '{key}' claim."
    if kind is VerificationErrorKind.INCORRECT:
        return f"Firebase ID token has incorrect '{key}' claim."
    if kind is VerificationErrorKind.SIGNATURE_INVALID:
        return "Firebase ID token has invalid signature."
    if kind is VerificationErrorKind.PARSE_FAILURE:
        return "Firebase ID token could not be decoded."
    return kind.value.replace("_", " ").capitalize()
