"""
Claim checks for Firebase ID tokens.

Every check is a pure function of the decoded header or payload. A check
either returns (optionally with the validated value) or raises a
VerificationError whose kind and key identify the rule that failed.
"""

import math
from typing import Any, Mapping, Optional

from shared.errors import VerificationError, VerificationErrorKind

ALGORITHM = "RS256"
ISSUER_PREFIX = "https://securetoken.google.com/"
MAX_SUBJECT_LENGTH = 128

# 0001-01-01T00:00:00Z and 9999-12-31T23:59:59Z
MIN_NUMERIC_DATE = -62135596800
MAX_NUMERIC_DATE = 253402300799

VERIFY_ID_TOKEN_DOCS_MESSAGE = (
    "See https://firebase.google.com/docs/auth/admin/verify-id-tokens for details "
    "on how to retrieve an ID token."
)
PROJECT_ID_MATCH_MESSAGE = (
    "Make sure the ID token comes from the same Firebase project as the service "
    "account used to authenticate this SDK."
)


def string_claim(claims: Mapping[str, Any], key: str) -> Optional[str]:
    value = claims.get(key)
    return value if isinstance(value, str) else None


def time_claim(claims: Mapping[str, Any], key: str) -> Optional[float]:
    """Return a NumericDate claim as epoch seconds, or None when absent.

    Numbers that are not finite or fall outside the datetime range are
    INCORRECT.
    """
    value = claims.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        seconds = float(value)
    except OverflowError:
        seconds = math.inf
    if not math.isfinite(seconds) or not MIN_NUMERIC_DATE <= seconds <= MAX_NUMERIC_DATE:
        raise VerificationError(
            VerificationErrorKind.INCORRECT,
            f"Firebase ID token has invalid '{key}' claim: not a valid NumericDate.",
            key=key,
            details={"min": MIN_NUMERIC_DATE, "max": MAX_NUMERIC_DATE},
        )
    return seconds


def expected_issuer(project_id: str) -> str:
    return f"{ISSUER_PREFIX}{project_id}"


def verify_algorithm(header: Mapping[str, Any]) -> None:
    algorithm = header.get("alg")
    if algorithm == ALGORITHM:
        return
    raise VerificationError(
        VerificationErrorKind.INCORRECT,
        f"Firebase ID token has incorrect algorithm. Expected '{ALGORITHM}' but got "
        f"'{algorithm}'. {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
        key="alg",
        details={"expected": ALGORITHM, "actual": algorithm},
    )


def verify_audience(payload: Mapping[str, Any], project_id: str) -> None:
    audience = string_claim(payload, "aud")
    if audience == project_id:
        return
    raise VerificationError(
        VerificationErrorKind.INCORRECT,
        f"Firebase ID token has incorrect 'aud' (audience) claim. Expected '{project_id}' "
        f"but got '{payload.get('aud')}'. {PROJECT_ID_MATCH_MESSAGE} {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
        key="aud",
        details={"expected": project_id, "actual": payload.get("aud")},
    )


def verify_issuer(payload: Mapping[str, Any], project_id: str) -> None:
    issuer = string_claim(payload, "iss")
    expected = expected_issuer(project_id)
    if issuer == expected:
        return
    raise VerificationError(
        VerificationErrorKind.INCORRECT,
        f"Firebase ID token has incorrect 'iss' (issuer) claim. Expected '{expected}' "
        f"but got '{payload.get('iss')}'. {PROJECT_ID_MATCH_MESSAGE} {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
        key="iss",
        details={"expected": expected, "actual": payload.get("iss")},
    )


def require_key_identifier(header: Mapping[str, Any]) -> str:
    key_identifier = string_claim(header, "kid")
    if not key_identifier:
        raise VerificationError(
            VerificationErrorKind.NOT_FOUND,
            "Firebase ID token has no 'kid' claim.",
            key="kid",
        )
    return key_identifier


def verify_subject(payload: Mapping[str, Any]) -> str:
    """Return the subject, which must be 1..128 characters.

    Length is counted in code points, so multi-byte characters count once.
    """
    subject = payload.get("sub")
    if subject is None or subject == "":
        raise VerificationError(
            VerificationErrorKind.NOT_FOUND,
            f"Firebase ID token has no 'sub' (subject) claim. {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
            key="sub",
        )
    if not isinstance(subject, str):
        raise VerificationError(
            VerificationErrorKind.INCORRECT,
            f"Firebase ID token has 'sub' (subject) claim that is not a string. {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
            key="sub",
            details={"actual_type": type(subject).__name__},
        )
    if len(subject) > MAX_SUBJECT_LENGTH:
        raise VerificationError(
            VerificationErrorKind.INCORRECT,
            f"Firebase ID token has 'sub' (subject) claim longer than {MAX_SUBJECT_LENGTH} "
            f"characters. {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
            key="sub",
            details={"length": len(subject), "max_length": MAX_SUBJECT_LENGTH},
        )
    return subject


def verify_expiration_time(payload: Mapping[str, Any], now: float) -> None:
    """Require iat <= now < exp."""
    issued_at = time_claim(payload, "iat")
    if issued_at is None:
        raise VerificationError(VerificationErrorKind.NOT_FOUND, key="iat")
    expiration = time_claim(payload, "exp")
    if expiration is None:
        raise VerificationError(VerificationErrorKind.NOT_FOUND, key="exp")

    if now < issued_at:
        raise VerificationError(
            VerificationErrorKind.ISSUED_AT_TIME_IS_FUTURE,
            f"Firebase ID token has 'iat' ({issued_at:.0f}) in the future (now: {now:.0f}). "
            "Make sure the clock of this server is synchronized.",
            details={"iat": issued_at, "now": now},
        )
    if now >= expiration:
        raise VerificationError(
            VerificationErrorKind.EXPIRATION_TIME_IS_PAST,
            f"Firebase ID token has expired: 'exp' ({expiration:.0f}) must be in the future "
            f"(now: {now:.0f}). Get a fresh ID token from your client app and try again.",
            details={"exp": expiration, "now": now},
        )
