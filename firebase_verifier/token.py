"""
Decoding of compact JWS strings into RawToken values.
"""

import binascii

from jose import jwt
from jose.exceptions import JWTError
from jose.utils import base64url_decode

from shared.errors import VerificationError, VerificationErrorKind
from .models import RawToken


def parse_token(token: str) -> RawToken:
    """Split and decode a token without verifying anything about it."""
    if not isinstance(token, str) or not token:
        raise VerificationError(VerificationErrorKind.PARSE_FAILURE, "Firebase ID token must be a non-empty string.")

    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.get_unverified_claims(token)
        signing_input, crypto_segment = token.encode("ascii").rsplit(b".", 1)
        signature = base64url_decode(crypto_segment)
    except (JWTError, UnicodeEncodeError, binascii.Error, ValueError) as exc:
        raise VerificationError(
            VerificationErrorKind.PARSE_FAILURE,
            "Firebase ID token could not be decoded. Make sure you passed the entire string JWT which represents an ID token.",
            details={"error_type": type(exc).__name__},
        ) from exc

    return RawToken(
        header=header,
        payload=payload,
        signing_input=signing_input,
        signature=signature,
    )
