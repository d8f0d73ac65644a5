"""
RS256 signature check against an X.509 certificate.
"""

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from jose import jwk
from jose.constants import ALGORITHMS
from jose.exceptions import JWKError

from shared.errors import VerificationError, VerificationErrorKind
from shared.logging import get_logger
from ..models import RawToken

logger = get_logger("firebase_verifier.signature")


def load_public_key_pem(certificate: bytes) -> bytes:
    """Extract the RSA public key of a DER certificate as PEM.

    Raises ValueError when the bytes are not a certificate carrying an RSA key.
    """
    public_key = x509.load_der_x509_certificate(certificate).public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError(f"expected an RSA public key, got {type(public_key).__name__}")
    return public_key.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)


def verify_signature(token: RawToken, certificate: bytes) -> None:
    """Raise SIGNATURE_INVALID unless ``certificate`` signed ``token``."""
    try:
        key = jwk.construct(load_public_key_pem(certificate), algorithm=ALGORITHMS.RS256)
    except (ValueError, JWKError) as exc:
        logger.warning(
            "Signature verification failed",
            reason="malformed_certificate",
            error_type=type(exc).__name__,
        )
        raise VerificationError(VerificationErrorKind.SIGNATURE_INVALID) from exc

    if not key.verify(token.signing_input, token.signature):
        logger.info("Signature verification failed", reason="signature_mismatch", kid=token.header.get("kid"))
        raise VerificationError(VerificationErrorKind.SIGNATURE_INVALID)
