"""
Firebase ID token verifier.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from shared.errors import VerificationError, VerificationErrorKind
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from .certificates import CertificateFetcher, GooglePublicCertificateFetcher
from .models import VerifiedIdentity
from .token import parse_token
from .validation import claims
from .validation.signature import verify_signature


class Verifier(ABC):
    """Turns an ID token into a VerifiedIdentity or raises VerificationError."""

    @abstractmethod
    async def verify(self, token: str, allow_expired: bool = False) -> VerifiedIdentity:
        """Verify ``token``; ``allow_expired`` skips the iat/exp window."""


class JWTVerifier(Verifier):
    """Verifies RS256 Firebase ID tokens issued for one project.

    The instance holds no per-call state and can be shared between
    concurrent callers.
    """

    def __init__(
        self,
        project_id: str,
        public_certificate_fetcher: Optional[CertificateFetcher] = None,
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if not isinstance(project_id, str) or not project_id.strip():
            raise VerificationError(VerificationErrorKind.EMPTY_PROJECT_ID)
        self.project_id = project_id
        self.public_certificate_fetcher = public_certificate_fetcher or GooglePublicCertificateFetcher()
        self.logger = get_logger("firebase_verifier.verifier")
        self.metrics = metrics or get_metrics_collector()
        self._clock = clock

    async def aclose(self) -> None:
        """Close the certificate fetcher and its HTTP client."""
        await self.public_certificate_fetcher.aclose()

    async def __aenter__(self) -> "JWTVerifier":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def verify(self, token: str, allow_expired: bool = False) -> VerifiedIdentity:
        with self.metrics.time_verification() as outcome:
            try:
                identity = await self._verify(token, allow_expired)
            except VerificationError as exc:
                outcome["outcome"] = exc.kind.value
                self.logger.info(
                    "Token verification failed",
                    kind=exc.kind.value,
                    key=exc.key,
                    project_id=self.project_id,
                )
                raise

            outcome["outcome"] = "success"
            self.logger.debug("Token verified", project_id=self.project_id)
            return identity

    async def _verify(self, token: str, allow_expired: bool) -> VerifiedIdentity:
        raw = parse_token(token)
        header, payload = raw.header, raw.payload

        if not allow_expired:
            claims.verify_expiration_time(payload, self._clock())
        claims.verify_algorithm(header)
        claims.verify_audience(payload, self.project_id)
        claims.verify_issuer(payload, self.project_id)
        key_identifier = claims.require_key_identifier(header)
        subject = claims.verify_subject(payload)

        user_id = payload.get("user_id")
        if user_id is not None and user_id != subject:
            self.logger.warning("Token 'user_id' claim differs from 'sub'", project_id=self.project_id)

        certificate = await self.public_certificate_fetcher.fetch(key_identifier)
        verify_signature(raw, certificate)

        return _build_identity(subject, payload)


def _build_identity(subject: str, payload: Mapping[str, Any]) -> VerifiedIdentity:
    expiration = claims.time_claim(payload, "exp")
    if expiration is None:
        raise VerificationError(VerificationErrorKind.NOT_FOUND, key="auth_time")

    firebase = payload.get("firebase")
    sign_in_provider = None
    if isinstance(firebase, Mapping):
        sign_in_provider = claims.string_claim(firebase, "sign_in_provider")

    return VerifiedIdentity(
        subject=subject,
        result_timestamp=_to_datetime(expiration, "exp"),
        auth_time=_to_datetime(claims.time_claim(payload, "auth_time"), "auth_time"),
        issued_at=_to_datetime(claims.time_claim(payload, "iat"), "iat"),
        sign_in_provider=sign_in_provider,
        claims=dict(payload),
    )


def _to_datetime(value: Optional[float], key: str) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise VerificationError(
            VerificationErrorKind.INCORRECT,
            f"Firebase ID token has invalid '{key}' claim: not a valid NumericDate.",
            key=key,
        ) from exc
