"""
Retrieval of Google's securetoken public certificates.
"""

import base64
import binascii
import re
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from shared.config import GOOGLE_CERTIFICATE_URL
from shared.errors import VerificationError, VerificationErrorKind
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from shared.retry import RetryConfig, RetryError, retry_on_exception
from ..models import PublicKeySet
from ..validation.claims import VERIFY_ID_TOKEN_DOCS_MESSAGE

_MAX_AGE_PATTERN = re.compile(r"(?:^|,)\s*max-age\s*=\s*(\d+)", re.IGNORECASE)


class CertificateFetcher(ABC):
    """Source of the certificate that signed tokens with a given kid."""

    @abstractmethod
    async def fetch(self, key_identifier: str) -> bytes:
        """Return the DER certificate for ``key_identifier``.

        Raises NOT_FOUND ("public key") when the kid is not published and
        CERTIFICATE_FETCH_FAILED when the key set could not be retrieved.
        """

    async def aclose(self) -> None:
        """Release network resources; nothing to release by default."""


class KeySetSource(ABC):
    """Source of the full published key set."""

    @abstractmethod
    async def fetch_key_set(self) -> PublicKeySet:
        """Download the current key set."""

    async def aclose(self) -> None:
        """Release network resources; nothing to release by default."""


def decode_certificate(pem: str) -> bytes:
    """Strip the PEM envelope and base64-decode the body to DER."""
    body = "".join(
        line.strip() for line in pem.splitlines()
        if line.strip() and not line.startswith("-----")
    )
    if not body:
        raise ValueError("certificate has no body")
    return base64.b64decode(body, validate=True)


def select_certificate(key_set: PublicKeySet, key_identifier: str) -> bytes:
    pem = key_set.certificates.get(key_identifier)
    if pem is None:
        raise VerificationError(
            VerificationErrorKind.NOT_FOUND,
            "Firebase ID token has 'kid' claim which does not correspond to a known public key. "
            "Most likely the ID token is expired, so get a fresh token from your client app and "
            f"try again. {VERIFY_ID_TOKEN_DOCS_MESSAGE}",
            key="public key",
            details={"kid": key_identifier},
        )
    try:
        return decode_certificate(pem)
    except (ValueError, binascii.Error) as exc:
        raise VerificationError(
            VerificationErrorKind.CERTIFICATE_FETCH_FAILED,
            "Public certificate for the token's 'kid' could not be decoded.",
            details={"kid": key_identifier, "error_type": type(exc).__name__},
        ) from exc


def parse_max_age(cache_control: Optional[str]) -> Optional[float]:
    """Return the max-age directive of a Cache-Control header in seconds."""
    if not cache_control:
        return None
    match = _MAX_AGE_PATTERN.search(cache_control)
    return float(match.group(1)) if match else None


class GooglePublicCertificateFetcher(CertificateFetcher, KeySetSource):
    """Fetches the x509 metadata document on every call.

    Wrap in CachingCertificateFetcher for production use.
    """

    def __init__(
        self,
        certificate_url: str = GOOGLE_CERTIFICATE_URL,
        *,
        http_timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.certificate_url = certificate_url
        self.retry_config = retry_config or RetryConfig()
        self.logger = get_logger("firebase_verifier.certificates")
        self.metrics = metrics or get_metrics_collector()

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=http_timeout)

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GooglePublicCertificateFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def fetch(self, key_identifier: str) -> bytes:
        key_set = await self.fetch_key_set()
        return select_certificate(key_set, key_identifier)

    async def fetch_key_set(self) -> PublicKeySet:
        download = retry_on_exception((httpx.TransportError,), self.retry_config)(self._download)
        try:
            response = await download()
            response.raise_for_status()
            payload = response.json()
        except (RetryError, httpx.HTTPError, ValueError) as exc:
            cause = exc.last_exception if isinstance(exc, RetryError) else exc
            self.metrics.record_certificate_fetch("error")
            self.logger.error(
                "Failed to fetch public certificates",
                url=self.certificate_url,
                error_type=type(cause).__name__,
                error=str(cause),
            )
            raise VerificationError(
                VerificationErrorKind.CERTIFICATE_FETCH_FAILED,
                "Failed to fetch public key certificates.",
                details={"url": self.certificate_url, "error_type": type(cause).__name__},
            ) from exc

        certificates = self._parse_certificates(payload)
        max_age = parse_max_age(response.headers.get("cache-control"))
        self.metrics.record_certificate_fetch("success")
        self.logger.info(
            "Public certificates fetched",
            keys_count=len(certificates),
            max_age=max_age,
        )
        return PublicKeySet(certificates=certificates, max_age=max_age)

    async def _download(self) -> httpx.Response:
        return await self._client.get(self.certificate_url)

    def _parse_certificates(self, payload: object) -> Dict[str, str]:
        if not isinstance(payload, dict) or not all(
            isinstance(kid, str) and isinstance(pem, str) for kid, pem in payload.items()
        ):
            self.metrics.record_certificate_fetch("error")
            self.logger.error("Certificate response is not a kid to PEM mapping", url=self.certificate_url)
            raise VerificationError(
                VerificationErrorKind.CERTIFICATE_FETCH_FAILED,
                "Public key certificate response has an unexpected format.",
                details={"url": self.certificate_url},
            )
        return dict(payload)
