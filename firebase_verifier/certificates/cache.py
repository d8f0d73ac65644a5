"""
Caching decorator for certificate fetchers.
"""

import asyncio
import time
from typing import Callable, Optional

from shared.errors import VerificationError, VerificationErrorKind
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from ..models import PublicKeySet
from .fetcher import CertificateFetcher, KeySetSource, select_certificate


class CachingCertificateFetcher(CertificateFetcher):
    """Serves certificates from a cached key set.

    The key set is kept for the endpoint's ``max-age`` (or ``default_ttl``).
    A kid missing from a fresh key set forces a refresh, at most once per
    ``min_refresh_interval``. Refreshes are serialized, so concurrent
    callers share a single upstream request. If a refresh fails while a
    previous key set exists, the previous key set keeps being served and
    the next attempt waits ``min_refresh_interval``.
    """

    def __init__(
        self,
        source: KeySetSource,
        *,
        default_ttl: float = 3600.0,
        min_refresh_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.source = source
        self.default_ttl = default_ttl
        self.min_refresh_interval = min_refresh_interval
        self.logger = get_logger("firebase_verifier.certificates.cache")
        self.metrics = metrics or get_metrics_collector()

        self._clock = clock
        self._key_set: Optional[PublicKeySet] = None
        self._attempted_at: float = 0.0
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    async def fetch(self, key_identifier: str) -> bytes:
        key_set = self._key_set
        if key_set is None or self._clock() >= self._expires_at:
            self.metrics.record_cache_lookup("stale")
            key_set = await self._refresh(force=False)
        elif key_identifier in key_set:
            self.metrics.record_cache_lookup("hit")

        if key_identifier not in key_set:
            # Keys may have rotated since the last download.
            self.metrics.record_cache_lookup("miss")
            key_set = await self._refresh(force=True)

        return select_certificate(key_set, key_identifier)

    async def _refresh(self, *, force: bool) -> PublicKeySet:
        """Download a new key set unless another caller just did."""
        async with self._lock:
            now = self._clock()
            if self._key_set is not None:
                if not force and now < self._expires_at:
                    return self._key_set
                if force and now - self._attempted_at < self.min_refresh_interval:
                    return self._key_set

            self._attempted_at = now
            try:
                key_set = await self.source.fetch_key_set()
            except VerificationError as exc:
                if exc.kind is not VerificationErrorKind.CERTIFICATE_FETCH_FAILED or self._key_set is None:
                    raise
                self.logger.warning("Certificate refresh failed, serving previous key set")
                self._expires_at = max(self._expires_at, now + self.min_refresh_interval)
                return self._key_set

            ttl = key_set.max_age if key_set.max_age is not None else self.default_ttl
            self._key_set = key_set
            self._expires_at = now + ttl
            self.logger.debug("Certificate cache refreshed", keys_count=len(key_set.certificates), ttl=ttl)
            return key_set

    def clear(self) -> None:
        """Drop the cached key set."""
        self._key_set = None
        self._attempted_at = 0.0
        self._expires_at = 0.0
        self.logger.info("Certificate cache cleared")

    async def aclose(self) -> None:
        """Close the wrapped key set source."""
        await self.source.aclose()
