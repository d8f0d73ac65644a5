"""
Unit tests for CachingCertificateFetcher.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from firebase_verifier.certificates import CachingCertificateFetcher, decode_certificate
from firebase_verifier.models import PublicKeySet
from shared.errors import VerificationError, VerificationErrorKind


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCachingCertificateFetcher:
    """Test cases for CachingCertificateFetcher."""

    @pytest.fixture
    def clock(self):
        """Controllable clock."""
        return FakeClock()

    @pytest.fixture
    def cache(self, key_source, clock, metrics):
        """Cache over the static key source."""
        return CachingCertificateFetcher(
            key_source,
            default_ttl=300,
            min_refresh_interval=60,
            clock=clock,
            metrics=metrics,
        )

    @pytest.mark.asyncio
    async def test_first_fetch_downloads(self, cache, key_source, signing_key):
        """Test the first lookup populates the cache."""
        certificate = await cache.fetch(signing_key.key_id)

        assert certificate == decode_certificate(signing_key.certificate_pem)
        assert key_source.calls == 1

    @pytest.mark.asyncio
    async def test_cached_until_ttl(self, cache, key_source, signing_key, clock):
        """Test lookups within the TTL do not hit the source."""
        await cache.fetch(signing_key.key_id)
        clock.advance(299)
        await cache.fetch(signing_key.key_id)

        assert key_source.calls == 1

        clock.advance(1)
        await cache.fetch(signing_key.key_id)

        assert key_source.calls == 2

    @pytest.mark.asyncio
    async def test_max_age_overrides_default_ttl(self, cache, key_source, signing_key, clock):
        """Test the endpoint's max-age decides expiry."""
        key_source.key_set = PublicKeySet(certificates=dict(key_source.key_set.certificates), max_age=30)

        await cache.fetch(signing_key.key_id)
        clock.advance(30)
        await cache.fetch(signing_key.key_id)

        assert key_source.calls == 2

    @pytest.mark.asyncio
    async def test_unknown_kid_refresh_is_rate_limited(self, cache, key_source, signing_key, clock):
        """Test an unknown kid forces at most one refresh per interval."""
        await cache.fetch(signing_key.key_id)

        for _ in range(5):
            with pytest.raises(VerificationError) as exc_info:
                await cache.fetch("rotated-kid")
            assert exc_info.value.kind is VerificationErrorKind.NOT_FOUND
            assert exc_info.value.key == "public key"

        assert key_source.calls == 1

        clock.advance(61)
        with pytest.raises(VerificationError):
            await cache.fetch("rotated-kid")

        assert key_source.calls == 2

    @pytest.mark.asyncio
    async def test_unknown_kid_picks_up_rotation(self, cache, key_source, signing_key, rogue_signing_key, clock):
        """Test a newly published kid is found by a forced refresh."""
        await cache.fetch(signing_key.key_id)
        key_source.key_set = PublicKeySet(certificates={
            signing_key.key_id: signing_key.certificate_pem,
            rogue_signing_key.key_id: rogue_signing_key.certificate_pem,
        })
        clock.advance(61)

        certificate = await cache.fetch(rogue_signing_key.key_id)

        assert certificate == decode_certificate(rogue_signing_key.certificate_pem)
        assert key_source.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, key_source, signing_key, clock, metrics):
        """Test concurrent callers on a cold cache trigger a single download."""
        release = asyncio.Event()
        original = key_source.fetch_key_set

        async def slow_fetch_key_set():
            await release.wait()
            return await original()

        key_source.fetch_key_set = slow_fetch_key_set
        cache = CachingCertificateFetcher(key_source, clock=clock, metrics=metrics)

        tasks = [asyncio.create_task(cache.fetch(signing_key.key_id)) for _ in range(10)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        assert key_source.calls == 1
        assert len(set(results)) == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_serves_previous_key_set(self, cache, key_source, signing_key, clock):
        """Test a failing refresh falls back to the cached key set."""
        await cache.fetch(signing_key.key_id)
        key_source.error = VerificationError(VerificationErrorKind.CERTIFICATE_FETCH_FAILED)
        clock.advance(301)

        certificate = await cache.fetch(signing_key.key_id)

        assert certificate == decode_certificate(signing_key.certificate_pem)
        assert key_source.calls == 2

        # Backs off instead of retrying on every call
        await cache.fetch(signing_key.key_id)
        assert key_source.calls == 2

    @pytest.mark.asyncio
    async def test_failed_first_fetch_raises(self, cache, key_source, signing_key):
        """Test a failure with nothing cached propagates."""
        key_source.error = VerificationError(VerificationErrorKind.CERTIFICATE_FETCH_FAILED)

        with pytest.raises(VerificationError) as exc_info:
            await cache.fetch(signing_key.key_id)

        assert exc_info.value.kind is VerificationErrorKind.CERTIFICATE_FETCH_FAILED

    @pytest.mark.asyncio
    async def test_clear(self, cache, key_source, signing_key):
        """Test clearing forces a new download."""
        await cache.fetch(signing_key.key_id)
        cache.clear()
        await cache.fetch(signing_key.key_id)

        assert key_source.calls == 2

    @pytest.mark.asyncio
    async def test_forced_refresh_backs_off_during_outage(self, cache, key_source, signing_key, clock):
        """Test unknown kids do not hammer a failing endpoint."""
        await cache.fetch(signing_key.key_id)
        key_source.error = VerificationError(VerificationErrorKind.CERTIFICATE_FETCH_FAILED)
        clock.advance(61)

        for index in range(20):
            with pytest.raises(VerificationError) as exc_info:
                await cache.fetch(f"random-kid-{index}")
            assert exc_info.value.key == "public key"

        assert key_source.calls == 2

        clock.advance(61)
        with pytest.raises(VerificationError):
            await cache.fetch("random-kid")

        assert key_source.calls == 3

    @pytest.mark.asyncio
    async def test_aclose_closes_source(self, key_source, clock, metrics):
        """Test closing the cache closes the wrapped source."""
        key_source.aclose = AsyncMock()
        cache = CachingCertificateFetcher(key_source, clock=clock, metrics=metrics)

        await cache.aclose()

        key_source.aclose.assert_awaited_once()
