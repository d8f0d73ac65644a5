"""
Shared fixtures for verifier tests.
"""

from typing import List, Optional

import pytest
from prometheus_client import CollectorRegistry

from firebase_verifier.certificates import CertificateFetcher, KeySetSource, select_certificate
from firebase_verifier.models import PublicKeySet
from firebase_verifier.verifier import JWTVerifier
from shared.metrics import MetricsCollector
from shared.test_helpers import SigningKey, TEST_PROJECT_ID, create_signing_key

FIXED_NOW = 1_700_000_000.0


class StaticKeySetSource(KeySetSource):
    """Serves a fixed key set and counts how often it was asked."""

    def __init__(self, keys: List[SigningKey], max_age: Optional[float] = None):
        self.key_set = PublicKeySet(
            certificates={key.key_id: key.certificate_pem for key in keys},
            max_age=max_age,
        )
        self.calls = 0
        self.error: Optional[Exception] = None

    async def fetch_key_set(self) -> PublicKeySet:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.key_set


class StaticCertificateFetcher(CertificateFetcher):
    """Uncached fetcher over a StaticKeySetSource."""

    def __init__(self, source: StaticKeySetSource):
        self.source = source

    async def fetch(self, key_identifier: str) -> bytes:
        return select_certificate(await self.source.fetch_key_set(), key_identifier)


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    """Key pair whose certificate is published."""
    return create_signing_key("test-key-1")


@pytest.fixture(scope="session")
def rogue_signing_key() -> SigningKey:
    """Key pair whose certificate is not published."""
    return create_signing_key("rogue-key")


@pytest.fixture
def key_source(signing_key):
    """Key set source publishing only ``signing_key``."""
    return StaticKeySetSource([signing_key])


@pytest.fixture
def certificate_fetcher(key_source):
    """Uncached certificate fetcher over ``key_source``."""
    return StaticCertificateFetcher(key_source)


@pytest.fixture
def metrics():
    """Metrics collector on an isolated registry."""
    return MetricsCollector(CollectorRegistry())


@pytest.fixture
def now():
    """Fixed current time used by the verifier clock."""
    return FIXED_NOW


@pytest.fixture
def verifier(certificate_fetcher, metrics, now):
    """Verifier for TEST_PROJECT_ID with a frozen clock."""
    return JWTVerifier(
        TEST_PROJECT_ID,
        certificate_fetcher,
        clock=lambda: now,
        metrics=metrics,
    )
