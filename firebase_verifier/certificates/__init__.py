"""
Certificate retrieval package.

Contains the fetch interface consumed by the verifier, the default fetcher
for Google's securetoken x509 endpoint, and a caching decorator that honours
the endpoint's Cache-Control max-age.
"""

from .fetcher import (
    CertificateFetcher,
    KeySetSource,
    GooglePublicCertificateFetcher,
    decode_certificate,
    select_certificate,
    parse_max_age,
)
from .cache import CachingCertificateFetcher

__all__ = [
    "CertificateFetcher",
    "KeySetSource",
    "GooglePublicCertificateFetcher",
    "CachingCertificateFetcher",
    "decode_certificate",
    "select_certificate",
    "parse_max_age",
]
