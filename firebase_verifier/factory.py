"""
Construction of a verifier from VerifierConfig.
"""

from typing import Optional

from shared.config import VerifierConfig, get_config
from shared.errors import ConfigurationError
from shared.logging import configure_logging
from shared.retry import RetryConfig
from .certificates import CachingCertificateFetcher, CertificateFetcher, GooglePublicCertificateFetcher
from .verifier import JWTVerifier


def build_certificate_fetcher(config: VerifierConfig) -> CertificateFetcher:
    fetcher = GooglePublicCertificateFetcher(
        config.certificate_url,
        http_timeout=config.http_timeout,
        retry_config=RetryConfig(
            max_attempts=config.fetch_max_attempts,
            base_delay=config.fetch_retry_base_delay,
        ),
    )
    if not config.cache_enabled:
        return fetcher
    return CachingCertificateFetcher(
        fetcher,
        default_ttl=config.cache_default_ttl,
        min_refresh_interval=config.min_refresh_interval,
    )


def build_verifier(
    config: Optional[VerifierConfig] = None,
    *,
    configure_logs: bool = False,
) -> JWTVerifier:
    """Build a JWTVerifier from configuration (environment by default).

    With configure_logs, structlog is set up at config.log_level first.
    Raises ConfigurationError when no project id is configured.
    """
    config = config or get_config()
    if configure_logs:
        configure_logging("firebase-verifier", config.log_level)
    if not config.project_id:
        raise ConfigurationError(
            "Missing Firebase project id; set FIREBASE_PROJECT_ID",
            details={"setting": "project_id"},
        )
    return JWTVerifier(config.project_id, build_certificate_fetcher(config))
