"""
Shared utilities for the Firebase token verifier.

This package aggregates cross-cutting building blocks used by
firebase_verifier:

- config: Verifier configuration via pydantic-settings
- logging: Structured logging with request correlation and redaction
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for network calls

Do not import from firebase_verifier into shared/.
"""
