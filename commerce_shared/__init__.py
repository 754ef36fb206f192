"""
Shared utilities for the commerce grants client.

This package aggregates the building blocks that do not depend on the
commerce auth API itself:

- errors: Canonical error types and the conflict classification
- logging: Structured logging with correlation ids and secret masking
- metrics: Prometheus counters for grant fetches and conflict retries
- retry: Backoff delay calculation and retry-on-conflict execution

Do not import from commerce_auth into commerce_shared.
"""
