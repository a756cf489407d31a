"""
Shared utilities for the coalesce wrappers.

This package aggregates the ambient building blocks used by the wrappers:

- config: Process-wide defaults via pydantic-settings
- logging: Structured logging with wrapper correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and payloads

Do not import from the coalesce package into shared/.
"""
