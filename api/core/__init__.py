"""
Core utilities shared across the card API.

This package hosts configuration helpers (env vars, paths, feature flags) and
small cross-cutting helpers (absolute URLs). Services depend on these
primitives instead of reading the environment themselves.
"""
