"""
Shared security package.

Response hardening headers, per-client rate limits, and JWT helpers.
"""
