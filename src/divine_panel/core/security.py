"""Shared-secret helpers for the PIN-protected endpoints."""
from __future__ import annotations

import hmac


def pin_matches(expected: str, attempt: str | None) -> bool:
    """Compare a PIN attempt against the configured secret in constant time.

    Args:
        expected: Configured shared secret. An empty value never matches.
        attempt: Value supplied by the caller, possibly missing.

    Returns:
        True only when a secret is configured and the attempt equals it.
    """
    if not expected or not attempt:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), attempt.encode("utf-8"))
