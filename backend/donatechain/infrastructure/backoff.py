"""Retry Backoff: shared exponential backoff with jitter for HTTP clients.

Invariants:
    - Delay grows as base * 2**attempt, capped at max_delay_ms
    - ±25% jitter on every delay

Design Decisions:
    - Extracted so the mirror client and the JSON-RPC transport back off identically
"""

import random


def backoff_ms(attempt: int, base_delay_ms: int, max_delay_ms: int) -> int:
    """Exponential backoff with ±25% jitter."""
    delay = min(max_delay_ms, (2 ** attempt) * base_delay_ms)
    return int(delay * random.uniform(0.75, 1.25))  # nosec B311


def is_transient_status(status_code: int) -> bool:
    """429 and 5xx are worth retrying; other 4xx are not."""
    return status_code == 429 or status_code >= 500


def retry_after_ms(headers) -> int | None:
    """Extract Retry-After header (seconds) as milliseconds."""
    try:
        val = headers.get("retry-after")
        if val:
            return int(val) * 1000
    except (TypeError, ValueError):
        pass
    return None
