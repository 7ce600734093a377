"""
Idempotency key generation for mutating provider calls.
"""

import secrets
import time

# Square rejects idempotency keys longer than 45 characters.
MAX_KEY_LENGTH = 45

# Wall-clock epoch of the monotonic clock, fixed at import.
_MONOTONIC_EPOCH_NS = time.time_ns() - time.monotonic_ns()


def _timestamp_ns() -> int:
    """Nanoseconds since the Unix epoch that never go backwards within a process."""
    return _MONOTONIC_EPOCH_NS + time.monotonic_ns()


def generate_idempotency_key() -> str:
    """
    Generate a best-effort unique key for one provider call attempt.

    Combines a timestamp in nanoseconds with 96 random bits. The timestamp
    follows the monotonic clock anchored to wall-clock time at startup, so
    it does not decrease when the system clock is adjusted; across restarts
    it is only as ordered as the wall clock. Uniqueness comes from the
    random part. A new key means a new logical request to the provider.
    """
    return f"{_timestamp_ns():x}-{secrets.token_hex(12)}"


def generate_order_id() -> str:
    """Order reference attached to payment metadata, e.g. ``order_1718000000000``."""
    return f"order_{time.time_ns() // 1_000_000}"
