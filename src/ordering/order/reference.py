"""Human-readable order references.

A reference is the three-letter prefix, the last six digits of the current
epoch milliseconds and six random base-36 characters, e.g. ``ORD482913K7Q2ZD``.
References are unique per order and never change once assigned.
"""

import os
import random
import string
import time

DEFAULT_PREFIX = "ORD"
_ALPHABET = string.digits + string.ascii_uppercase
_RANDOM_LENGTH = 6

_random = random.SystemRandom()


def reference_prefix() -> str:
    return os.environ.get("ORDER_REFERENCE_PREFIX", DEFAULT_PREFIX).upper()


def generate_reference(prefix: str | None = None, now_ms: int | None = None) -> str:
    prefix = (prefix or reference_prefix()).upper()
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    stamp = str(now_ms)[-6:].zfill(6)
    suffix = "".join(_random.choice(_ALPHABET) for _ in range(_RANDOM_LENGTH))
    return f"{prefix}{stamp}{suffix}"


def is_valid_reference(reference: str, prefix: str | None = None) -> bool:
    prefix = (prefix or reference_prefix()).upper()
    if not reference or not reference.startswith(prefix):
        return False
    body = reference[len(prefix) :]
    return len(body) == 6 + _RANDOM_LENGTH and body[:6].isdigit() and all(c in _ALPHABET for c in body[6:])
