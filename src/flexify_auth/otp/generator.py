"""Numeric one-time passcode generator."""

import secrets
import string


def generate_code(length: int = 6) -> str:
    """Return *length* digits, each drawn uniformly from ``0-9``.

    Uses :mod:`secrets` so codes cannot be predicted from earlier ones.
    Repeats between calls are possible and expected.
    """
    if length < 1:
        raise ValueError("OTP length must be at least 1")
    return "".join(secrets.choice(string.digits) for _ in range(length))
