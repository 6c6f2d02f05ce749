"""Verification code generation."""

import secrets

CODE_MIN = 100000
CODE_MAX = 999999


def generate_verification_code() -> str:
    """Return a random 6-digit numeric code in ``100000..999999``."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def codes_match(stored: str | None, submitted: str | None) -> bool:
    """Exact comparison of a submitted code against the stored one.

    The submission is not trimmed or normalized. A missing stored code
    (already verified, or never issued) never matches.
    """
    if not stored or submitted is None:
        return False
    return secrets.compare_digest(stored.encode("utf-8"), submitted.encode("utf-8"))
