"""Time-based one-time password generation (RFC 6238 on top of RFC 4226).

Everything here is a pure function of its arguments. The current time is
always passed in, so callers refreshing a display once a second simply call
``generate`` again with a new timestamp.
"""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timezone
from enum import Enum

import pyotp

from twofactor_auth import base32
from twofactor_auth.errors import InvalidCharacter, InvalidParameter, InvalidSecret


class Algorithm(str, Enum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @classmethod
    def parse(cls, value: str | None) -> Algorithm:
        """Case-insensitive lookup; anything unrecognised is SHA1."""
        if value:
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.SHA1


HASH_MAP = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
}

# pyotp pads the code from an 11-digit string
MAX_DIGITS = 10


def decode_secret(secret: str) -> bytes:
    """Decode a base32 secret, rejecting invalid or empty input."""
    try:
        key = base32.decode(secret)
    except InvalidCharacter as exc:
        raise InvalidSecret(f"Secret is not valid base32: {exc}") from exc
    if not key:
        raise InvalidSecret("Secret is empty")
    return key


def _pyotp_secret(key: bytes) -> str:
    return base64.b32encode(key).decode("ascii")


def _check_digits(digits: int) -> None:
    if not 0 < digits <= MAX_DIGITS:
        raise InvalidParameter(f"digits must be between 1 and {MAX_DIGITS}, got {digits}")


def hotp(key: bytes, counter: int, algorithm: Algorithm = Algorithm.SHA1, digits: int = 6) -> str:
    """Counter-based code for an already-decoded key."""
    _check_digits(digits)
    return pyotp.HOTP(_pyotp_secret(key), digits=digits, digest=HASH_MAP[Algorithm(algorithm)]).at(counter)


def generate(
    secret: str,
    algorithm: Algorithm = Algorithm.SHA1,
    digits: int = 6,
    period: int = 30,
    timestamp: float = 0,
) -> str:
    """Return the TOTP code for ``secret`` at ``timestamp`` (Unix seconds).

    Raises:
        InvalidSecret: if the secret does not decode to at least one byte.
        InvalidParameter: for a negative timestamp, a non-positive period,
            or digits outside ``1..MAX_DIGITS``.
    """
    key = decode_secret(secret)
    _check_digits(digits)
    if period <= 0:
        raise InvalidParameter(f"period must be positive, got {period}")
    if timestamp < 0:
        raise InvalidParameter(f"timestamp must not be negative, got {timestamp}")
    totp = pyotp.TOTP(
        _pyotp_secret(key),
        digits=digits,
        digest=HASH_MAP[Algorithm(algorithm)],
        interval=period,
    )
    # an aware datetime keeps pyotp off the local-time conversion path
    return totp.at(datetime.fromtimestamp(int(timestamp), timezone.utc))


def time_remaining(period: int, now: float) -> float:
    """Seconds until the code for ``now`` rolls over."""
    return period - (now % period)


def progress(period: int, now: float) -> float:
    """Fraction of the current window already elapsed, in ``[0, 1)``."""
    return (period - time_remaining(period, now)) / period
