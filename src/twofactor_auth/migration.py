"""Decode Google Authenticator ``otpauth-migration://offline?data=...`` exports.

The payload is a protobuf ``MigrationPayload``. Only the handful of fields an
authenticator needs are read, with a small wire-format reader rather than
generated code, so that unknown fields are skipped and a truncated buffer is
reported instead of producing half an account.

    MigrationPayload
      1: repeated OtpParameters otp_parameters
      2: version  3: batch_size  4: batch_index  5: batch_id

    OtpParameters
      1: secret (bytes)   2: name   3: issuer
      4: algorithm        5: digits 6: type
      7: counter          8: period
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse

from twofactor_auth import base32
from twofactor_auth.account import DEFAULT_DIGITS, DEFAULT_PERIOD, Account, parse_uri
from twofactor_auth.errors import (
    InvalidMigrationData,
    InvalidSecret,
    MalformedMessage,
    NoAccountsFound,
    TruncatedMessage,
    UnsupportedURIScheme,
)
from twofactor_auth.otp import Algorithm

logger = logging.getLogger(__name__)

MIGRATION_SCHEME = "otpauth-migration"
MIGRATION_HOST = "offline"

UNKNOWN_ISSUER = "Unknown"

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5

OTP_TYPE_HOTP = 1
OTP_TYPE_TOTP = 2

ALGORITHM_MAP: dict[int, Algorithm] = {
    0: Algorithm.SHA1,
    1: Algorithm.SHA1,
    2: Algorithm.SHA256,
    3: Algorithm.SHA512,
}

_MAX_VARINT_BYTES = 10


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------


def read_varint(data: bytes, pos: int, end: int | None = None) -> tuple[int, int]:
    """Read a base-128 varint at ``pos``; return ``(value, next_pos)``."""
    end = len(data) if end is None else end
    value = 0
    shift = 0
    start = pos
    while pos < end:
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7
        if pos - start >= _MAX_VARINT_BYTES:
            raise MalformedMessage(f"Varint at offset {start} is longer than 64 bits")
    raise TruncatedMessage(f"Varint at offset {start} runs past the end of the message")


def _take(data: bytes, pos: int, size: int, end: int) -> tuple[bytes, int]:
    if pos + size > end:
        raise TruncatedMessage(
            f"Field at offset {pos} declares {size} bytes but only {end - pos} remain"
        )
    return data[pos : pos + size], pos + size


def iter_fields(data: bytes, start: int = 0, end: int | None = None) -> Iterator[tuple[int, int, int | bytes]]:
    """Yield ``(field_number, wire_type, value)`` for each field in ``data[start:end]``.

    Varints are yielded as ints; every other wire type as raw bytes.
    """
    end = len(data) if end is None else end
    pos = start
    while pos < end:
        tag, pos = read_varint(data, pos, end)
        number, wire_type = tag >> 3, tag & 0x07
        if wire_type == WIRE_VARINT:
            value, pos = read_varint(data, pos, end)
            yield number, wire_type, value
        elif wire_type == WIRE_FIXED64:
            chunk, pos = _take(data, pos, 8, end)
            yield number, wire_type, chunk
        elif wire_type == WIRE_LENGTH_DELIMITED:
            size, pos = read_varint(data, pos, end)
            chunk, pos = _take(data, pos, size, end)
            yield number, wire_type, chunk
        elif wire_type == WIRE_FIXED32:
            chunk, pos = _take(data, pos, 4, end)
            yield number, wire_type, chunk
        else:
            raise MalformedMessage(f"Unsupported wire type {wire_type} at offset {pos}")


def _text(value: int | bytes) -> str | None:
    if not isinstance(value, bytes):
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return None


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass
class OtpParameters:
    secret: bytes | None = None
    name: str | None = None
    issuer: str | None = None
    algorithm: int = 0
    digits: int = 0
    type: int = OTP_TYPE_TOTP
    counter: int = 0
    period: int = 0

    @classmethod
    def parse(cls, data: bytes) -> OtpParameters:
        params = cls()
        for number, wire_type, value in iter_fields(data):
            if wire_type == WIRE_LENGTH_DELIMITED:
                if number == 1:
                    params.secret = value
                elif number == 2:
                    params.name = _text(value)
                elif number == 3:
                    params.issuer = _text(value)
            elif wire_type == WIRE_VARINT:
                if number == 4:
                    params.algorithm = value
                elif number == 5:
                    params.digits = value
                elif number == 6:
                    params.type = value
                elif number == 7:
                    params.counter = value
                elif number == 8:
                    params.period = value
        return params

    def resolve_names(self) -> tuple[str, str]:
        """Return ``(issuer, account_name)``.

        An explicit issuer wins and the name is kept whole. Otherwise an
        ``Issuer:account`` name is split, and a bare name gets
        ``UNKNOWN_ISSUER``.
        """
        name = self.name or ""
        if self.issuer:
            return self.issuer, name
        if ":" in name:
            issuer, account_name = name.split(":", 1)
            return issuer, account_name
        return UNKNOWN_ISSUER, name

    def to_account(self) -> Account | None:
        """Convert to an Account, or None if this entry cannot be used."""
        if self.type != OTP_TYPE_TOTP:
            logger.debug("Skipping entry %r: OTP type %d is not TOTP", self.name, self.type)
            return None
        if not self.secret:
            logger.debug("Skipping entry %r: no secret", self.name)
            return None

        digits = DEFAULT_DIGITS if self.digits <= 1 else self.digits
        period = DEFAULT_PERIOD if self.period == 0 else self.period
        logger.debug("Entry %r: digits %d -> %d, period %d -> %d", self.name, self.digits, digits, self.period, period)

        issuer, account_name = self.resolve_names()
        try:
            return Account(
                issuer=issuer,
                account_name=account_name,
                secret=base32.encode(self.secret),
                algorithm=ALGORITHM_MAP.get(self.algorithm, Algorithm.SHA1),
                digits=digits,
                period=period,
            )
        except InvalidSecret as exc:
            logger.debug("Skipping entry %r: %s", self.name, exc)
            return None


@dataclass
class MigrationBatch:
    """One decoded QR code of a (possibly multi-QR) export."""

    accounts: list[Account] = field(default_factory=list)
    version: int = 0
    batch_size: int = 0
    batch_index: int = 0
    batch_id: int = 0
    skipped: int = 0


def decode_batch(raw: bytes) -> MigrationBatch:
    """Decode a binary MigrationPayload.

    Entries that are HOTP, lack a secret, or are internally malformed are
    counted in ``skipped``. Truncation anywhere aborts the whole decode.

    Raises:
        TruncatedMessage: a declared length runs past the end of the data.
        MalformedMessage: a top-level field cannot be skipped.
        NoAccountsFound: no TOTP entry survived.
    """
    batch = MigrationBatch()
    for number, wire_type, value in iter_fields(raw):
        if number == 1 and wire_type == WIRE_LENGTH_DELIMITED:
            try:
                account = OtpParameters.parse(value).to_account()
            except MalformedMessage as exc:
                logger.debug("Skipping malformed entry: %s", exc)
                account = None
            if account is None:
                batch.skipped += 1
            else:
                batch.accounts.append(account)
        elif wire_type == WIRE_VARINT:
            if number == 2:
                batch.version = value
            elif number == 3:
                batch.batch_size = value
            elif number == 4:
                batch.batch_index = value
            elif number == 5:
                batch.batch_id = value

    if not batch.accounts:
        raise NoAccountsFound(f"Migration payload contains no TOTP accounts ({batch.skipped} skipped)")
    return batch


def decode_payload(raw: bytes) -> list[Account]:
    return decode_batch(raw).accounts


# ---------------------------------------------------------------------------
# URI envelope
# ---------------------------------------------------------------------------


def _query_value(query: str, name: str) -> str | None:
    # parse_qs would turn a literal "+" of the base64 into a space
    for part in query.split("&"):
        key, _, value = part.partition("=")
        if unquote(key) == name:
            return unquote(value)
    return None


def extract_payload(uri: str) -> bytes:
    """Return the binary payload carried by an ``otpauth-migration`` URI.

    Raises:
        UnsupportedURIScheme: not ``otpauth-migration://offline``.
        InvalidMigrationData: ``data`` is missing or not base64.
    """
    parsed = urlparse(uri.strip())
    if parsed.scheme.lower() != MIGRATION_SCHEME or parsed.netloc.lower() != MIGRATION_HOST:
        raise UnsupportedURIScheme(f"Expected {MIGRATION_SCHEME}://{MIGRATION_HOST} URI, got {uri[:40]!r}")

    data = _query_value(parsed.query, "data")
    if not data:
        raise InvalidMigrationData("No 'data' parameter found in migration URI")

    b64 = "".join(data.split()).replace("-", "+").replace("_", "/").rstrip("=")
    b64 += "=" * (-len(b64) % 4)
    try:
        return base64.b64decode(b64, validate=True)
    except binascii.Error as exc:
        raise InvalidMigrationData(f"Migration data is not valid base64: {exc}") from exc


def decode_uri(uri: str) -> list[Account]:
    """Decode an ``otpauth-migration`` URI into accounts."""
    return decode_payload(extract_payload(uri))


def accounts_from_uri(uri: str) -> list[Account]:
    """Accept either a migration URI or a single ``otpauth://`` URI."""
    if urlparse(uri.strip()).scheme.lower() == MIGRATION_SCHEME:
        return decode_uri(uri)
    return [parse_uri(uri)]
