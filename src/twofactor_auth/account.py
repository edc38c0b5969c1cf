"""Account record and the ``otpauth://totp/...`` URI format."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs, quote, unquote, urlencode, urlparse

from twofactor_auth import base32, otp
from twofactor_auth.errors import InvalidParameter, MissingSecret, UnsupportedOTPType, UnsupportedURIScheme
from twofactor_auth.otp import Algorithm

URI_SCHEME = "otpauth"
TOTP_HOST = "totp"

DEFAULT_ALGORITHM = Algorithm.SHA1
DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Account:
    issuer: str
    account_name: str
    secret: str
    algorithm: Algorithm = DEFAULT_ALGORITHM
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    last_used: datetime | None = None

    def __post_init__(self) -> None:
        secret = base32.normalize(self.secret)
        otp.decode_secret(secret)
        if self.digits <= 0:
            raise InvalidParameter(f"digits must be positive, got {self.digits}")
        if self.period <= 0:
            raise InvalidParameter(f"period must be positive, got {self.period}")
        object.__setattr__(self, "secret", secret)
        object.__setattr__(self, "algorithm", Algorithm(self.algorithm))

    @property
    def display_name(self) -> str:
        if self.issuer and self.account_name:
            return f"{self.issuer} ({self.account_name})"
        return self.issuer or self.account_name

    def generate_code(self, timestamp: float) -> str:
        return otp.generate(self.secret, self.algorithm, self.digits, self.period, timestamp)

    def time_remaining(self, now: float) -> float:
        return otp.time_remaining(self.period, now)

    def progress(self, now: float) -> float:
        return otp.progress(self.period, now)

    def with_changes(self, **changes: Any) -> Account:
        """Return an edited copy; the copy is validated like a new account."""
        return replace(self, **changes)

    def touched(self, when: datetime | None = None) -> Account:
        """Return a copy with ``last_used`` set."""
        return replace(self, last_used=when or _utcnow())

    # -- URI ----------------------------------------------------------------

    @classmethod
    def from_uri(cls, uri: str) -> Account:
        return parse_uri(uri)

    def to_uri(self) -> str:
        return to_uri(self)

    # -- plain data ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "issuer": self.issuer,
            "account_name": self.account_name,
            "secret": self.secret,
            "algorithm": self.algorithm.value,
            "digits": self.digits,
            "period": self.period,
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat() if self.last_used else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Account:
        last_used = data.get("last_used")
        return cls(
            id=uuid.UUID(data["id"]),
            issuer=data["issuer"],
            account_name=data["account_name"],
            secret=data["secret"],
            algorithm=Algorithm(data["algorithm"]),
            digits=int(data["digits"]),
            period=int(data["period"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            last_used=datetime.fromisoformat(last_used) if last_used else None,
        )


def _int_param(params: dict[str, list[str]], name: str, default: int) -> int:
    values = params.get(name)
    if not values:
        return default
    try:
        value = int(values[0].strip())
    except ValueError:
        return default
    return value if value > 0 else default


def split_label(label: str) -> tuple[str, str]:
    """Split a raw (still percent-encoded) label into ``(issuer, account_name)``.

    Only a literal colon separates the two; an encoded ``%3A`` stays part of
    the name.
    """
    if ":" in label:
        issuer, name = label.split(":", 1)
        return unquote(issuer), unquote(name)
    return "", unquote(label)


def parse_uri(uri: str) -> Account:
    """Parse an ``otpauth://totp/`` URI into an Account.

    Raises:
        UnsupportedURIScheme: scheme is not ``otpauth``.
        UnsupportedOTPType: type is not ``totp`` (HOTP is rejected).
        MissingSecret: ``secret`` is absent or empty.
        InvalidSecret: ``secret`` is not valid base32.
    """
    parsed = urlparse(uri.strip())
    if parsed.scheme.lower() != URI_SCHEME:
        raise UnsupportedURIScheme(f"Expected {URI_SCHEME}:// URI, got scheme {parsed.scheme!r}")
    otp_type = parsed.netloc.lower()
    if otp_type != TOTP_HOST:
        raise UnsupportedOTPType(f"Unsupported OTP type {otp_type!r}, only totp is supported")

    label = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    issuer, account_name = split_label(label)

    params = parse_qs(parsed.query, keep_blank_values=True)
    secret = base32.normalize(params.get("secret", [""])[0])
    if not secret:
        raise MissingSecret("URI has no secret parameter")
    if params.get("issuer"):
        issuer = params["issuer"][0]

    return Account(
        issuer=issuer,
        account_name=account_name,
        secret=secret,
        algorithm=Algorithm.parse(params.get("algorithm", [None])[0]),
        digits=_int_param(params, "digits", DEFAULT_DIGITS),
        period=_int_param(params, "period", DEFAULT_PERIOD),
    )


def to_uri(account: Account) -> str:
    """Build the minimal ``otpauth://totp/`` URI for an account.

    Default algorithm, digits and period are left out.
    """
    name = quote(account.account_name, safe="@")
    label = f"{quote(account.issuer, safe='@')}:{name}" if account.issuer else name
    params = {"secret": account.secret}
    if account.issuer:
        params["issuer"] = account.issuer
    if account.algorithm != DEFAULT_ALGORITHM:
        params["algorithm"] = account.algorithm.value
    if account.digits != DEFAULT_DIGITS:
        params["digits"] = str(account.digits)
    if account.period != DEFAULT_PERIOD:
        params["period"] = str(account.period)
    return f"{URI_SCHEME}://{TOTP_HOST}/{label}?{urlencode(params, quote_via=quote)}"
