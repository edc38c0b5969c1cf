"""Exception types raised by twofactor_auth."""

from __future__ import annotations


class TwoFactorError(ValueError):
    """Base class for every error raised by this package."""


class InvalidCharacter(TwoFactorError):
    def __init__(self, char: str, position: int) -> None:
        super().__init__(f"Invalid base32 character {char!r} at position {position}")
        self.char = char
        self.position = position


class InvalidSecret(TwoFactorError):
    """Secret is not valid base32 or decodes to nothing."""


class UnsupportedURIScheme(TwoFactorError):
    """URI does not use the scheme/host this decoder understands."""


class UnsupportedOTPType(UnsupportedURIScheme):
    """OTP type other than TOTP (e.g. HOTP)."""


class MissingSecret(TwoFactorError):
    """otpauth URI has no usable ``secret`` parameter."""


class InvalidParameter(TwoFactorError):
    """Digits, period or timestamp outside the range a code can be generated for."""


class InvalidMigrationData(TwoFactorError):
    """Migration URI has no ``data`` parameter or it is not valid base64."""


class MalformedMessage(TwoFactorError):
    """Migration payload uses a wire type that cannot be skipped."""


class TruncatedMessage(TwoFactorError):
    """Migration payload ends before a declared length."""


class NoAccountsFound(TwoFactorError):
    """Migration payload contains no TOTP accounts."""


class CorruptData(TwoFactorError):
    """Export blob could not be reconstructed (bad password or damaged data)."""


class AccountNotFound(TwoFactorError, KeyError):
    def __init__(self, account_id: object) -> None:
        super().__init__(f"No account with id {account_id}")
        self.account_id = account_id

    def __str__(self) -> str:
        return str(self.args[0])
