"""twofactor_auth package.

TOTP code generation, ``otpauth://`` URI handling, Google Authenticator
migration decoding and password-obscured backups. Usable as a library or
through the ``twofactor-auth`` command.
"""

import logging

__version__ = "0.1.0"

from twofactor_auth.account import Account, parse_uri, to_uri
from twofactor_auth.backup import export_accounts, import_accounts
from twofactor_auth.migration import decode_uri
from twofactor_auth.otp import Algorithm, generate, progress, time_remaining

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Account",
    "Algorithm",
    "__version__",
    "decode_uri",
    "export_accounts",
    "generate",
    "import_accounts",
    "parse_uri",
    "progress",
    "time_remaining",
    "to_uri",
]
