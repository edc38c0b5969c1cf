"""Password-obscured backup files.

The container is a JSON object holding the account list, a creation time
and a format version, XOR-ed with the UTF-8 password repeated over its
length. This is obfuscation, not encryption: there is no integrity check, so
a wrong password usually surfaces as :class:`CorruptData`.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import cycle

from twofactor_auth.account import Account
from twofactor_auth.errors import CorruptData

EXPORT_VERSION = "1.0"


@dataclass(frozen=True)
class ExportContainer:
    accounts: list[Account]
    timestamp: datetime
    version: str = EXPORT_VERSION


def xor_keystream(data: bytes, password: str) -> bytes:
    key = password.encode("utf-8")
    if not key:
        raise ValueError("Password must not be empty")
    return bytes(b ^ k for b, k in zip(data, cycle(key)))


def export_accounts(accounts: Iterable[Account], password: str, now: datetime | None = None) -> bytes:
    """Serialize ``accounts`` in order and obscure them with ``password``."""
    account_json = json.dumps([acct.to_dict() for acct in accounts])
    container = {
        "data": base64.b64encode(account_json.encode("utf-8")).decode("ascii"),
        "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
        "version": EXPORT_VERSION,
    }
    return xor_keystream(json.dumps(container).encode("utf-8"), password)


def read_container(blob: bytes, password: str) -> ExportContainer:
    """Reverse :func:`export_accounts`, keeping the container metadata.

    Raises:
        CorruptData: wrong or empty password, or damaged data.
    """
    try:
        plain = xor_keystream(blob, password)
        container = json.loads(plain.decode("utf-8"))
        account_json = base64.b64decode(container["data"], validate=True)
        records = json.loads(account_json.decode("utf-8"))
        if not isinstance(records, list):
            raise CorruptData("Account data is not a list")
        return ExportContainer(
            accounts=[Account.from_dict(record) for record in records],
            timestamp=datetime.fromisoformat(container["timestamp"]),
            version=str(container["version"]),
        )
    except CorruptData:
        raise
    # JSON, base64, UTF-8 and Account validation errors are all ValueErrors
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise CorruptData(f"Backup could not be read (wrong password or damaged file): {exc}") from exc


def import_accounts(blob: bytes, password: str) -> list[Account]:
    return read_container(blob, password).accounts
