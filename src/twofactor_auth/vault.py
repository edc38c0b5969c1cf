"""Ordered account collection persisted through a caller-supplied secure store."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

from twofactor_auth import backup
from twofactor_auth.account import Account
from twofactor_auth.errors import AccountNotFound, CorruptData

logger = logging.getLogger(__name__)

ACCOUNTS_KEY = "2fa_accounts_data"


class SecretStore(Protocol):
    """Keychain-style byte store. Implementations live outside this package."""

    def put(self, key: str, value: bytes) -> None: ...

    def get(self, key: str) -> bytes | None: ...

    def delete(self, key: str) -> None: ...


class AccountVault:
    """Accounts kept in order and written back to ``store`` on every change.

    Not thread-safe; callers serialize access.
    """

    def __init__(self, store: SecretStore, key: str = ACCOUNTS_KEY) -> None:
        self._store = store
        self._key = key
        self._accounts: list[Account] = []

    @property
    def accounts(self) -> list[Account]:
        return list(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    def load(self) -> list[Account]:
        """Read accounts from the store; a missing entry means no accounts.

        Raises:
            CorruptData: the stored bytes are not a valid account list.
        """
        raw = self._store.get(self._key)
        if raw is None:
            self._accounts = []
            return self.accounts
        try:
            records = json.loads(raw.decode("utf-8"))
            self._accounts = [Account.from_dict(record) for record in records]
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise CorruptData(f"Stored accounts could not be read: {exc}") from exc
        logger.debug("Loaded %d account(s)", len(self._accounts))
        return self.accounts

    def save(self) -> None:
        payload = json.dumps([acct.to_dict() for acct in self._accounts])
        self._store.put(self._key, payload.encode("utf-8"))

    def clear(self) -> None:
        self._accounts = []
        self._store.delete(self._key)

    def _index(self, account_id: uuid.UUID) -> int:
        for i, acct in enumerate(self._accounts):
            if acct.id == account_id:
                return i
        raise AccountNotFound(account_id)

    def get(self, account_id: uuid.UUID) -> Account:
        return self._accounts[self._index(account_id)]

    def add(self, account: Account) -> None:
        self._accounts.append(account)
        self.save()

    def update(self, account: Account) -> None:
        """Replace the stored account that has the same id."""
        self._accounts[self._index(account.id)] = account
        self.save()

    def delete(self, account_id: uuid.UUID) -> None:
        del self._accounts[self._index(account_id)]
        self.save()

    def move(self, index: int, new_index: int) -> None:
        account = self._accounts.pop(index)
        self._accounts.insert(new_index, account)
        self.save()

    def search(self, text: str) -> list[Account]:
        """Accounts whose issuer or name contains ``text``, ignoring case."""
        if not text:
            return self.accounts
        needle = text.casefold()
        return [
            acct
            for acct in self._accounts
            if needle in acct.issuer.casefold() or needle in acct.account_name.casefold()
        ]

    def code_for(self, account_id: uuid.UUID, timestamp: float) -> str:
        """Generate the code at ``timestamp`` and record the account as used."""
        index = self._index(account_id)
        account = self._accounts[index]
        code = account.generate_code(timestamp)
        self._accounts[index] = account.touched(datetime.fromtimestamp(timestamp, timezone.utc))
        self.save()
        return code

    def export(self, password: str, now: datetime | None = None) -> bytes:
        return backup.export_accounts(self._accounts, password, now)

    def import_backup(self, blob: bytes, password: str) -> list[Account]:
        """Append the accounts from a backup blob and return them."""
        imported = backup.import_accounts(blob, password)
        self._accounts.extend(imported)
        self.save()
        logger.debug("Imported %d account(s)", len(imported))
        return imported
