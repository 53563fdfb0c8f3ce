"""Registry account sources.

AccountSource      -- ABC the poll driver refreshes once per cycle.
FileAccountSource  -- Reads account definitions from a JSON file.
StaticAccountSource -- Fixed account list with caller-supplied listers.

Account file format::

    {
      "accounts": [
        {
          "name": "dockerhub-mirror",
          "address": "https://registry.example.com",
          "trackDigests": true,
          "repositories": ["team/api", "team/worker"]
        }
      ]
    }

``registry`` defaults to the host[:port] of ``address``.  An empty or
missing ``repositories`` list means the registry catalog is enumerated.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog

from tagwatch.exceptions import AccountConfigError
from tagwatch.models.images import RegistryAccount
from tagwatch.registry.base import RegistryLister

_log = structlog.get_logger(component="accounts")

ListerFactory = Callable[[RegistryAccount], RegistryLister]


class AccountSource(ABC):
    """Supplies registry accounts and the lister to use for each."""

    @abstractmethod
    async def refresh(self) -> None:
        """Reload account definitions.

        Raises:
            AccountConfigError: if the definitions cannot be loaded.  The
                previously loaded accounts remain in effect.
        """

    @property
    @abstractmethod
    def accounts(self) -> list[RegistryAccount]:
        """Accounts loaded by the last successful refresh."""

    @abstractmethod
    def lister_for(self, account: RegistryAccount) -> RegistryLister:
        """Return the lister for *account*."""

    async def close(self) -> None:  # noqa: B027
        """Release listers.  No-op by default."""


class StaticAccountSource(AccountSource):
    """Serves a fixed account list.

    Args:
        accounts: Accounts to serve, in order.
        listers:  Lister per account name.
    """

    def __init__(self, accounts: list[RegistryAccount], listers: dict[str, RegistryLister]) -> None:
        self._accounts = list(accounts)
        self._listers = dict(listers)
        self.refresh_count = 0

    async def refresh(self) -> None:
        self.refresh_count += 1

    @property
    def accounts(self) -> list[RegistryAccount]:
        return list(self._accounts)

    def lister_for(self, account: RegistryAccount) -> RegistryLister:
        return self._listers[account.name]


class FileAccountSource(AccountSource):
    """Loads accounts from a JSON file on every refresh.

    Listers are created through *lister_factory* and reused for as long as
    the account's definition is unchanged; a changed or removed account has
    its lister closed.
    """

    def __init__(self, path: str | Path, lister_factory: ListerFactory) -> None:
        self._path = Path(path)
        self._lister_factory = lister_factory
        self._accounts: list[RegistryAccount] = []
        self._listers: dict[str, tuple[RegistryAccount, RegistryLister]] = {}

    @property
    def accounts(self) -> list[RegistryAccount]:
        return list(self._accounts)

    async def refresh(self) -> None:
        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except OSError as exc:
            raise AccountConfigError(f"Cannot read accounts file {self._path}: {exc}") from exc
        accounts = parse_accounts(raw)
        await self._retire_listers(accounts)
        self._accounts = accounts
        _log.debug("accounts_refreshed", path=str(self._path), accounts=len(accounts))

    def lister_for(self, account: RegistryAccount) -> RegistryLister:
        cached = self._listers.get(account.name)
        if cached is not None and cached[0] == account:
            return cached[1]
        lister = self._lister_factory(account)
        self._listers[account.name] = (account, lister)
        return lister

    async def close(self) -> None:
        for _, lister in self._listers.values():
            await lister.close()
        self._listers.clear()

    async def _retire_listers(self, accounts: list[RegistryAccount]) -> None:
        current = {a.name: a for a in accounts}
        for name, (account, lister) in list(self._listers.items()):
            if current.get(name) != account:
                del self._listers[name]
                await lister.close()
                _log.info("account_lister_retired", account=name)


def parse_accounts(raw: str) -> list[RegistryAccount]:
    """Parse the JSON account file body.

    Raises:
        AccountConfigError: on malformed JSON, missing fields or duplicate
            account names.
    """
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AccountConfigError(f"Accounts file is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict) or not isinstance(doc.get("accounts"), list):
        raise AccountConfigError('Accounts file must be an object with an "accounts" list')

    accounts: list[RegistryAccount] = []
    seen: set[str] = set()
    for index, entry in enumerate(doc["accounts"]):
        account = _parse_account(index, entry)
        if account.name in seen:
            raise AccountConfigError(f"Duplicate account name: {account.name!r}")
        seen.add(account.name)
        accounts.append(account)
    return accounts


def _parse_account(index: int, entry: Any) -> RegistryAccount:
    if not isinstance(entry, dict):
        raise AccountConfigError(f"Account #{index} must be an object")
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise AccountConfigError(f"Account #{index} has no name")
    address = entry.get("address")
    if not isinstance(address, str) or not address.strip():
        raise AccountConfigError(f"Account {name!r} has no address")

    insecure = bool(entry.get("insecure", False))
    address = address.strip().rstrip("/")
    if "://" not in address:
        address = ("http://" if insecure else "https://") + address

    try:
        parsed = urlparse(address)
    except ValueError as exc:
        raise AccountConfigError(f"Account {name!r} has an invalid address: {address!r}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise AccountConfigError(f"Account {name!r} has an invalid address: {address!r}")
    address = parsed.geturl()

    registry = entry.get("registry") or parsed.netloc
    if not isinstance(registry, str):
        raise AccountConfigError(f"Account {name!r}: registry must be a string")

    repositories = entry.get("repositories") or []
    if not isinstance(repositories, list) or not all(isinstance(r, str) and r for r in repositories):
        raise AccountConfigError(f"Account {name!r}: repositories must be a list of names")

    return RegistryAccount(
        name=name.strip(),
        address=address,
        registry=registry,
        track_digests=bool(entry.get("trackDigests", False)),
        repositories=tuple(repositories),
        insecure=insecure,
    )
