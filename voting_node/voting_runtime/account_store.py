from __future__ import annotations

"""
Account arena keyed by address.

Stores hold accounts as plain dicts:

    {"lamports": int, "owner": <hex program id>, "data": dict | None}

The only write path is `commit(creates, updates)`, which is all-or-nothing
and treats each create as create-if-absent. Instruction handlers never touch
a store directly: they go through a StagedAccounts buffer that the executor
commits once the whole instruction has succeeded.
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .atomic_store import AccountSnapshot
from .errors import AccountAlreadyInUse, AccountNotInitialized

log = logging.getLogger(__name__)

Account = Dict[str, Any]


def new_account(lamports: int, owner_hex: str, data: Optional[Dict[str, Any]] = None) -> Account:
    return {"lamports": int(lamports), "owner": owner_hex, "data": copy.deepcopy(data)}


class AccountStore:
    """Interface shared by the memory, JSON and SQLite backends."""

    def get(self, address: str) -> Optional[Account]:
        raise NotImplementedError

    def exists(self, address: str) -> bool:
        return self.get(address) is not None

    def addresses(self) -> List[str]:
        raise NotImplementedError

    def commit(self, creates: Dict[str, Account], updates: Dict[str, Account]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryAccountStore(AccountStore):
    def __init__(self, accounts: Optional[Dict[str, Account]] = None) -> None:
        self._accounts: Dict[str, Account] = dict(accounts or {})
        self._lock = threading.RLock()

    def get(self, address: str) -> Optional[Account]:
        with self._lock:
            acct = self._accounts.get(address)
            return copy.deepcopy(acct) if acct is not None else None

    def addresses(self) -> List[str]:
        with self._lock:
            return sorted(self._accounts.keys())

    def commit(self, creates: Dict[str, Account], updates: Dict[str, Account]) -> None:
        with self._lock:
            for addr in creates:
                if addr in self._accounts:
                    raise AccountAlreadyInUse(addr)
            for addr in updates:
                if addr not in self._accounts:
                    raise AccountNotInitialized(f"cannot update missing account {addr}")

            previous = {addr: self._accounts[addr] for addr in updates}
            for addr, acct in creates.items():
                self._accounts[addr] = copy.deepcopy(acct)
            for addr, acct in updates.items():
                self._accounts[addr] = copy.deepcopy(acct)

            try:
                self._persist()
            except Exception:
                # roll the arena back so memory never runs ahead of disk
                for addr in creates:
                    self._accounts.pop(addr, None)
                self._accounts.update(previous)
                raise

    def _persist(self) -> None:
        pass


class JsonAccountStore(MemoryAccountStore):
    """Memory arena mirrored to an atomic JSON snapshot after each commit."""

    def __init__(self, path: Path, keep_backups: int = 2) -> None:
        self._snapshot = AccountSnapshot(path, keep_backups=keep_backups)
        super().__init__(self._snapshot.load_accounts())
        log.info("Loaded %d accounts from %s", len(self._accounts), path)

    def _persist(self) -> None:
        self._snapshot.save_accounts(self._accounts)


class StagedAccounts:
    """
    Per-transaction overlay over a store.

    Reads see staged writes first. `create` fails fast when the address is
    already occupied, and the store re-checks at commit time, so two racing
    transactions can never both create the same address.
    """

    def __init__(self, store: AccountStore) -> None:
        self._store = store
        self.creates: Dict[str, Account] = {}
        self.updates: Dict[str, Account] = {}

    def get(self, address: str) -> Optional[Account]:
        if address in self.creates:
            return self.creates[address]
        if address in self.updates:
            return self.updates[address]
        acct = self._store.get(address)
        if acct is not None:
            # later mutation by the handler lands in updates
            self.updates[address] = acct
        return acct

    def exists(self, address: str) -> bool:
        return self.get(address) is not None

    def create(self, address: str, account: Account) -> Account:
        if self.exists(address):
            raise AccountAlreadyInUse(address)
        self.creates[address] = account
        return account

    def require(self, address: str) -> Account:
        acct = self.get(address)
        if acct is None:
            raise AccountNotInitialized(f"The program expected this account to be already initialized: {address}")
        return acct

    def commit(self) -> None:
        self._store.commit(self.creates, self.updates)
