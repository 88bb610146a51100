from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from .base import AccountTransaction, BaseDBManager
from ..models.account import Account
from ..models.ledger import LedgerEntry


class InMemoryDBManager(BaseDBManager):
    """
    In-memory implementation used for tests and local development.

    Documents are stored serialized, so callers never share model instances
    with the store. A lock per uid makes each transaction serializable for
    its document; transactions on different uids run concurrently. A lock
    lives only while some transaction on its uid holds or awaits it.
    """

    def __init__(self) -> None:
        self._accounts: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._ledger: List[LedgerEntry] = []
        self._id_counter: int = 0

    def _next_id(self) -> str:
        self._id_counter += 1
        return str(self._id_counter)

    @asynccontextmanager
    async def transaction(self, uid: str) -> AsyncIterator[AccountTransaction]:
        lock = self._locks.setdefault(uid, asyncio.Lock())
        self._lock_users[uid] = self._lock_users.get(uid, 0) + 1
        try:
            async with lock:
                txn = AccountTransaction(uid, self._load(uid))
                yield txn
                if txn.staged is not None:
                    self._commit(txn)
        finally:
            self._lock_users[uid] -= 1
            if not self._lock_users[uid]:
                del self._lock_users[uid]
                del self._locks[uid]

    def _load(self, uid: str) -> Optional[Account]:
        doc = self._accounts.get(uid)
        return Account.model_validate(doc) if doc is not None else None

    def _commit(self, txn: AccountTransaction) -> None:
        if txn.creates:
            self._accounts[txn.uid] = txn.changes()
        else:
            self._accounts[txn.uid].update(txn.changes())

    async def get_account(self, uid: str) -> Optional[Account]:
        return self._load(uid)

    async def put_account(self, account: Account) -> Account:
        """Seed or overwrite a document outside any transaction (tests, fixtures)."""
        self.put_document(account.id, account.serialize_for_db())
        return account

    def put_document(self, uid: str, doc: Dict[str, Any]) -> None:
        """Store a raw document as another service would write it."""
        self._accounts[uid] = {"uid": uid, **doc}

    def get_document(self, uid: str) -> Optional[Dict[str, Any]]:
        doc = self._accounts.get(uid)
        return dict(doc) if doc is not None else None

    def has_account(self, uid: str) -> bool:
        return uid in self._accounts

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    async def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry:
        if entry.id is None:
            entry.id = self._next_id()
        self._ledger.append(entry)
        return entry

    @property
    def ledger_entries(self) -> List[LedgerEntry]:
        return list(self._ledger)
