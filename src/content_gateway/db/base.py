from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from ..models.account import Account
from ..models.ledger import LedgerEntry


class TransactionConflict(Exception):
    """
    The backend detected a concurrent write to the document and aborted.
    Callers re-run the whole transaction from a fresh read.
    """


class AccountTransaction:
    """
    Staged read-modify-write over a single account document.

    The snapshot is read when the transaction opens. Writes are only staged
    here; the backend applies them when the ``transaction()`` block exits
    cleanly and discards them when it raises, so an aborted transaction
    leaves no trace (not even a staged account creation).
    """

    def __init__(self, uid: str, snapshot: Optional[Account]) -> None:
        self.uid = uid
        self._snapshot = snapshot
        self._staged: Optional[Account] = None
        self._creates = False

    def get(self) -> Optional[Account]:
        if self._staged is not None:
            return self._staged.model_copy()
        return self._snapshot.model_copy() if self._snapshot is not None else None

    def create(self, account: Account) -> None:
        if self._snapshot is not None:
            raise ValueError(f"Account {self.uid} already exists")
        self._staged = account
        self._creates = True

    def update(self, account: Account) -> None:
        if self._snapshot is None and not self._creates:
            raise ValueError(f"Account {self.uid} does not exist")
        self._staged = account

    @property
    def staged(self) -> Optional[Account]:
        return self._staged

    @property
    def creates(self) -> bool:
        return self._creates

    @property
    def snapshot(self) -> Optional[Account]:
        return self._snapshot

    def changes(self) -> Dict[str, Any]:
        """
        Stored fields the staged account sets differently from the snapshot.
        Backends commit updates as these fields only, so keys written by
        other services in the meantime are left alone.
        """
        if self._staged is None:
            return {}
        staged = self._staged.serialize_for_db()
        if self._snapshot is None:
            return staged
        before = self._snapshot.serialize_for_db()
        return {key: value for key, value in staged.items() if before.get(key) != value}


class BaseDBManager(ABC):
    """
    DB-agnostic async manager interface.

    The only cross-request mutable state of the gateway is the account
    document, so the transaction primitive is scoped to one document and must
    be serializable per document: two transactions on the same uid never
    both commit against the same snapshot.
    """

    @abstractmethod
    @asynccontextmanager
    async def transaction(self, uid: str) -> AsyncIterator[AccountTransaction]:
        """
        Open a transaction on ``brands/{uid}``. Commit staged writes on clean
        exit, discard them on exception. May raise ``TransactionConflict``.
        """
        yield  # type: ignore[misc]

    @abstractmethod
    async def get_account(self, uid: str) -> Optional[Account]: ...

    @abstractmethod
    async def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry: ...
