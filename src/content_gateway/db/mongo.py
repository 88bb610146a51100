from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional
from uuid import uuid4

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo.errors import DuplicateKeyError, PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from .base import AccountTransaction, BaseDBManager, TransactionConflict
from ..models.account import Account
from ..models.ledger import LedgerEntry


class MongoDBManager(BaseDBManager):
    """
    MongoDB implementation of BaseDBManager using motor (async driver).

    Account documents live in the ``brands`` collection keyed by ``_id = uid``.
    Each ``transaction()`` runs inside a client-session transaction with
    snapshot read concern and majority write concern, which requires a
    replica set. A concurrent writer to the same document makes the server
    abort one side with a transient error; that is surfaced as
    ``TransactionConflict`` so the caller can retry from a fresh read.
    """

    def __init__(self, client: AsyncIOMotorClient, db_name: str) -> None:
        self._client = client
        self._db = client[db_name]

    @classmethod
    def from_client_uri(cls, uri: str, db_name: str) -> "MongoDBManager":
        return cls(AsyncIOMotorClient(uri), db_name)

    @asynccontextmanager
    async def transaction(self, uid: str) -> AsyncIterator[AccountTransaction]:
        col = self._db[Account.collection_name]
        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                ):
                    doc = await col.find_one({"_id": uid}, session=session)
                    txn = AccountTransaction(uid, self._decode(doc))
                    yield txn
                    if txn.staged is not None:
                        await self._commit(txn, session)
        except DuplicateKeyError as exc:
            # Two first-time transactions raced to create the same document.
            raise TransactionConflict(str(exc)) from exc
        except PyMongoError as exc:
            if exc.has_error_label("TransientTransactionError"):
                raise TransactionConflict(str(exc)) from exc
            raise

    async def _commit(
        self, txn: AccountTransaction, session: AsyncIOMotorClientSession
    ) -> None:
        col = self._db[Account.collection_name]
        assert txn.staged is not None
        if txn.creates:
            await col.insert_one(self._encode(txn.staged), session=session)
            return
        # Only the fields this transaction changed; profile data written by
        # other services stays untouched.
        changes = txn.changes()
        if changes:
            await col.update_one({"_id": txn.uid}, {"$set": changes}, session=session)

    @staticmethod
    def _encode(account: Account) -> Dict[str, Any]:
        data = account.serialize_for_db()
        data["_id"] = account.id
        return data

    @staticmethod
    def _decode(doc: Optional[Mapping[str, Any]]) -> Optional[Account]:
        if doc is None:
            return None
        data = dict(doc)
        doc_id = data.pop("_id")
        data.setdefault("uid", str(doc_id))
        return Account.model_validate(data)

    async def get_account(self, uid: str) -> Optional[Account]:
        col = self._db[Account.collection_name]
        doc = await col.find_one({"_id": uid})
        return self._decode(doc)

    async def add_ledger_entry(self, entry: LedgerEntry) -> LedgerEntry:
        col = self._db[LedgerEntry.collection_name]
        if not entry.id:
            entry.id = uuid4().hex
        data = entry.serialize_for_db()
        data["_id"] = entry.id
        await col.insert_one(data)
        return entry
