from __future__ import annotations

from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import pytest
from pymongo.errors import DuplicateKeyError, PyMongoError

from content_gateway.db.base import TransactionConflict
from content_gateway.db.mongo import MongoDBManager
from content_gateway.errors import QuotaExceeded
from content_gateway.logging.ledger_logger import LedgerLogger
from content_gateway.models.account import Account
from content_gateway.services.credit_service import CreditService


class FakeSession:
    """Motor client session; writes made in a transaction apply on commit only."""

    def __init__(self, commit_error: Optional[Exception] = None) -> None:
        self.commit_error = commit_error
        self.pending: List[Callable[[], None]] = []
        self.options: Dict[str, Any] = {}
        self.committed = False
        self.aborted = False

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    @asynccontextmanager
    async def start_transaction(self, **options):
        self.options = options
        try:
            yield
        except BaseException:
            self.aborted = True
            raise
        if self.commit_error is not None:
            self.aborted = True
            raise self.commit_error
        for write in self.pending:
            write()
        self.committed = True


class FakeCollection:
    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.updates: List[Dict[str, Any]] = []

    async def find_one(self, query, session=None):
        doc = self.docs.get(query["_id"])
        return dict(doc) if doc is not None else None

    async def insert_one(self, doc, session=None):
        if doc["_id"] in self.docs:
            raise DuplicateKeyError("E11000 duplicate key error", 11000)
        doc = dict(doc)
        self._write(session, lambda: self.docs.__setitem__(doc["_id"], doc))

    async def update_one(self, query, update, session=None):
        self.updates.append(update)
        self._write(session, lambda: self.docs[query["_id"]].update(update["$set"]))

    @staticmethod
    def _write(session, apply):
        if session is None:
            apply()
        else:
            session.pending.append(apply)


class FakeMotorClient:
    def __init__(self, sessions: Optional[List[FakeSession]] = None) -> None:
        self.collections: Dict[str, FakeCollection] = defaultdict(FakeCollection)
        self.sessions = list(sessions or [])
        self.started: List[FakeSession] = []

    def __getitem__(self, db_name):
        return self.collections

    async def start_session(self) -> FakeSession:
        session = self.sessions.pop(0) if self.sessions else FakeSession()
        self.started.append(session)
        return session

    @property
    def brands(self) -> FakeCollection:
        return self.collections[Account.collection_name]


def _transient_error() -> PyMongoError:
    return PyMongoError("WriteConflict", error_labels=["TransientTransactionError"])


def _service(db: MongoDBManager, tmp_path) -> CreditService:
    return CreditService(db=db, ledger=LedgerLogger(db=db, file_path=tmp_path / "ledger.log"))


@pytest.mark.asyncio
async def test_transaction_uses_snapshot_reads_and_majority_writes():
    client = FakeMotorClient()
    client.brands.docs["user-1"] = {"_id": "user-1", "credits": 5}
    db = MongoDBManager(client, "gateway")

    async with db.transaction("user-1") as txn:
        assert txn.get().credits == 5

    options = client.started[0].options
    assert options["read_concern"].level == "snapshot"
    assert options["write_concern"].document == {"w": "majority"}


@pytest.mark.asyncio
async def test_transient_commit_error_becomes_conflict():
    client = FakeMotorClient(sessions=[FakeSession(commit_error=_transient_error())])
    client.brands.docs["user-1"] = {"_id": "user-1", "credits": 5}
    db = MongoDBManager(client, "gateway")

    with pytest.raises(TransactionConflict):
        async with db.transaction("user-1") as txn:
            account = txn.get()
            account.credits -= 1
            txn.update(account)

    assert client.brands.docs["user-1"]["credits"] == 5


@pytest.mark.asyncio
async def test_other_driver_errors_propagate_unchanged():
    client = FakeMotorClient(sessions=[FakeSession(commit_error=PyMongoError("not primary"))])
    client.brands.docs["user-1"] = {"_id": "user-1", "credits": 5}
    db = MongoDBManager(client, "gateway")

    with pytest.raises(PyMongoError) as excinfo:
        async with db.transaction("user-1") as txn:
            account = txn.get()
            account.credits -= 1
            txn.update(account)

    assert not isinstance(excinfo.value, TransactionConflict)


@pytest.mark.asyncio
async def test_racing_account_creation_becomes_conflict():
    client = FakeMotorClient()
    db = MongoDBManager(client, "gateway")

    with pytest.raises(TransactionConflict):
        async with db.transaction("user-1") as txn:
            assert txn.get() is None
            # another request provisions the account first
            client.brands.docs["user-1"] = {"_id": "user-1", "credits": 10}
            txn.create(Account.provision("user-1"))


@pytest.mark.asyncio
async def test_deduct_retries_after_transient_conflict(tmp_path):
    client = FakeMotorClient(sessions=[FakeSession(commit_error=_transient_error())])
    client.brands.docs["user-1"] = {"_id": "user-1", "credits": 5}
    db = MongoDBManager(client, "gateway")

    account = await _service(db, tmp_path).deduct("user-1", 1)

    assert account.credits == 4
    assert len(client.started) == 2
    assert client.brands.docs["user-1"]["credits"] == 4
    assert len(client.collections["credit_ledger"].docs) == 1


@pytest.mark.asyncio
async def test_quota_exceeded_aborts_without_writes(tmp_path):
    client = FakeMotorClient()
    client.brands.docs["user-1"] = {"_id": "user-1", "credits": 1}
    db = MongoDBManager(client, "gateway")

    with pytest.raises(QuotaExceeded):
        await _service(db, tmp_path).deduct("user-1", 2)

    session = client.started[0]
    assert session.aborted
    assert session.pending == []
    assert client.brands.docs["user-1"] == {"_id": "user-1", "credits": 1}


@pytest.mark.asyncio
async def test_deduct_sets_only_credit_fields(tmp_path):
    client = FakeMotorClient()
    client.brands.docs["user-1"] = {
        "_id": "user-1",
        "credits": 5,
        "brandName": "Acme",
        "logoUrl": "https://cdn.example/logo.png",
        "guideProgress": {"step": 3},
    }
    db = MongoDBManager(client, "gateway")

    await _service(db, tmp_path).deduct("user-1", 1)

    assert client.brands.updates == [{"$set": {"credits": 4, "creditsUsed": 1}}]
    doc = client.brands.docs["user-1"]
    assert doc["logoUrl"] == "https://cdn.example/logo.png"
    assert doc["guideProgress"] == {"step": 3}
    assert doc["brandName"] == "Acme"


@pytest.mark.asyncio
async def test_first_deduction_inserts_provisioned_account(tmp_path):
    client = FakeMotorClient()
    db = MongoDBManager(client, "gateway")

    await _service(db, tmp_path).deduct("user-1", 1)

    doc = client.brands.docs["user-1"]
    assert doc["_id"] == "user-1"
    assert doc["credits"] == 9
    assert doc["creditsUsed"] == 1
    assert doc["plan"] == "free"
    assert client.brands.updates == []
