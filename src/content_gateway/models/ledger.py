from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import Field

from .base import DBSerializableModel


class LedgerEventType(str, Enum):
    DEDUCT = "deduct"
    GRANT = "grant"
    REFUND = "refund"
    QUOTA_EXCEEDED = "quota_exceeded"
    ERROR = "error"


class LedgerEntry(DBSerializableModel):
    """
    Audit record of a credit mutation or rejection, persisted to the DB and
    mirrored to the JSONL ledger file.
    """

    collection_name: ClassVar[str] = "credit_ledger"

    id: Optional[str] = Field(default=None)
    event_type: LedgerEventType
    uid: Optional[str] = None
    correlation_id: Optional[str] = Field(
        default=None,
        description="Correlation id of the gateway request that caused the entry.",
    )
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)
