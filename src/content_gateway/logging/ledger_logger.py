from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from ..db.base import BaseDBManager
from ..models.ledger import LedgerEntry, LedgerEventType


logger = logging.getLogger(__name__)


class LedgerLogger:
    """
    Structured credit ledger that writes to the database and a file.

    File logging is append-only, line-delimited JSON for easier ingestion
    by log aggregators. DB logging uses the ``LedgerEntry`` model and the
    configured ``BaseDBManager``. Both writes are best effort: a failure is
    logged and the entry is still returned.
    """

    def __init__(self, db: BaseDBManager, file_path: Path) -> None:
        self._db = db
        self._file_path = file_path
        self._file_path.parent.mkdir(parents=True, exist_ok=True)

    async def log_credit_event(
        self,
        event_type: LedgerEventType,
        uid: str,
        message: str,
        details: dict[str, Any],
        correlation_id: Optional[str] = None,
    ) -> LedgerEntry:
        return await self._log(
            event_type,
            uid=uid,
            message=message,
            details=details,
            correlation_id=correlation_id,
        )

    async def log_error(
        self,
        message: str,
        details: dict[str, Any],
        uid: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> LedgerEntry:
        return await self._log(
            LedgerEventType.ERROR,
            uid=uid,
            message=message,
            details=details,
            correlation_id=correlation_id,
        )

    async def _log(
        self,
        event_type: LedgerEventType,
        uid: Optional[str],
        message: str,
        details: dict[str, Any],
        correlation_id: Optional[str],
    ) -> LedgerEntry:
        entry = LedgerEntry(
            event_type=event_type,
            uid=uid,
            message=message,
            details=details,
            correlation_id=correlation_id,
        )

        # Auditing never changes the outcome of the credit operation it records.
        try:
            entry = await self._db.add_ledger_entry(entry)
        except Exception:
            logger.warning(
                "Could not store %s ledger entry for %s", event_type.value, uid, exc_info=True
            )

        # The file is a mirror; a write failure must not fail the request.
        try:
            line = json.dumps(entry.serialize_for_db(), default=str)
            with self._file_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            logger.warning("Could not mirror ledger entry to %s", self._file_path, exc_info=True)
        return entry
