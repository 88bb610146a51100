from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from ..db.base import AccountTransaction, BaseDBManager, TransactionConflict
from ..errors import GatewayError, LedgerError, QuotaExceeded
from ..logging.ledger_logger import LedgerLogger
from ..models.account import Account
from ..models.ledger import LedgerEventType
from ..models.request import num_variations


logger = logging.getLogger(__name__)


# Base cost per request type. Types not listed cost nothing.
COST_TABLE: Dict[str, int] = {
    "caption": 1,
    "idea": 1,
    "tweet": 1,
    "videoScript": 1,
    "smartImage": 1,
    "image": 2,
    "payForGuideReset": 10,
    "dynamicGuide": 0,
    "dynamicGuideIterative": 0,
    "finalGuide": 0,
}

# Metered types whose pipeline never sends the caller's image to the model.
IMAGE_UNUSED_TYPES = frozenset({"image", "payForGuideReset"})

VISION_SURCHARGE = 1

# Same bound the hosted document stores use for contended transactions.
MAX_TRANSACTION_ATTEMPTS = 5


def calculate_cost(
    request_type: Optional[str], options: Optional[Mapping[str, Any]], has_image: bool
) -> int:
    """
    Integer credit cost of one request.

    Unknown and zero-cost types stay at zero even with an image attached, so a
    mistyped ``type`` never costs the caller anything.
    """
    options = options or {}
    if request_type == "post":
        base = num_variations(options)
    else:
        base = COST_TABLE.get(request_type or "", 0)

    if base > 0 and has_image and request_type not in IMAGE_UNUSED_TYPES:
        base += VISION_SURCHARGE
    return base


class CreditService:
    """
    Per-account credit ledger.

    Every mutation is one read-check-write transaction on the account
    document; the backend's per-document serializability is what prevents
    double spending when the same uid issues concurrent requests.
    """

    def __init__(
        self,
        db: BaseDBManager,
        ledger: LedgerLogger,
        max_attempts: int = MAX_TRANSACTION_ATTEMPTS,
    ) -> None:
        self._db = db
        self._ledger = ledger
        self._max_attempts = max_attempts

    async def deduct(
        self,
        uid: str,
        cost: int,
        email: str | None = None,
        name: str | None = None,
        correlation_id: str | None = None,
    ) -> Optional[Account]:
        """
        Atomically take ``cost`` credits from ``uid``, provisioning the account
        on first use. Returns the updated account, or ``None`` for a zero cost
        (the store is not touched at all in that case).

        Raises ``QuotaExceeded`` when the balance cannot cover the cost; nothing
        is written then, including the staged creation of a new account.
        """
        if cost == 0:
            return None
        if cost < 0:
            raise ValueError("cost must not be negative")

        def apply(txn: AccountTransaction) -> Account:
            account = txn.get()
            if account is None:
                account = Account.provision(uid, email=email, name=name)
                txn.create(account)
            if account.credits < cost:
                raise QuotaExceeded(required=cost, available=account.credits)
            account.credits -= cost
            account.credits_used += cost
            txn.update(account)
            return account

        try:
            account = await self._transact(uid, apply)
        except QuotaExceeded as exc:
            await self._ledger.log_credit_event(
                LedgerEventType.QUOTA_EXCEEDED,
                uid=uid,
                message="Insufficient credits for deduction",
                details={"required": exc.required, "available": exc.available},
                correlation_id=correlation_id,
            )
            raise

        await self._ledger.log_credit_event(
            LedgerEventType.DEDUCT,
            uid=uid,
            message="Credits deducted",
            details={
                "amount": cost,
                "new_balance": account.credits,
                "credits_used": account.credits_used,
            },
            correlation_id=correlation_id,
        )
        return account

    async def add_credits(
        self,
        uid: str,
        amount: int,
        description: str | None = None,
        correlation_id: str | None = None,
    ) -> Account:
        """Grant credits, e.g. after a verified purchase."""
        if amount <= 0:
            raise ValueError("amount must be positive")

        def apply(txn: AccountTransaction) -> Account:
            account = txn.get()
            if account is None:
                account = Account.provision(uid)
                account.credits = amount
                txn.create(account)
                return account
            account.credits += amount
            txn.update(account)
            return account

        account = await self._transact(uid, apply)
        await self._ledger.log_credit_event(
            LedgerEventType.GRANT,
            uid=uid,
            message="Credits added",
            details={
                "amount": amount,
                "new_balance": account.credits,
                "description": description or "",
            },
            correlation_id=correlation_id,
        )
        return account

    async def refund(
        self, uid: str, amount: int, correlation_id: str | None = None
    ) -> Optional[Account]:
        """Reverse a deduction whose generation failed."""
        if amount <= 0:
            return None

        def apply(txn: AccountTransaction) -> Account:
            account = txn.get()
            if account is None:
                raise LedgerError(f"Cannot refund missing account {uid}")
            account.credits += amount
            account.credits_used = max(account.credits_used - amount, 0)
            txn.update(account)
            return account

        account = await self._transact(uid, apply)
        await self._ledger.log_credit_event(
            LedgerEventType.REFUND,
            uid=uid,
            message="Credits refunded after failed generation",
            details={"amount": amount, "new_balance": account.credits},
            correlation_id=correlation_id,
        )
        return account

    async def record_failed_generation(
        self, uid: str, cost: int, reason: str, correlation_id: str | None = None
    ) -> None:
        """Audit a paid request whose generation failed. The balance is not touched."""
        await self._ledger.log_error(
            message="Generation failed after deduction",
            details={"cost": cost, "reason": reason},
            uid=uid,
            correlation_id=correlation_id,
        )

    async def get_account(self, uid: str) -> Optional[Account]:
        return await self._db.get_account(uid)

    async def _transact(
        self, uid: str, apply: Callable[[AccountTransaction], Account]
    ) -> Account:
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._db.transaction(uid) as txn:
                    return apply(txn)
            except TransactionConflict:
                logger.info(
                    "Transaction conflict on account %s (attempt %d/%d)",
                    uid,
                    attempt,
                    self._max_attempts,
                )
            except GatewayError:
                raise
            except Exception as exc:
                logger.exception("Credit transaction failed for account %s", uid)
                raise LedgerError(f"Credit transaction failed: {exc}") from exc

        raise LedgerError(
            f"Credit transaction for account {uid} aborted after {self._max_attempts} conflicting attempts"
        )
