"""
Ledger service - the single writer of wallet balances.

Every balance change is one locked read of the user row, one balance write
and one appended LedgerTransaction, all inside the caller's database
transaction. Methods flush but never commit; wrap calls in
transaction_scope() so a later failure rolls every change back.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from subshare.database.models import (
    User,
    LedgerTransaction,
    TransactionType,
    TransactionStatus,
)
from subshare.monitoring.prometheus_metrics import get_metrics
from subshare.services.commission import MoneyLike, to_money, to_percentage
from subshare.utils.exceptions import (
    InsufficientBalanceError,
    UserNotFoundError,
    ValidationFailedError,
)
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row

logger = get_logger(__name__)

DEBIT_TYPES = (TransactionType.PURCHASE, TransactionType.REFUND)


@dataclass
class TransactionFilter:
    """
    Criteria for listing ledger transactions.

    predicates() builds the complete WHERE clause once, so a listing query is
    composed in a single filter() call.
    """
    user_id: Optional[int] = None
    type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    access_grant_id: Optional[int] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    def predicates(self) -> list:
        candidates = [
            (self.user_id, lambda v: LedgerTransaction.user_id == v),
            (self.type, lambda v: LedgerTransaction.type == v),
            (self.status, lambda v: LedgerTransaction.status == v),
            (self.access_grant_id, lambda v: LedgerTransaction.access_grant_id == v),
            (self.created_from, lambda v: LedgerTransaction.created_at >= v),
            (self.created_to, lambda v: LedgerTransaction.created_at <= v),
        ]
        return [build(value) for value, build in candidates if value is not None]


class LedgerService:
    """Balance mutations and transaction records for one database session."""

    def __init__(self, db: Session):
        self.db = db
        self.metrics = get_metrics()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_user(self, user_id: int) -> User:
        user = lock_row(self.db, User, User.id == user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    @staticmethod
    def _positive(amount: MoneyLike, allow_zero: bool = False) -> Decimal:
        value = to_money(amount)
        if value < 0 or (value == 0 and not allow_zero):
            raise ValidationFailedError("Amount must be positive", {"amount": str(value)})
        return value

    def _apply(
        self,
        user: User,
        delta: Decimal,
        transaction_type: TransactionType,
        **fields,
    ) -> LedgerTransaction:
        new_balance = to_money(user.balance) + delta
        if new_balance < 0:
            raise InsufficientBalanceError(user.id, user.balance, -delta)

        user.balance = new_balance
        entry = LedgerTransaction(
            user_id=user.id,
            amount=delta,
            type=transaction_type,
            status=TransactionStatus.COMPLETED,
            **fields,
        )
        self.db.add(entry)
        self.db.flush()

        self.metrics.track_ledger_entry(transaction_type.value)
        logger.info(
            f"Ledger {transaction_type.value}: user={user.id} amount={delta} "
            f"balance={new_balance} tx={entry.id}"
        )
        return entry

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_funds(
        self,
        user_id: int,
        amount: MoneyLike,
        notes: Optional[str] = None,
        reference_id: Optional[str] = None,
        processed_by_admin_id: Optional[int] = None,
    ) -> LedgerTransaction:
        """
        Credit a wallet with a completed topup.

        Raises:
            UserNotFoundError: user does not exist
            ValidationFailedError: amount is not positive
        """
        value = self._positive(amount)
        user = self._lock_user(user_id)
        return self._apply(
            user,
            value,
            TransactionType.TOPUP,
            notes=notes,
            reference_id=reference_id,
            processed_by_admin_id=processed_by_admin_id,
        )

    def deduct_funds(
        self,
        user_id: int,
        amount: MoneyLike,
        transaction_type: TransactionType = TransactionType.PURCHASE,
        access_grant_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> LedgerTransaction:
        """
        Debit a wallet. The balance check runs under the row lock.

        Raises:
            InsufficientBalanceError: balance is lower than amount; nothing is written
        """
        if transaction_type not in DEBIT_TYPES:
            raise ValidationFailedError(
                "Debit type must be purchase or refund",
                {"type": getattr(transaction_type, "value", str(transaction_type))},
            )
        value = self._positive(amount)
        user = self._lock_user(user_id)
        if to_money(user.balance) < value:
            raise InsufficientBalanceError(user.id, user.balance, value)
        return self._apply(
            user,
            -value,
            transaction_type,
            access_grant_id=access_grant_id,
            notes=notes,
        )

    def process_earning(
        self,
        user_id: int,
        amount: MoneyLike,
        access_grant_id: int,
        notes: Optional[str] = None,
    ) -> LedgerTransaction:
        """Credit an owner's share of a purchase. Always tied to a grant."""
        if access_grant_id is None:
            raise ValidationFailedError("Earnings must reference an access grant")
        # Zero is legal: a 100% commission leaves nothing for the owner
        value = self._positive(amount, allow_zero=True)
        user = self._lock_user(user_id)
        return self._apply(
            user,
            value,
            TransactionType.EARNING,
            access_grant_id=access_grant_id,
            notes=notes,
        )

    def process_commission(
        self,
        admin_id: int,
        amount: MoneyLike,
        percentage: MoneyLike,
        access_grant_id: int,
        notes: str = "Admin commission",
    ) -> LedgerTransaction:
        """Credit the platform commission to the admin account."""
        if access_grant_id is None:
            raise ValidationFailedError("Commission must reference an access grant")
        value = self._positive(amount, allow_zero=True)
        pct = to_percentage(percentage)
        admin = self._lock_user(admin_id)
        return self._apply(
            admin,
            value,
            TransactionType.COMMISSION,
            access_grant_id=access_grant_id,
            commission_percentage=pct,
            commission_amount=value,
            notes=notes,
        )

    def admin_adjust(
        self,
        user_id: int,
        amount: MoneyLike,
        admin_id: int,
        notes: str,
    ) -> LedgerTransaction:
        """
        Manual balance correction by an admin.

        Positive amounts are recorded as topups, negative ones as refunds. The
        resulting balance may not go below zero.
        """
        delta = to_money(amount)
        if delta == 0:
            raise ValidationFailedError("Adjustment amount must not be zero")

        user = self._lock_user(user_id)
        transaction_type = TransactionType.TOPUP if delta > 0 else TransactionType.REFUND
        return self._apply(
            user,
            delta,
            transaction_type,
            notes=f"Admin adjustment: {notes}",
            processed_by_admin_id=admin_id,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_balance(self, user_id: int) -> Decimal:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UserNotFoundError(user_id)
        return to_money(user.balance)

    def list_transactions(self, criteria: TransactionFilter, limit: int = 100) -> List[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(*criteria.predicates())
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc())
            .limit(limit)
            .all()
        )

    def list_user_transactions(self, user_id: int, limit: int = 50) -> List[LedgerTransaction]:
        return self.list_transactions(TransactionFilter(user_id=user_id), limit=limit)
