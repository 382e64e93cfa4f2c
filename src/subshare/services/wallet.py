"""
Wallet topup workflow.

Users file a topup request referencing an external payment; an admin approves
it (funds are added through the ledger in the same transaction) or rejects it.
Users may cancel their own pending requests.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from subshare.database.models import TopupRequest, TopupStatus
from subshare.services.commission import MoneyLike, to_money
from subshare.services.ledger import LedgerService
from subshare.utils.config import get_config
from subshare.utils.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationFailedError
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row, transaction_scope

logger = get_logger(__name__)


class WalletService:

    def __init__(self, db: Session):
        self.db = db
        self.config = get_config()
        self.ledger = LedgerService(db)

    def _transaction_id_taken(self, transaction_id: str) -> bool:
        return self.db.query(TopupRequest.id).filter(TopupRequest.transaction_id == transaction_id).first() is not None

    def create_topup_request(
        self,
        user_id: int,
        amount: MoneyLike,
        transaction_id: str,
        screenshot_url: Optional[str] = None,
    ) -> TopupRequest:
        """
        File a pending topup claim.

        Raises:
            ValidationFailedError: amount outside the configured topup range
            ConflictError: the payment reference was already used
        """
        value = to_money(amount)
        if not self.config.min_topup_amount <= value <= self.config.max_topup_amount:
            raise ValidationFailedError(
                f"Topup amount must be between {self.config.min_topup_amount} and {self.config.max_topup_amount}",
                {"amount": str(value)},
            )

        transaction_id = transaction_id.strip()
        if self._transaction_id_taken(transaction_id):
            raise ConflictError("Transaction ID already used", {"transaction_id": transaction_id})

        request = TopupRequest(
            user_id=user_id,
            amount=value,
            transaction_id=transaction_id,
            screenshot_url=screenshot_url,
            status=TopupStatus.PENDING,
        )

        try:
            with transaction_scope(self.db):
                self.db.add(request)
                self.db.flush()
        except IntegrityError:
            # Lost a race with another request for the same payment reference
            raise ConflictError("Transaction ID already used", {"transaction_id": transaction_id})

        logger.info(f"Topup request {request.id} created: user={user_id} amount={value}")
        return request

    def get_request(self, request_id: int, user_id: Optional[int] = None) -> TopupRequest:
        """Fetch a request; with user_id, only that user's request is visible."""
        predicates = [TopupRequest.id == request_id]
        if user_id is not None:
            predicates.append(TopupRequest.user_id == user_id)
        request = self.db.query(TopupRequest).filter(*predicates).first()
        if request is None:
            raise NotFoundError("Topup request", request_id)
        return request

    def list_user_requests(self, user_id: int) -> List[TopupRequest]:
        return (
            self.db.query(TopupRequest)
            .filter(TopupRequest.user_id == user_id)
            .order_by(TopupRequest.created_at.desc(), TopupRequest.id.desc())
            .all()
        )

    def list_requests(self, status: Optional[TopupStatus] = None) -> List[TopupRequest]:
        predicates = [TopupRequest.status == status] if status is not None else []
        return (
            self.db.query(TopupRequest)
            .filter(*predicates)
            .order_by(TopupRequest.created_at.desc(), TopupRequest.id.desc())
            .all()
        )

    def _lock_pending(self, request_id: int, user_id: Optional[int] = None) -> TopupRequest:
        request = lock_row(self.db, TopupRequest, TopupRequest.id == request_id)
        if request is None or (user_id is not None and request.user_id != user_id):
            raise NotFoundError("Topup request", request_id)
        if request.status != TopupStatus.PENDING:
            raise InvalidStateError(
                "Topup request already processed",
                {"request_id": request_id, "status": request.status.value},
            )
        return request

    def approve(self, request_id: int, admin_id: int, notes: Optional[str] = None) -> TopupRequest:
        """Approve a pending request and credit the wallet atomically."""
        with transaction_scope(self.db):
            request = self._lock_pending(request_id)
            request.status = TopupStatus.APPROVED
            request.reviewed_by_admin_id = admin_id
            request.review_notes = notes

            self.ledger.add_funds(
                request.user_id,
                request.amount,
                notes=f"Topup approved - {request.transaction_id}",
                reference_id=request.transaction_id,
                processed_by_admin_id=admin_id,
            )

        logger.info(f"Topup request {request_id} approved by admin {admin_id}")
        return request

    def reject(self, request_id: int, admin_id: int, notes: Optional[str] = None) -> TopupRequest:
        with transaction_scope(self.db):
            request = self._lock_pending(request_id)
            request.status = TopupStatus.REJECTED
            request.reviewed_by_admin_id = admin_id
            request.review_notes = notes or "Request rejected"
            self.db.flush()

        logger.info(f"Topup request {request_id} rejected by admin {admin_id}")
        return request

    def cancel(self, request_id: int, user_id: int) -> TopupRequest:
        """Withdraw one's own pending request."""
        with transaction_scope(self.db):
            request = self._lock_pending(request_id, user_id=user_id)
            request.status = TopupStatus.REJECTED
            request.review_notes = "Cancelled by user"
            self.db.flush()

        logger.info(f"Topup request {request_id} cancelled by user {user_id}")
        return request
