"""
Unit tests for the wallet ledger
"""
import random
import pytest
from decimal import Decimal

from sqlalchemy import func

from subshare.database.models import LedgerTransaction, TransactionType, TransactionStatus
from subshare.services.ledger import LedgerService, TransactionFilter
from subshare.utils.exceptions import (
    InsufficientBalanceError,
    UserNotFoundError,
    ValidationFailedError,
)


def ledger_sum(db_session, user_id) -> Decimal:
    total = (
        db_session.query(func.coalesce(func.sum(LedgerTransaction.amount), 0))
        .filter(LedgerTransaction.user_id == user_id)
        .scalar()
    )
    return Decimal(str(total)).quantize(Decimal("0.01"))


class TestAddFunds:

    def test_credits_balance_and_records_topup(self, db_session, make_user, admin):
        user = make_user()
        entry = LedgerService(db_session).add_funds(
            user.id, "50.00", notes="Topup approved - TX1", reference_id="TX1", processed_by_admin_id=admin.id
        )
        db_session.commit()

        assert user.balance == Decimal("50.00")
        assert entry.type == TransactionType.TOPUP
        assert entry.status == TransactionStatus.COMPLETED
        assert entry.amount == Decimal("50.00")
        assert entry.reference_id == "TX1"
        assert entry.processed_by_admin_id == admin.id

    @pytest.mark.parametrize("amount", ["0", "-1.00"])
    def test_rejects_non_positive(self, db_session, make_user, amount):
        user = make_user()

        with pytest.raises(ValidationFailedError):
            LedgerService(db_session).add_funds(user.id, amount)

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundError):
            LedgerService(db_session).add_funds(9999, "10.00")


class TestDeductFunds:

    def test_debits_balance(self, db_session, make_user):
        user = make_user(balance="30.00")
        entry = LedgerService(db_session).deduct_funds(user.id, "12.50")
        db_session.commit()

        assert user.balance == Decimal("17.50")
        assert entry.type == TransactionType.PURCHASE
        assert entry.amount == Decimal("-12.50")

    def test_exact_balance_allowed(self, db_session, make_user):
        user = make_user(balance="10.00")
        LedgerService(db_session).deduct_funds(user.id, "10.00")

        assert user.balance == Decimal("0.00")

    def test_insufficient_balance_writes_nothing(self, db_session, make_user):
        user = make_user(balance="5.00")

        with pytest.raises(InsufficientBalanceError) as exc_info:
            LedgerService(db_session).deduct_funds(user.id, "5.01")

        assert exc_info.value.details["required"] == "5.01"
        db_session.rollback()
        assert db_session.query(LedgerTransaction).count() == 0
        db_session.refresh(user)
        assert user.balance == Decimal("5.00")

    def test_credit_type_rejected(self, db_session, make_user):
        user = make_user(balance="5.00")

        with pytest.raises(ValidationFailedError):
            LedgerService(db_session).deduct_funds(user.id, "1.00", TransactionType.TOPUP)


class TestEarningAndCommission:

    def test_earning_requires_grant_reference(self, db_session, make_user):
        user = make_user()

        with pytest.raises(ValidationFailedError):
            LedgerService(db_session).process_earning(user.id, "1.00", access_grant_id=None)

    def test_commission_requires_grant_reference(self, db_session, admin):
        with pytest.raises(ValidationFailedError):
            LedgerService(db_session).process_commission(admin.id, "1.00", 10, access_grant_id=None)


class TestAdminAdjust:

    def test_positive_adjustment_is_topup(self, db_session, make_user, admin):
        user = make_user()
        entry = LedgerService(db_session).admin_adjust(user.id, "20.00", admin.id, "goodwill")

        assert entry.type == TransactionType.TOPUP
        assert entry.notes == "Admin adjustment: goodwill"
        assert entry.processed_by_admin_id == admin.id
        assert user.balance == Decimal("20.00")

    def test_negative_adjustment_is_refund(self, db_session, make_user, admin):
        user = make_user(balance="20.00")
        entry = LedgerService(db_session).admin_adjust(user.id, "-5.00", admin.id, "chargeback")

        assert entry.type == TransactionType.REFUND
        assert entry.amount == Decimal("-5.00")
        assert user.balance == Decimal("15.00")

    def test_cannot_go_negative(self, db_session, make_user, admin):
        user = make_user(balance="1.00")

        with pytest.raises(InsufficientBalanceError):
            LedgerService(db_session).admin_adjust(user.id, "-2.00", admin.id, "too much")

    def test_zero_rejected(self, db_session, make_user, admin):
        user = make_user()

        with pytest.raises(ValidationFailedError):
            LedgerService(db_session).admin_adjust(user.id, "0", admin.id, "noop")


class TestQueries:

    def test_list_user_transactions_newest_first(self, db_session, make_user):
        user = make_user()
        ledger = LedgerService(db_session)
        first = ledger.add_funds(user.id, "10.00")
        second = ledger.add_funds(user.id, "20.00")
        db_session.commit()

        entries = ledger.list_user_transactions(user.id)

        assert [e.id for e in entries] == [second.id, first.id]

    def test_filter_by_type(self, db_session, make_user):
        user = make_user()
        ledger = LedgerService(db_session)
        ledger.add_funds(user.id, "10.00")
        ledger.deduct_funds(user.id, "4.00")
        db_session.commit()

        purchases = ledger.list_transactions(TransactionFilter(user_id=user.id, type=TransactionType.PURCHASE))

        assert len(purchases) == 1
        assert purchases[0].amount == Decimal("-4.00")

    def test_get_balance(self, db_session, make_user):
        user = make_user(balance="12.34")

        assert LedgerService(db_session).get_balance(user.id) == Decimal("12.34")


class TestBalanceMatchesLedger:
    """The balance always equals the sum of the user's ledger entries"""

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_random_operation_sequence(self, db_session, make_user, seed):
        rng = random.Random(seed)
        user = make_user()
        ledger = LedgerService(db_session)

        for _ in range(40):
            amount = Decimal(rng.randint(1, 5000)) / 100
            if rng.random() < 0.5:
                ledger.add_funds(user.id, amount)
                db_session.commit()
            else:
                try:
                    ledger.deduct_funds(user.id, amount)
                    db_session.commit()
                except InsufficientBalanceError:
                    db_session.rollback()

            db_session.refresh(user)
            assert user.balance >= 0
            assert user.balance == ledger_sum(db_session, user.id)
