"""
Unit tests for account management
"""
import pytest
from decimal import Decimal
from unittest.mock import patch

from subshare.auth import verify_token
from subshare.database.models import User, UserRole
from subshare.services.accounts import AccountService, UserQuery
from subshare.utils.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)


class TestRegistration:

    def test_register_returns_token(self, db_session):
        result = AccountService(db_session).register("  Alice@Example.com ", "Alice", "secret123")

        assert result.user.email == "alice@example.com"
        assert result.user.role == UserRole.USER
        assert result.user.balance == Decimal("0.00")
        assert verify_token(result.access_token)["sub"] == str(result.user.id)

    def test_duplicate_email(self, db_session):
        service = AccountService(db_session)
        service.register("bob@example.com", "Bob", "secret123")

        with pytest.raises(ConflictError):
            service.register("BOB@example.com", "Bobby", "secret456")

    def test_concurrent_duplicate_email(self, db_session):
        """Second sign-up that slipped past the lookup hits the unique email index"""
        service = AccountService(db_session)
        service.register("bob@example.com", "Bob", "secret123")

        with patch.object(service, "_ensure_email_free"):
            with pytest.raises(ConflictError):
                service.register("bob@example.com", "Bobby", "secret456")

        assert db_session.query(User).filter(User.email == "bob@example.com").count() == 1

    def test_short_password(self, db_session):
        with pytest.raises(ValidationFailedError):
            AccountService(db_session).register("carol@example.com", "Carol", "123")


class TestLogin:

    def test_login(self, db_session, buyer):
        result = AccountService(db_session).login(buyer.email.upper(), "secret123")

        assert result.user.id == buyer.id

    @pytest.mark.parametrize("email, password", [
        ("nobody@example.com", "secret123"),
        (None, "wrong-password"),
    ])
    def test_bad_credentials_share_one_message(self, db_session, buyer, email, password):
        with pytest.raises(AuthenticationError) as exc_info:
            AccountService(db_session).login(email or buyer.email, password)

        assert exc_info.value.message == "Invalid email or password"

    def test_disabled_account(self, db_session, buyer):
        buyer.is_active = False
        db_session.commit()

        with pytest.raises(AuthenticationError):
            AccountService(db_session).login(buyer.email, "secret123")


class TestProfile:

    def test_update_name(self, db_session, buyer):
        user = AccountService(db_session).update_profile(buyer.id, name=" Buyer Two ")

        assert user.name == "Buyer Two"

    def test_update_without_name(self, db_session, buyer):
        with pytest.raises(ValidationFailedError):
            AccountService(db_session).update_profile(buyer.id, name="   ")

    def test_change_password(self, db_session, buyer):
        service = AccountService(db_session)
        service.change_password(buyer.id, "secret123", "better-secret")

        assert service.login(buyer.email, "better-secret").user.id == buyer.id
        with pytest.raises(AuthenticationError):
            service.login(buyer.email, "secret123")

    def test_change_password_needs_current(self, db_session, buyer):
        with pytest.raises(AuthenticationError):
            AccountService(db_session).change_password(buyer.id, "guess", "better-secret")

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            AccountService(db_session).get_user(999)


class TestUserAdministration:

    def test_list_users_paginates(self, db_session, make_user):
        for i in range(5):
            make_user(name=f"Member {i}")

        users, total = AccountService(db_session).list_users(UserQuery(page=2, page_size=2))

        assert total == 5
        assert [u.name for u in users] == ["Member 2", "Member 3"]

    def test_search_and_role_filter(self, db_session, admin, make_user):
        make_user(name="Dana Scully", email="dana@example.com")
        make_user(name="Fox Mulder", email="fox@example.com")

        found, total = AccountService(db_session).list_users(UserQuery(search="SCULLY"))
        admins, _ = AccountService(db_session).list_users(UserQuery(role=UserRole.ADMIN))

        assert total == 1
        assert found[0].email == "dana@example.com"
        assert [u.id for u in admins] == [admin.id]

    def test_set_role(self, db_session, buyer):
        user = AccountService(db_session).set_role(buyer.id, UserRole.ADMIN)

        assert user.role == UserRole.ADMIN
