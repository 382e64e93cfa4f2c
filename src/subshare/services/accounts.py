"""
Account management: registration, login, profile and admin user administration.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from subshare.auth import create_access_token, hash_password, verify_password
from subshare.database.models import User, UserRole
from subshare.utils.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from subshare.utils.logger import get_logger
from subshare.utils.transaction import transaction_scope

logger = get_logger(__name__)


def _email_taken(email: str) -> ConflictError:
    return ConflictError("User with this email already exists", {"email": email})


@dataclass
class AuthResult:
    user: User
    access_token: str


@dataclass
class UserQuery:
    search: Optional[str] = None
    role: Optional[UserRole] = None
    page: int = 1
    page_size: int = 20

    def predicates(self) -> list:
        predicates = []
        if self.search:
            pattern = f"%{self.search.strip().lower()}%"
            predicates.append(or_(func.lower(User.email).like(pattern), func.lower(User.name).like(pattern)))
        if self.role is not None:
            predicates.append(User.role == self.role)
        return predicates


class AccountService:

    def __init__(self, db: Session):
        self.db = db

    def _ensure_email_free(self, email: str) -> None:
        if self.db.query(User.id).filter(User.email == email).first() is not None:
            raise _email_taken(email)

    @staticmethod
    def _issue_token(user: User) -> str:
        return create_access_token(user_id=user.id, email=user.email, role=user.role.value)

    def register(self, email: str, name: str, password: str) -> AuthResult:
        email = email.strip().lower()
        self._ensure_email_free(email)

        user = User(
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
            role=UserRole.USER,
            balance=Decimal("0.00"),
            is_active=True,
        )
        try:
            with transaction_scope(self.db):
                self.db.add(user)
                self.db.flush()
        except IntegrityError:
            # Two sign-ups with the same email; the unique index keeps one
            raise _email_taken(email)

        logger.info(f"New user registered: {user.id}")
        return AuthResult(user=user, access_token=self._issue_token(user))

    def login(self, email: str, password: str) -> AuthResult:
        user = self.db.query(User).filter(User.email == email.strip().lower()).first()
        # Same message for unknown email and wrong password
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("User account is disabled")

        logger.info(f"User {user.id} logged in")
        return AuthResult(user=user, access_token=self._issue_token(user))

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def update_profile(self, user_id: int, name: Optional[str] = None) -> User:
        if name is None or not name.strip():
            raise ValidationFailedError("No data to update")

        with transaction_scope(self.db):
            user = self.get_user(user_id)
            user.name = name.strip()
            self.db.flush()
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        with transaction_scope(self.db):
            user.password_hash = hash_password(new_password)
            self.db.flush()

        logger.info(f"Password changed for user {user_id}")

    def list_users(self, query: UserQuery) -> Tuple[List[User], int]:
        predicates = query.predicates()
        total = self.db.query(func.count(User.id)).filter(*predicates).scalar() or 0
        users = (
            self.db.query(User)
            .filter(*predicates)
            .order_by(User.id.asc())
            .offset((query.page - 1) * query.page_size)
            .limit(query.page_size)
            .all()
        )
        return users, total

    def set_role(self, user_id: int, role: UserRole) -> User:
        with transaction_scope(self.db):
            user = self.get_user(user_id)
            user.role = role
            self.db.flush()

        logger.warning(f"User {user_id} role changed to {role.value}")
        return user
