"""
Test configuration and fixtures for SubShare
"""
import os

from cryptography.fernet import Fernet

# Environment must be in place before any subshare module reads its config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["ENCRYPTION_MASTER_KEY"] = Fernet.generate_key().decode()
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_TO_FILE"] = "false"
os.environ["ADMIN_COMMISSION_PERCENTAGE"] = "10"

from decimal import Decimal
from itertools import count
from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from subshare.api.main import app
from subshare.auth.jwt_manager import create_access_token
from subshare.auth.password import hash_password
from subshare.cache import redis_cache
from subshare.database.connection import SessionLocal, engine, get_db
from subshare.database.models import (
    Base,
    SharedSubscription,
    SubscriptionPlatform,
    User,
    UserRole,
)
from subshare.security.encryption import get_encryptor

TEST_PASSWORD = "secret123"
NOW = 1_700_000_000


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test on the shared in-memory SQLite engine"""
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(database) -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# Redis
# =============================================================================

@pytest.fixture(autouse=True)
def redis_client(monkeypatch):
    """Mock Redis client behind the global cache: every lookup is a miss"""
    client = MagicMock()
    client.get.return_value = None
    client.setex.return_value = True
    client.delete.return_value = 0
    client.ping.return_value = True

    cache = redis_cache.RedisCache(client=client)
    monkeypatch.setattr(redis_cache, "_cache_instance", cache)
    return client


# =============================================================================
# FastAPI Test Client
# =============================================================================

@pytest.fixture(scope="function")
def client(db_session) -> TestClient:
    """Create FastAPI test client with overridden dependencies"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Settable epoch-seconds clock"""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Test Data Fixtures
# =============================================================================

_sequence = count(1)


@pytest.fixture
def make_user(db_session):
    """Factory creating committed users with a given balance and role"""

    def _make_user(
        name: str = "User",
        balance: str = "0.00",
        role: UserRole = UserRole.USER,
        email: str = None,
    ) -> User:
        user = User(
            email=email or f"user{next(_sequence)}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            name=name,
            role=role,
            balance=Decimal(balance),
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user) -> User:
    return make_user(name="Admin", role=UserRole.ADMIN)


@pytest.fixture
def owner(make_user) -> User:
    return make_user(name="Owner")


@pytest.fixture
def buyer(make_user) -> User:
    return make_user(name="Buyer", balance="100.00")


@pytest.fixture
def platform(db_session) -> SubscriptionPlatform:
    platform = SubscriptionPlatform(name="Netflix", is_active=True)
    db_session.add(platform)
    db_session.commit()
    db_session.refresh(platform)
    return platform


@pytest.fixture
def make_subscription(db_session, platform):
    """Factory creating a listed subscription; verified and active unless told otherwise"""

    def _make_subscription(
        owner: User,
        price_per_hour: str = "10.00",
        is_verified: bool = True,
        is_active: bool = True,
        expires_at: int = None,
        username: str = "shared@example.com",
        password: str = "hunter2",
    ) -> SharedSubscription:
        encryptor = get_encryptor()
        subscription = SharedSubscription(
            platform_id=platform.id,
            owner_id=owner.id,
            credentials_username=encryptor.encrypt(username),
            credentials_password=encryptor.encrypt(password),
            price_per_hour=Decimal(price_per_hour),
            is_active=is_active,
            is_verified=is_verified,
            expires_at=expires_at,
            total_grants=0,
        )
        db_session.add(subscription)
        db_session.commit()
        db_session.refresh(subscription)
        return subscription

    return _make_subscription


@pytest.fixture
def subscription(make_subscription, owner) -> SharedSubscription:
    return make_subscription(owner)


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user"""

    def _auth_headers(user: User) -> dict:
        token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
