"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are cached on first import: configure the environment before any
# application module is loaded.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef"
os.environ["GEMINI_API_KEY"] = ""
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""
os.environ["ALLOWED_ORIGINS"] = ""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, Category, Competition, User, utcnow
from shared.config.constants import UserRole
from shared.infrastructure.db import enable_sqlite_foreign_keys, get_db, get_session_factory
from shared.security.auth import sign_access_token
from shared.security.password import hash_password
from ws_gateway.connection_manager import ConnectionManager
from ws_gateway.router import get_connection_manager


DEFAULT_PASSWORD = "Password1"
# bcrypt at cost 12 is slow: hash the shared test password once
_DEFAULT_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD)


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Test client sharing the test session with request handlers.

    The WebSocket gateway opens its own short sessions from the testing
    factory and gets a fresh connection manager per test.
    """
    def override_get_db():
        yield db_session

    manager = ConnectionManager()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_connection_manager] = lambda: manager

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def make_user(db_session):
    """Factory creating persisted users; password defaults to DEFAULT_PASSWORD."""
    def _make_user(
        email: str,
        name: str = "Test User",
        role: UserRole = UserRole.USER,
        password: str | None = DEFAULT_PASSWORD,
        **fields,
    ) -> User:
        if password is None:
            hashed = None
        elif password == DEFAULT_PASSWORD:
            hashed = _DEFAULT_PASSWORD_HASH
        else:
            hashed = hash_password(password)

        user = User(name=name, email=email, password=hashed, role=role.value, **fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def seed_user(make_user):
    return make_user("user@test.com", name="Regular User")


@pytest.fixture
def seed_admin(make_user):
    return make_user("admin@test.com", name="Admin", role=UserRole.ADMIN)


@pytest.fixture
def seed_support(make_user):
    return make_user("support@test.com", name="Support Agent", role=UserRole.SUPPORT)


def bearer(user: User) -> dict[str, str]:
    """Authorization header carrying a fresh access token for `user`."""
    return {"Authorization": f"Bearer {sign_access_token(user.id)}"}


@pytest.fixture
def user_headers(seed_user):
    return bearer(seed_user)


@pytest.fixture
def admin_headers(seed_admin):
    return bearer(seed_admin)


@pytest.fixture
def support_headers(seed_support):
    return bearer(seed_support)


# =============================================================================
# Catalog
# =============================================================================


@pytest.fixture
def seed_category(db_session):
    category = Category(name="Programming", description="Coding contests")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def make_competition(db_session, seed_category):
    """
    Factory for competitions.

    Defaults: starts in 30 days, ends in 31, registration closes in 20,
    unlimited capacity, active.
    """
    def _make_competition(title: str = "Hackathon", **overrides) -> Competition:
        now = utcnow()
        fields = {
            "title": title,
            "description": f"{title} description",
            "category_id": seed_category.id,
            "rules": "Be nice",
            "start_date": now + timedelta(days=30),
            "end_date": now + timedelta(days=31),
            "registration_deadline": now + timedelta(days=20),
            "is_active": True,
        }
        fields.update(overrides)
        competition = Competition(**fields)
        db_session.add(competition)
        db_session.commit()
        db_session.refresh(competition)
        return competition

    return _make_competition


@pytest.fixture
def seed_competition(make_competition):
    return make_competition()
