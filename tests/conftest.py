"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from typing import Annotated

# Set test environment before importing the application
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ["PASSWORD_HASH_ROUNDS"] = "1"
os.environ["BOOTSTRAP_ADMIN"] = "false"

import httpx
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.auth.permissions import Permissions
from backoffice.auth.store import Principal, PrincipalStore
from backoffice.db.models import Base

# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

COOKIE_NAME = "auth_info"

ADMIN_PASSWORD = "adminpassword123"
USER_PASSWORD = "alicepassword123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db: Session) -> PrincipalStore:
    """Principal store bound to the test session."""
    return PrincipalStore(db)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    # Import here to ensure env vars are set
    from backoffice.dependencies import get_db
    from backoffice.main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def guarded_client(db: Session) -> Generator[TestClient, None, None]:
    """Test client for an app with the auth routes plus a route needing ORDER_WRITE."""
    from backoffice.auth.router import router as auth_router
    from backoffice.dependencies import AuthGuard, get_db
    from backoffice.errors import register_error_handlers

    guarded_app = FastAPI()
    register_error_handlers(guarded_app)
    guarded_app.include_router(auth_router, prefix="/api/auth")

    @guarded_app.post("/api/orders")
    def create_order(
        principal: Annotated[Principal, Depends(AuthGuard(Permissions.ORDER_WRITE))],
    ):
        return {"created_by_user": principal.username}

    def override_get_db():
        try:
            yield db
        finally:
            pass

    guarded_app.dependency_overrides[get_db] = override_get_db
    with TestClient(guarded_app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def test_admin(store: PrincipalStore) -> Principal:
    """Create a test admin user."""
    return store.create_principal("admin", ADMIN_PASSWORD, Permissions.ADMIN)


@pytest.fixture
def test_user(store: PrincipalStore) -> Principal:
    """Create a test user allowed to read orders."""
    return store.create_principal("alice", USER_PASSWORD, Permissions.ORDER_READ)


@pytest.fixture
def login() -> Callable[..., httpx.Response]:
    """Return a helper that logs in through the API."""

    def _login(
        client: TestClient,
        username: str,
        password: str,
        expires_in: int | None = None,
    ) -> httpx.Response:
        body = {"username": username, "password": password}
        if expires_in is not None:
            body["expires_in"] = expires_in
        return client.post("/api/auth/login", json=body)

    return _login


@pytest.fixture
def admin_client(client: TestClient, test_admin: Principal, login) -> TestClient:
    """Create an admin-authenticated test client."""
    response = login(client, "admin", ADMIN_PASSWORD)
    assert response.status_code == 200
    return client


@pytest.fixture
def authenticated_client(client: TestClient, test_user: Principal, login) -> TestClient:
    """Create a test client logged in as a regular user."""
    response = login(client, "alice", USER_PASSWORD)
    assert response.status_code == 200
    return client


@pytest.fixture
def cookie_header() -> Callable[[str], dict[str, str]]:
    """Return a helper building a Cookie header for a specific session cookie value.

    Clear the client cookie jar before sending it so only this value is presented.
    """

    def _cookie_header(value: str) -> dict[str, str]:
        return {"Cookie": f"{COOKIE_NAME}={value}"}

    return _cookie_header
