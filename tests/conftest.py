"""
Pytest configuration and fixtures.
"""
import os

# Tests never talk to Bedrock or a real database unless a test opts in
for _var in ("AWS_REGION", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "RATE_LIMIT_STORAGE_URI"):
    os.environ.pop(_var, None)
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import uuid
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerline.auth.utils import create_access_token
from ledgerline.core.security import hash_password
from ledgerline.database import Base, get_db
from ledgerline.main import app
from ledgerline.middleware.rate_limit import limiter
from ledgerline.models.organization import Organization, OrganizationMember, OrganizationRole
from ledgerline.models.user import User


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "SecurePass123"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def password_hash() -> str:
    """One bcrypt hash shared by all test users."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def make_user(db_session: Session, password_hash: str) -> Callable[..., User]:
    """Factory creating persisted users."""

    def _make_user(email: str = None, full_name: str = None) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=password_hash,
            full_name=full_name,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_organization(db_session: Session) -> Callable[..., Organization]:
    """Factory creating an organization with the given user as owner."""

    def _make_organization(owner: User, name: str = "Acme Finance") -> Organization:
        org = Organization(
            id=uuid.uuid4(),
            name=name,
            slug=f"org-{uuid.uuid4().hex[:8]}",
        )
        db_session.add(org)
        db_session.flush()
        db_session.add(
            OrganizationMember(
                id=uuid.uuid4(),
                organization_id=org.id,
                user_id=owner.id,
                role=OrganizationRole.OWNER,
            )
        )
        db_session.commit()
        db_session.refresh(org)
        return org

    return _make_organization


@pytest.fixture
def user(make_user) -> User:
    return make_user(email="owner@example.com", full_name="Org Owner")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user(email="outsider@example.com", full_name="Outsider")


@pytest.fixture
def organization(make_organization, user: User) -> Organization:
    return make_organization(user)


def headers_for(user: User) -> Dict[str, str]:
    """Authorization header carrying an access token for ``user``."""
    token = create_access_token(str(user.id), user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers() -> Callable[[User], Dict[str, str]]:
    return headers_for


@pytest.fixture
def auth_headers(user: User) -> Dict[str, str]:
    return headers_for(user)


@pytest.fixture
def other_auth_headers(other_user: User) -> Dict[str, str]:
    return headers_for(other_user)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global singleton instances and rate limit counters for isolation."""
    import ledgerline.extraction.bedrock as bedrock_module
    import ledgerline.extraction.orchestrator as orchestrator_module
    import ledgerline.extraction.regex_parser as regex_module

    bedrock_module._extractor_instance = None
    orchestrator_module._service_instance = None
    regex_module._parser_instance = None
    limiter.reset()

    yield

    bedrock_module._extractor_instance = None
    orchestrator_module._service_instance = None
    regex_module._parser_instance = None
    limiter.reset()
