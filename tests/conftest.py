"""Test fixtures for API and database."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from types import SimpleNamespace

TESTS_ROOT = Path(__file__).parent

# Set DATABASE_URL *before* importing ivc modules so the app doesn't try to
# open the default database path.
os.environ.setdefault("DATABASE_URL", "sqlite:///test_app.db")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import ivc.main as main_module  # noqa: E402
import ivc.models  # noqa: E402,F401 - ensure metadata is populated
from ivc.auth import current_admin_user  # noqa: E402
from ivc.database import Base  # noqa: E402
from ivc.database import get_db as db_dependency  # noqa: E402
from ivc.main import app  # noqa: E402
from ivc.security.rate_limit import limiter  # noqa: E402

# Disable rate limiting in tests to prevent cross-test 429 flakes
limiter.enabled = False

TEST_DB_PATH = Path("test_app.db")
TESTING_SESSION_FACTORY: sessionmaker | None = None

ADMIN_USER = SimpleNamespace(
    id=uuid.uuid4(),
    email="admin@example.com",
    is_active=True,
    is_superuser=True,
    is_verified=True,
)


@pytest.fixture(scope="session")
def client():
    global TESTING_SESSION_FACTORY
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    engine = create_engine(
        f"sqlite:///{TEST_DB_PATH}",
        connect_args={"check_same_thread": False},
    )
    TESTING_SESSION_FACTORY = sessionmaker(
        bind=engine, autocommit=False, autoflush=False
    )
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TESTING_SESSION_FACTORY()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[db_dependency] = override_get_db
    main_module.get_db = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(db_dependency, None)
    engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture
def db_session(client):
    if TESTING_SESSION_FACTORY is None:
        raise RuntimeError("Session factory not initialized")
    session = TESTING_SESSION_FACTORY()
    try:
        yield session
    finally:
        # Ensure database state is isolated between tests
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            if table.name != "users":
                session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture
def admin_client(client, db_session):
    """Client whose requests are authenticated as a superuser."""
    app.dependency_overrides[current_admin_user] = lambda: ADMIN_USER
    try:
        yield client
    finally:
        app.dependency_overrides.pop(current_admin_user, None)


@pytest.fixture
def make_post(db_session):
    """Factory for posts created straight through the service layer."""
    from ivc.schemas.blog import PostCreate, PostStatus
    from ivc.services.blog_service import blog_service

    def _make(title: str = "Tax year end checklist", **fields):
        fields.setdefault("content", "## Deadlines\n\nFile before **31 January**.")
        fields.setdefault("status", PostStatus.PUBLISHED)
        return blog_service.create_post(db_session, PostCreate(title=title, **fields))

    return _make


@pytest.fixture
def make_category(db_session):
    from ivc.schemas.category import CategoryCreate
    from ivc.services import category_service

    def _make(name: str = "Tax", **fields):
        return category_service.create_category(
            db_session, CategoryCreate(name=name, **fields)
        )

    return _make
