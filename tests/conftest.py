"""
Shared fixtures: an in-memory SQLite database, a TestClient wired to it,
local-disk media storage under tmp_path, and signed-in user/admin headers.

Run with:  python -m pytest tests/ -v
"""
import os

# Must be set before community.core.config is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from community.core.config import settings
from community.core.storage import R2Storage, get_storage
from community.db import base  # noqa: F401
from community.db.session import Base
from community.deps import get_db
from community.main import app
from community.modules.posts.services.feed import FeedLoader, get_feed_loader
from community.modules.roles.models.user_role import ADMIN_ROLE
from community.modules.roles.services.role import grant_role
from community.modules.user_management.services.user import create_user

ADMIN_CODE = "open-sesame"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path):
    return R2Storage(base_url="http://testserver", local_root=str(tmp_path / "uploads"), public_url="", client=None)


@pytest.fixture
def client(db, storage, monkeypatch):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(settings, "ADMIN_ACCESS_CODE", ADMIN_CODE)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_feed_loader] = lambda: FeedLoader(session_factory=TestingSessionLocal)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def login(client, email, password):
    response = client.post(f"{settings.API_V1_STR}/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def user(db):
    return create_user(db, "member@example.com", "secret123")


@pytest.fixture
def user_headers(client, user):
    return login(client, "member@example.com", "secret123")


@pytest.fixture
def admin(db):
    admin = create_user(db, "admin@example.com", "secret123")
    grant_role(db, admin.id, ADMIN_ROLE)
    return admin


@pytest.fixture
def admin_headers(client, admin):
    return login(client, "admin@example.com", "secret123")
