"""Shared test fixtures and configuration."""
import os

# In-memory SQLite for every test; must be set before memberhub is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from memberhub.core.hierarchy import BaseRole, Permission
from memberhub.db.base import Base
from memberhub.db.session import SessionLocal, engine, get_db, init_db
from memberhub.main import app
from memberhub.models import CustomRole, User


@pytest.fixture
def db():
    init_db(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_role(db):
    """Insert a role at an explicit position, bypassing the service."""
    def _make(name, position, permissions=(Permission.VIEW_DASHBOARD,)):
        role = CustomRole(name=name, color="#123456", position=position)
        role.permissions = permissions
        db.add(role)
        db.commit()
        db.refresh(role)
        return role
    return _make


@pytest.fixture
def make_user(db):
    def _make(username, base_role=BaseRole.MEMBER, custom_role=None, **fields):
        user = User(
            username=username,
            base_role=base_role,
            custom_role=custom_role,
            is_active=base_role in (BaseRole.ADMIN, BaseRole.MEMBER),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("root", BaseRole.ADMIN)
