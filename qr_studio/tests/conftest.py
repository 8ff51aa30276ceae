from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from ..auth import create_access_token
from ..config import Settings
from ..main import create_app

SECRET_KEY = "test-secret"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        SECRET_KEY=SECRET_KEY,
        UPLOAD_DIR=tmp_path / "uploads",
        DB_CONNECT_ATTEMPTS=1,
        _env_file=None,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session(app, client):
    with app.state.session_factory() as session:
        yield session


def make_token(subject="alice@example.com", **extra):
    return create_access_token(
        {"sub": subject, **extra}, SECRET_KEY, timedelta(minutes=60)
    )


def auth_headers(token=None):
    return {"Authorization": f"Bearer {token or make_token()}"}


@pytest.fixture
def headers():
    return auth_headers()
