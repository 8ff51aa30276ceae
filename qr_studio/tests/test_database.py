import pytest
from fastapi.testclient import TestClient
from sqlalchemy import exc, inspect

from .. import database
from ..main import create_app


def make_dummy_conn():
    class DummyConn:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            pass

    return DummyConn()


def test_wait_for_db_retries(monkeypatch):
    engine = database.build_engine("sqlite://")
    calls = {"count": 0}

    def connect():
        calls["count"] += 1
        if calls["count"] < 3:
            raise exc.OperationalError("stmt", {}, Exception())
        return make_dummy_conn()

    monkeypatch.setattr(engine, "connect", connect)
    database.wait_for_db(engine, max_attempts=5, delay=0)
    assert calls["count"] == 3


def test_wait_for_db_raises(monkeypatch):
    engine = database.build_engine("sqlite://")

    def connect():
        raise exc.OperationalError("stmt", {}, Exception())

    monkeypatch.setattr(engine, "connect", connect)
    with pytest.raises(exc.OperationalError):
        database.wait_for_db(engine, max_attempts=2, delay=0)


def test_init_db_creates_tables(tmp_path):
    engine = database.build_engine(f"sqlite:///{tmp_path / 'nested' / 'qr.db'}")
    database.init_db(engine, max_attempts=1)
    assert "qr_codes" in inspect(engine).get_table_names()


def test_startup_fails_when_database_unreachable(settings, monkeypatch):
    app = create_app(settings)

    def connect():
        raise exc.OperationalError("stmt", {}, Exception())

    monkeypatch.setattr(app.state.engine, "connect", connect)
    with pytest.raises(exc.OperationalError):
        with TestClient(app):
            pass
