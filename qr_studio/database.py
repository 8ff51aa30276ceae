import logging
import time
from pathlib import Path

from sqlalchemy import create_engine, exc
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from fastapi import Request

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _prepare_sqlite_storage(database_url: str) -> None:
    url = make_url(database_url)
    if url.drivername.startswith("sqlite") and url.database not in (None, "", ":memory:"):
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def build_engine(database_url: str) -> Engine:
    _prepare_sqlite_storage(database_url)
    connect_args = {}
    if make_url(database_url).drivername.startswith("sqlite"):
        # Handlers run on the threadpool, so the connection crosses threads.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def wait_for_db(engine: Engine, max_attempts: int = 10, delay: float = 1.0) -> None:
    """Attempt to connect to the database until successful or out of retries."""
    for attempt in range(1, max_attempts + 1):
        try:
            with engine.connect():
                return
        except exc.OperationalError:
            if attempt == max_attempts:
                raise
            logger.warning(
                "Database not reachable (attempt %d/%d); retrying in %.1fs",
                attempt,
                max_attempts,
                delay,
            )
            time.sleep(delay)


def init_db(engine: Engine, max_attempts: int = 10) -> None:
    """Wait for the database to become available and create missing tables."""
    wait_for_db(engine, max_attempts=max_attempts)
    # Imported for its side effect of registering the tables on Base.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request):
    db: Session = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
