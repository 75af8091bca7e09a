"""Engine, session factory and the two ways of getting a session.

Request handlers take ``get_db`` and commit themselves (usually through
``workflow_transaction``). Background work outside a request uses
``get_db_session``, which commits on clean exit.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings

DATABASE_URL = get_settings().DATABASE_URL
_IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _engine_options() -> dict:
    if _IS_SQLITE:
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


engine = create_engine(DATABASE_URL, **_engine_options())
SessionLocal = sessionmaker(bind=engine, autoflush=False)


if _IS_SQLITE:
    # Bulk review relies on SAVEPOINTs, which pysqlite's implicit BEGIN breaks
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
