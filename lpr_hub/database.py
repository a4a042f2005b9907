# lpr_hub/database.py
"""
Database engine, session factory, and table creation.
Uses SQLAlchemy over a single local SQLite file. All models are imported in
create_tables() so one call creates every table.
"""

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from lpr_hub.config import settings
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def build_engine(database_url: str = None) -> Engine:
    """
    Create the engine and wire the SQLite connection hooks.

    pysqlite only opens a transaction before DML, so two SELECTs issued in
    one session would each see a different database state. Its implicit
    handling is switched off and SQLAlchemy emits BEGIN itself, which makes
    every session a real transaction, reads included.
    """
    url = database_url or settings.DATABASE_URL
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        echo=False,                  # Set True to log all SQL queries (debug only)
    )

    if engine.dialect.name == "sqlite":
        busy_timeout = int(settings.SQLITE_BUSY_TIMEOUT_MS)

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_con, connection_record):
            dbapi_con.isolation_level = None
            cursor = dbapi_con.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={busy_timeout}")
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_store(request: Request):
    """FastAPI dependency — the EntityStore built at startup."""
    return request.app.state.store


def create_tables(engine: Engine):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from lpr_hub.models.site import Site       # noqa
    from lpr_hub.models.camera import Camera   # noqa
    from lpr_hub.models.event import Event     # noqa

    Base.metadata.create_all(bind=engine)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
