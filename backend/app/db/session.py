"""Database session management."""

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


def create_db_engine(database_url: str, **engine_kwargs: Any) -> Engine:
    """Create an engine whose transactions are safe for concurrent stock writes.

    SQLite: every transaction starts with BEGIN IMMEDIATE so writers queue on
    the database lock (waiting up to the busy timeout) instead of deadlocking
    on a shared->reserved lock upgrade. Foreign keys are enforced.

    PostgreSQL/MySQL: pooled connections, and row locks taken with
    SELECT ... FOR UPDATE give up after ``stock_lock_timeout_seconds``.
    """
    lock_timeout = settings.stock_lock_timeout_seconds

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": lock_timeout}
        pool_config = {}
    else:
        connect_args = {}
        pool_config = {
            "pool_size": 20,          # Number of connections to keep open
            "max_overflow": 40,       # Additional connections allowed beyond pool_size
            "pool_pre_ping": True,    # Test connections before using them
            "pool_recycle": 3600,     # Recycle connections after 1 hour
        }
    connect_args.update(engine_kwargs.pop("connect_args", {}))
    pool_config.update(engine_kwargs)

    engine = create_engine(database_url, connect_args=connect_args, **pool_config)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            # Hand transaction control to the "begin" listener below
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    elif engine.dialect.name == "postgresql":
        timeout_ms = int(lock_timeout * 1000)

        @event.listens_for(engine, "begin")
        def set_lock_timeout(conn):
            conn.exec_driver_sql(f"SET LOCAL lock_timeout = '{timeout_ms}ms'")

    return engine


engine = create_db_engine(settings.database_url, echo=settings.debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
