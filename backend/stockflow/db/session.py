"""Database session management."""

from collections.abc import Generator
from pathlib import Path
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine, create_engine, event, make_url
from sqlalchemy.orm import Session, sessionmaker

from stockflow.core.config import settings

# Every statement is bounded by the storage write timeout so a stuck inventory
# write surfaces as a storage failure instead of hanging the checkout.
connect_args = {}
pool_config = {}
_timeout_ms = int(settings.storage_write_timeout_seconds * 1000)

_url = make_url(settings.database_url)

if _url.get_backend_name() == "sqlite":
    if _url.database and _url.database != ":memory:":
        Path(_url.database).parent.mkdir(parents=True, exist_ok=True)
    connect_args = {
        "check_same_thread": False,
        "timeout": settings.storage_write_timeout_seconds,  # busy-lock wait
    }
    pool_config = {
        "pool_pre_ping": True,
        "pool_recycle": 1800,  # Recycle connections every 30 minutes
    }
else:
    # PostgreSQL connection pooling configuration
    connect_args = {"options": f"-c statement_timeout={_timeout_ms}"}
    pool_config = {
        "pool_size": 20,          # Number of connections to keep open
        "max_overflow": 40,       # Additional connections allowed beyond pool_size
        "pool_pre_ping": True,    # Test connections before using them
        "pool_recycle": 3600,     # Recycle connections after 1 hour
    }

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug and settings.log_level == "DEBUG",
    **pool_config,
)

def configure_sqlite_engine(sqlite_engine: Engine) -> None:
    """Foreign keys on, and let SQLAlchemy own BEGIN so SAVEPOINTs nest properly.

    pysqlite defers BEGIN until the first DML statement, which turns the
    outermost SAVEPOINT release into a commit.
    """

    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sqlite_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


if settings.database_url.startswith("sqlite"):
    configure_sqlite_engine(engine)

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
