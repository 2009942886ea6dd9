"""Database configuration and session management for SQLite.

The local database only holds state this service owns: the playlist outbox
and the Spotify refresh token stored by the OAuth callback. Guest data lives
in Airtable and is never copied here.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: the outbox retry job writes while
      request handlers insert new entries.

    - **Foreign Keys**: disabled by default in SQLite; enabled so any future
      relations are enforced.

    - **check_same_thread=False**: Required for FastAPI/async. The scheduler
      runs jobs on a different thread than the one that opened the pool.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings

connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


@sa_event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
